"""
Pydantic models for API request/response validation.
"""

from typing import Optional
from pydantic import BaseModel, Field

from tabmind.agents.models import Cluster, TabEventType


# ============================================================================
# Request Models
# ============================================================================


class TabInput(BaseModel):
    """Input model for a browser tab from the extension."""

    id: int
    url: str
    title: str = ""
    favicon_url: Optional[str] = None
    window_id: Optional[int] = None
    content: Optional[str] = None  # Visible page text, when the extension has it


class TabsSyncRequest(BaseModel):
    """Request model for /api/tabs/sync endpoint."""

    tabs: list[TabInput]
    timestamp: Optional[str] = None  # ISO format timestamp


class TabEventRequest(BaseModel):
    """Request model for /api/tabs/events endpoint."""

    type: TabEventType
    tab_id: Optional[int] = None
    status: Optional[str] = None


class PageContentRequest(BaseModel):
    """Page text and metadata collected by the extension's content script."""

    title: Optional[str] = None
    description: Optional[str] = None
    headings: list[str] = Field(default_factory=list)
    text: str = ""

    def as_text(self) -> str:
        """Flatten into the text the summarizer reads."""
        parts = [self.description or "", *self.headings, self.text]
        return "\n".join(part.strip() for part in parts if part and part.strip())


class ApplyClustersRequest(BaseModel):
    """Request model for /api/groups/apply endpoint."""

    clusters: list[Cluster]


# ============================================================================
# Response Models
# ============================================================================


class AckResponse(BaseModel):
    """Acknowledgement for requests whose result arrives via broadcast."""

    success: bool
    error: Optional[str] = None


class TabsSyncResponse(BaseModel):
    """Response model for /api/tabs/sync endpoint."""

    status: str
    processed: int
    changes: int
    queued_cycles: int = 0


class TabEventResponse(BaseModel):
    """Response model for /api/tabs/events endpoint."""

    queued: bool


class GroupResponse(BaseModel):
    """A visual tab group and its tabs."""

    id: int
    title: str
    color: str
    collapsed: bool
    tab_ids: list[int] = Field(default_factory=list)


class GroupsResponse(BaseModel):
    """Response model for /api/groups endpoint."""

    groups: list[GroupResponse] = Field(default_factory=list)
    timestamp: str


class HealthResponse(BaseModel):
    """Response model for /health endpoint."""

    status: str
    version: str = "0.1.0"
    timestamp: str
