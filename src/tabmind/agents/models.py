"""
Data models for tab clustering and workspace management.

This module defines the core data structures for representing browser tabs,
their cached descriptors, tab clusters, visual tab groups, and the workspace
state that ties them together.
"""

from datetime import datetime, UTC
from enum import Enum
from typing import Any, Optional
from pydantic import AliasChoices, BaseModel, Field, ConfigDict, field_validator


class LiveTab(BaseModel):
    """A tab as currently reported by the tab host.

    Attributes:
        id: Host tab identifier (stable for the tab's lifetime, reused after close)
        title: The title of the tab
        url: The URL of the tab
        favicon_url: URL to the tab's favicon
        window_id: Browser window ID containing this tab
        group_id: Visual tab group ID (if grouped)
    """

    id: int
    title: str = ""
    url: str = ""
    favicon_url: Optional[str] = None
    window_id: Optional[int] = None
    group_id: Optional[int] = None


class TabDescriptor(BaseModel):
    """Last-known description of a tab, as held by the snapshot cache.

    Attributes:
        id: Host tab identifier
        title: Tab title when the descriptor was built
        url: Tab URL when the descriptor was built
        favicon_url: URL to the tab's favicon
        last_accessed: When the descriptor was (re)built
        summary: Short synopsis of the page content, if one could be produced
    """

    id: int
    title: str = ""
    url: str = ""
    favicon_url: Optional[str] = None
    last_accessed: datetime = Field(default_factory=lambda: datetime.now(UTC))
    summary: Optional[str] = None


class ClusterColor(str, Enum):
    """Available colors for visual tab groups (Chrome Tab Group colors)."""
    GREY = "grey"
    BLUE = "blue"
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"
    PINK = "pink"
    PURPLE = "purple"
    CYAN = "cyan"
    ORANGE = "orange"


# Group colors cycle through the palette by cluster index
PALETTE: list[ClusterColor] = list(ClusterColor)


class Cluster(BaseModel):
    """A named group of related tabs.

    Clusters coming from a language model may overlap: the same tab id can
    appear in more than one cluster.

    Attributes:
        name: Category label
        description: One sentence about the cluster (model- or heuristic-derived)
        tab_ids: Ordered tab ids belonging to this cluster
        summary: One-line human description produced by the cluster summarizer
    """

    name: str
    description: str = ""
    tab_ids: list[int] = Field(
        default_factory=list,
        validation_alias=AliasChoices("tab_ids", "tabIds"),
    )
    summary: str = ""

    model_config = ConfigDict(populate_by_name=True)

    @field_validator('description', 'summary', mode='before')
    @classmethod
    def convert_none_to_empty_string(cls, v):
        """Convert None to empty string for text fields."""
        return v if v is not None else ""


class TabGroup(BaseModel):
    """A visual tab group as reported by the tab host."""

    id: int
    title: str = ""
    color: ClusterColor = ClusterColor.GREY
    collapsed: bool = False
    window_id: Optional[int] = None


class TabEventType(str, Enum):
    """Tab lifecycle events that trigger an analysis cycle."""
    CREATED = "created"
    UPDATED = "updated"
    REMOVED = "removed"
    ACTIVATED = "activated"


class TabEvent(BaseModel):
    """A tab lifecycle event.

    Attributes:
        type: Which lifecycle event happened
        tab_id: Tab the event refers to
        status: Loading status for ``updated`` events ("loading" / "complete")
    """

    type: TabEventType
    tab_id: Optional[int] = None
    status: Optional[str] = None

    def triggers_analysis(self) -> bool:
        """Updates only count once the page has finished loading."""
        if self.type is TabEventType.UPDATED:
            return self.status == "complete"
        return True


class WorkspaceState(BaseModel):
    """The workspace: current clusters plus the tab snapshot cache.

    Attributes:
        clusters: Clusters produced by the most recent analysis cycle
        last_analysis: When the most recent analysis cycle finished
        tab_data: Snapshot cache, tab id -> descriptor (cumulative, never pruned)
        original_tab_ids: Tabs open at first startup; None until captured
    """

    clusters: list[Cluster] = Field(default_factory=list)
    last_analysis: Optional[datetime] = None
    tab_data: dict[int, TabDescriptor] = Field(default_factory=dict)
    original_tab_ids: Optional[list[int]] = None

    def to_storage(self) -> dict[str, Any]:
        """Serialize for the key-value store.

        The snapshot cache is written as an ordered list of
        ``[tab_id, descriptor]`` pairs, sorted by tab id.
        """
        data = self.model_dump(mode="json", exclude={"tab_data"})
        data["tab_data"] = [
            [tab_id, self.tab_data[tab_id].model_dump(mode="json")]
            for tab_id in sorted(self.tab_data)
        ]
        return data

    @classmethod
    def from_storage(cls, data: dict[str, Any]) -> "WorkspaceState":
        """Rebuild a state written by :meth:`to_storage`.

        Also accepts ``tab_data`` stored as a JSON object keyed by tab id, or
        missing entirely.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Unsupported workspace state format: {type(data).__name__}")
        payload = dict(data)
        payload["tab_data"] = _tab_data_from_storage(payload.get("tab_data"))
        return cls.model_validate(payload)


def _tab_data_from_storage(raw: Any) -> dict[int, TabDescriptor]:
    if not raw:
        return {}

    if isinstance(raw, dict):
        pairs = raw.items()
    elif isinstance(raw, list):
        pairs = raw
    else:
        raise ValueError(f"Unsupported tab_data format: {type(raw).__name__}")

    entries: dict[int, TabDescriptor] = {}
    for pair in pairs:
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            raise ValueError(f"Malformed tab_data entry: {pair!r}")
        tab_id, descriptor = pair
        entries[int(tab_id)] = TabDescriptor.model_validate(descriptor)
    return entries


class WorkspaceSnapshot(BaseModel):
    """Read-only view of the workspace handed to the UI."""

    clusters: list[Cluster] = Field(default_factory=list)
    last_analysis: Optional[datetime] = None
    tab_data: list[TabDescriptor] = Field(default_factory=list)
    original_tab_ids: list[int] = Field(default_factory=list)
    ai_available: bool = False
