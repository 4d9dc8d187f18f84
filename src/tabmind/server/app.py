"""
FastAPI application for the TabMind backend.

This server provides endpoints for:
- Tab synchronization and lifecycle events from the browser extension
- Workspace retrieval and refresh
- Applying clusters as tab groups and reverting them
- Live workspace updates over a WebSocket
"""

from contextlib import asynccontextmanager
from datetime import datetime, UTC

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from tabmind.agents.cluster_summarizer import ClusterSummarizer
from tabmind.agents.models import LiveTab, TabEvent, WorkspaceSnapshot
from tabmind.agents.openai_backend import OpenAILanguageModel, OpenAISummarizer
from tabmind.agents.tab_clusterer import TabClusterer
from tabmind.agents.tab_summarizer import TabSummarizer
from tabmind.config import Settings, get_logger, get_settings, setup_logging
from tabmind.exceptions import TabNotFoundError
from tabmind.workspace.broadcast import Broadcaster, WorkspaceEvent
from tabmind.workspace.host import InMemoryTabHost
from tabmind.workspace.orchestrator import WorkspaceOrchestrator
from tabmind.workspace.page_content import HostPageContentProbe, HttpPageContentProbe
from tabmind.workspace.store import InMemoryKeyValueStore, SQLiteKeyValueStore

from tabmind.server.models import (
    AckResponse,
    ApplyClustersRequest,
    GroupResponse,
    GroupsResponse,
    HealthResponse,
    PageContentRequest,
    TabEventRequest,
    TabEventResponse,
    TabsSyncRequest,
    TabsSyncResponse,
)

logger = get_logger(__name__)

# ============================================================================
# Global State
# ============================================================================

_host: InMemoryTabHost | None = None
_orchestrator: WorkspaceOrchestrator | None = None


def get_host() -> InMemoryTabHost:
    """Get or create the global tab mirror."""
    global _host
    if _host is None:
        _host = InMemoryTabHost()
    return _host


def build_orchestrator(settings: Settings, host: InMemoryTabHost) -> WorkspaceOrchestrator:
    """
    Wire the analysis pipeline from settings.

    Args:
        settings: Application settings
        host: Tab host the pipeline reads from and groups into

    Returns:
        An orchestrator that has not been started yet
    """
    language_model = OpenAILanguageModel(
        api_key=settings.openai_api_key,
        model=settings.openai_llm_model,
    )

    if settings.page_content_source.lower() == "http":
        content_probe = HttpPageContentProbe(host)
    else:
        content_probe = HostPageContentProbe(host)

    if settings.storage_backend.lower() == "memory":
        store = InMemoryKeyValueStore()
    else:
        store = SQLiteKeyValueStore(settings.db_path)

    return WorkspaceOrchestrator(
        host=host,
        clusterer=TabClusterer(language_model),
        cluster_summarizer=ClusterSummarizer(language_model),
        store=store,
        broadcaster=Broadcaster(),
        tab_summarizer=TabSummarizer(
            content_probe,
            OpenAISummarizer(language_model),
            max_content_chars=settings.max_content_chars,
            min_content_chars=settings.min_content_chars,
        ),
        coalesce_tab_events=settings.coalesce_tab_events,
    )


def get_orchestrator() -> WorkspaceOrchestrator:
    """Get or create the global WorkspaceOrchestrator instance."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = build_orchestrator(get_settings(), get_host())
    return _orchestrator


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(get_settings().log_level)
    orchestrator = get_orchestrator()
    await orchestrator.start()
    try:
        yield
    finally:
        await orchestrator.stop()
        await orchestrator.store.close()
        if orchestrator.tab_summarizer is not None:
            content_probe = orchestrator.tab_summarizer.content_probe
            if isinstance(content_probe, HttpPageContentProbe):
                await content_probe.close()


# ============================================================================
# FastAPI App Initialization
# ============================================================================

app = FastAPI(
    title="TabMind API",
    description="Groups open browser tabs into topical workspaces",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for browser extension
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "chrome-extension://*",
        "http://localhost:*",
        "https://localhost:*",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# API Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC).isoformat(),
    )


@app.get("/api/workspace", response_model=WorkspaceSnapshot)
async def get_workspace():
    """Get the current workspace: clusters, cached tabs and AI availability."""
    return await get_orchestrator().get_workspace()


@app.post("/api/workspace/refresh", response_model=AckResponse)
async def refresh_workspace():
    """
    Run an analysis cycle.

    Responds once the cycle has completed; the new workspace is delivered
    through the WebSocket broadcast.
    """
    await get_orchestrator().request_refresh()
    return AckResponse(success=True)


@app.post("/api/groups/apply", response_model=AckResponse)
async def apply_groups(request: ApplyClustersRequest):
    """Apply clusters as visual tab groups."""
    try:
        await get_orchestrator().apply_clusters(request.clusters)
    except Exception as e:
        logger.error(f"Error applying tab groups: {e}")
        return AckResponse(success=False, error=str(e))
    return AckResponse(success=True)


@app.post("/api/groups/revert", response_model=AckResponse)
async def revert_groups():
    """Ungroup all tabs and close the ones opened since startup."""
    try:
        await get_orchestrator().revert()
    except Exception as e:
        logger.error(f"Error reverting tabs: {e}")
        return AckResponse(success=False, error=str(e))
    return AckResponse(success=True)


@app.get("/api/groups", response_model=GroupsResponse)
async def get_groups():
    """
    Get the visual tab groups the extension should mirror.

    Returns:
        Every group with its title, color and member tab ids
    """
    host = get_host()
    groups = []
    for group in await host.query_groups():
        tabs = await host.tabs_in_group(group.id)
        groups.append(
            GroupResponse(
                id=group.id,
                title=group.title,
                color=group.color.value,
                collapsed=group.collapsed,
                tab_ids=[tab.id for tab in tabs],
            )
        )
    return GroupsResponse(groups=groups, timestamp=datetime.now(UTC).isoformat())


@app.post("/api/tabs/sync", response_model=TabsSyncResponse)
async def sync_tabs(request: TabsSyncRequest):
    """
    Receive the full list of open tabs from the extension.

    The browser is ground truth: tabs missing from the request are treated as
    closed, new ones as created, and tabs whose URL or title changed as
    updated. Each change is fed to the orchestrator as a lifecycle event.
    """
    host = get_host()
    orchestrator = get_orchestrator()

    events = host.sync_tabs([
        LiveTab(
            id=tab.id,
            title=tab.title,
            url=tab.url,
            favicon_url=tab.favicon_url,
            window_id=tab.window_id,
        )
        for tab in request.tabs
    ])

    # Page text must be in place before the queued cycles summarize the tabs
    for tab in request.tabs:
        if tab.content:
            host.set_page_text(tab.id, tab.content)

    queued = 0
    for event in events:
        if await orchestrator.handle_tab_event(event):
            queued += 1

    return TabsSyncResponse(
        status="success",
        processed=len(request.tabs),
        changes=len(events),
        queued_cycles=queued,
    )


@app.post("/api/tabs/events", response_model=TabEventResponse)
async def tab_event(request: TabEventRequest):
    """Receive a single tab lifecycle event (created/updated/removed/activated)."""
    event = TabEvent(type=request.type, tab_id=request.tab_id, status=request.status)
    queued = await get_orchestrator().handle_tab_event(event)
    return TabEventResponse(queued=queued)


@app.post("/api/tabs/{tab_id}/content", response_model=AckResponse)
async def tab_content(tab_id: int, request: PageContentRequest):
    """Store page text extracted by the content script, for summarization."""
    try:
        get_host().set_page_text(tab_id, request.as_text())
    except TabNotFoundError:
        raise HTTPException(status_code=404, detail=f"Unknown tab: {tab_id}")
    return AckResponse(success=True)


@app.websocket("/ws/workspace")
async def workspace_updates(ws: WebSocket):
    """Push WORKSPACE_UPDATED events to a connected side panel."""
    await ws.accept()
    orchestrator = get_orchestrator()

    async def forward(event: WorkspaceEvent) -> None:
        await ws.send_json(event.model_dump(mode="json"))

    unsubscribe = orchestrator.broadcaster.subscribe(forward)
    try:
        await ws.send_json({
            "type": "WORKSPACE_SNAPSHOT",
            "data": orchestrator.snapshot().model_dump(mode="json"),
        })
        while True:
            await ws.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        unsubscribe()
