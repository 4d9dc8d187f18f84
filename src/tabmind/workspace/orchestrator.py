"""
Workspace orchestration.

The orchestrator owns the workspace state and drives analysis cycles:

    live tabs → snapshot cache → clustering → cluster summaries → persist → broadcast

Every request that mutates the workspace (tab events, refreshes, apply,
revert) goes through a single queue consumed by one worker task, so requests
are handled strictly in arrival order and never interleave.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, UTC
from enum import Enum
from typing import Any, Optional, Sequence

from tabmind.agents.cluster_summarizer import ClusterSummarizer
from tabmind.agents.models import Cluster, TabEvent, WorkspaceSnapshot, WorkspaceState
from tabmind.agents.snapshot_cache import TabSnapshotCache
from tabmind.agents.tab_clusterer import TabClusterer
from tabmind.agents.tab_summarizer import TabSummarizer
from tabmind.config import get_logger
from tabmind.workspace.broadcast import WORKSPACE_UPDATED, Broadcaster, WorkspaceEvent
from tabmind.workspace.host import TabHost
from tabmind.workspace.reconciler import GroupReconciler
from tabmind.workspace.store import KeyValueStore

logger = get_logger(__name__)

STATE_KEY = "workspaceState"


class CommandKind(str, Enum):
    ANALYZE = "analyze"
    APPLY = "apply"
    REVERT = "revert"


@dataclass
class _Command:
    kind: CommandKind
    clusters: Optional[list[Cluster]] = None
    future: Optional[asyncio.Future] = None
    from_event: bool = False


class WorkspaceOrchestrator:
    """
    Single-writer owner of the workspace state.

    Attributes:
        state: The current workspace state
        cache: Snapshot cache backed by ``state.tab_data``
    """

    def __init__(
        self,
        host: TabHost,
        clusterer: TabClusterer,
        cluster_summarizer: ClusterSummarizer,
        store: KeyValueStore,
        broadcaster: Optional[Broadcaster] = None,
        tab_summarizer: Optional[TabSummarizer] = None,
        reconciler: Optional[GroupReconciler] = None,
        coalesce_tab_events: bool = True,
    ):
        """
        Initialize the orchestrator.

        Args:
            host: Tab host (enumeration, grouping, closing)
            clusterer: Clustering engine
            cluster_summarizer: Produces one-line cluster descriptions
            store: Persistent key-value store
            broadcaster: Receives WORKSPACE_UPDATED events. Default: a new one
            tab_summarizer: Summarizes new or changed tabs. If None, descriptors
                carry no summary.
            reconciler: Applies/reverts tab groups. Default: one for ``host``
            coalesce_tab_events: Skip queuing a cycle for a tab event while an
                event-triggered cycle is already waiting to run
        """
        self.host = host
        self.clusterer = clusterer
        self.cluster_summarizer = cluster_summarizer
        self.store = store
        self.broadcaster = broadcaster or Broadcaster()
        self.tab_summarizer = tab_summarizer
        self.reconciler = reconciler or GroupReconciler(host)
        self.coalesce_tab_events = coalesce_tab_events

        self.state = WorkspaceState()
        self.cache = TabSnapshotCache(tab_summarizer, self.state.tab_data)
        self.ai_available = False

        self._queue: asyncio.Queue[Optional[_Command]] = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self._event_cycle_pending = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    async def start(self, analyze: bool = True) -> None:
        """
        Load persisted state, capture the original tabs and start the worker.

        Args:
            analyze: Queue an initial analysis cycle
        """
        if self.running:
            return

        await self._load_state()
        await self._capture_original_tabs()

        self._worker = asyncio.create_task(self._run(), name="workspace-orchestrator")
        logger.info("Workspace orchestrator started")

        if analyze:
            self._enqueue(_Command(CommandKind.ANALYZE))

    async def stop(self) -> None:
        """Finish queued requests, stop the worker and release the AI session."""
        if self._worker is not None:
            await self._queue.put(None)
            await self._worker
            self._worker = None
        await self.clusterer.close()
        logger.info("Workspace orchestrator stopped")

    async def wait_idle(self) -> None:
        """Wait until every queued request has been handled."""
        await self._queue.join()

    def _set_state(self, state: WorkspaceState) -> None:
        self.state = state
        self.cache = TabSnapshotCache(self.tab_summarizer, self.state.tab_data)

    async def _load_state(self) -> None:
        try:
            saved = await self.store.get(STATE_KEY)
        except Exception as e:
            logger.error(f"Failed to load workspace state: {e}")
            return

        if not saved:
            logger.info("No saved workspace state, starting empty")
            return

        try:
            self._set_state(WorkspaceState.from_storage(saved))
            logger.info(
                f"Loaded workspace state: {len(self.state.clusters)} clusters, "
                f"{len(self.state.tab_data)} cached tabs"
            )
        except (ValueError, TypeError) as e:
            logger.error(f"Saved workspace state is unreadable, starting empty: {e}")

    async def _capture_original_tabs(self) -> None:
        # Captured once, the first time the host reports any tabs
        if self.state.original_tab_ids is not None:
            return

        tabs = await self.host.query_tabs()
        if not tabs:
            return
        self.state.original_tab_ids = [tab.id for tab in tabs]
        logger.info(f"Captured {len(tabs)} original tabs for revert")
        await self._persist()

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def _enqueue(self, command: _Command) -> None:
        if not self.running:
            raise RuntimeError("Workspace orchestrator is not running")
        self._queue.put_nowait(command)

    async def _submit(self, kind: CommandKind, clusters: Optional[list[Cluster]] = None) -> Any:
        future = asyncio.get_running_loop().create_future()
        self._enqueue(_Command(kind, clusters=clusters, future=future))
        return await future

    async def handle_tab_event(self, event: TabEvent) -> bool:
        """
        React to a tab lifecycle event.

        Args:
            event: The event

        Returns:
            True if an analysis cycle was queued for it
        """
        if not event.triggers_analysis():
            return False
        if self.coalesce_tab_events and self._event_cycle_pending:
            logger.debug(f"Coalesced tab event: {event.type.value}")
            return False

        self._enqueue(_Command(CommandKind.ANALYZE, from_event=True))
        self._event_cycle_pending = True
        return True

    async def request_refresh(self) -> None:
        """Run an analysis cycle and return once it has completed."""
        await self._submit(CommandKind.ANALYZE)

    async def apply_clusters(self, clusters: Sequence[Cluster]) -> None:
        """
        Apply clusters as visual tab groups.

        Raises:
            Exception: Whatever the host raised while clearing existing groups
        """
        await self._submit(CommandKind.APPLY, clusters=list(clusters))

    async def revert(self) -> None:
        """
        Ungroup all tabs and close tabs opened since startup.

        Raises:
            Exception: Whatever the host raised while ungrouping or closing
        """
        await self._submit(CommandKind.REVERT)

    async def get_workspace(self) -> WorkspaceSnapshot:
        """Current workspace, for display."""
        await self._check_ai_availability()
        return self.snapshot()

    async def _check_ai_availability(self) -> bool:
        try:
            self.ai_available = await self.clusterer.backend.is_ready()
        except Exception as e:
            logger.warning(f"Error checking AI availability: {e}")
            self.ai_available = False
        return self.ai_available

    def snapshot(self) -> WorkspaceSnapshot:
        return WorkspaceSnapshot(
            clusters=[cluster.model_copy() for cluster in self.state.clusters],
            last_analysis=self.state.last_analysis,
            tab_data=[self.state.tab_data[tab_id] for tab_id in sorted(self.state.tab_data)],
            original_tab_ids=list(self.state.original_tab_ids or []),
            ai_available=self.ai_available,
        )

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        while True:
            command = await self._queue.get()
            try:
                if command is None:
                    return
                await self._execute(command)
            finally:
                self._queue.task_done()

    async def _execute(self, command: _Command) -> None:
        try:
            if command.kind is CommandKind.ANALYZE:
                if command.from_event:
                    self._event_cycle_pending = False
                result = await self.run_analysis_cycle()
            elif command.kind is CommandKind.APPLY:
                result = await self.reconciler.apply(command.clusters or [])
            else:
                result = await self.reconciler.revert(self.state.original_tab_ids or [])
        except Exception as e:
            logger.error(f"Error handling {command.kind.value} request: {e}", exc_info=True)
            if command.future is not None and not command.future.done():
                command.future.set_exception(e)
        else:
            if command.future is not None and not command.future.done():
                command.future.set_result(result)

    # ------------------------------------------------------------------
    # Analysis cycle
    # ------------------------------------------------------------------

    async def run_analysis_cycle(self) -> None:
        """
        Run one full analysis cycle.

        Errors are logged, never raised: the worst outcome of a failed cycle
        is that the previous clusters stay in place.
        """
        try:
            await self._capture_original_tabs()
            tabs = await self.host.query_tabs()

            if not await self._check_ai_availability():
                logger.info("AI not available, proceeding with fallback analysis")

            tab_info = await self.cache.refresh(tabs)
            clusters = await self.clusterer.cluster(tab_info)

            summaries = await asyncio.gather(*(
                self.cluster_summarizer.describe(cluster, self.state.tab_data)
                for cluster in clusters
            ))
            for cluster, summary in zip(clusters, summaries):
                cluster.summary = summary

            self.state.clusters = clusters
            self.state.last_analysis = datetime.now(UTC)
            logger.info(f"Analysis complete: {len(tabs)} tabs in {len(clusters)} clusters")
        except Exception as e:
            logger.error(f"Error analyzing tabs: {e}", exc_info=True)
            return

        await self._persist()
        await self._broadcast()

    async def _persist(self) -> None:
        try:
            await self.store.set(STATE_KEY, self.state.to_storage())
        except Exception as e:
            logger.error(f"Failed to persist workspace state: {e}")

    async def _broadcast(self) -> None:
        event = WorkspaceEvent(
            type=WORKSPACE_UPDATED,
            data=self.snapshot().model_dump(mode="json"),
        )
        try:
            await self.broadcaster.publish(event)
        except Exception as e:
            logger.warning(f"Failed to broadcast workspace update: {e}")
