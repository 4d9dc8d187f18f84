"""
Tab host interface and the in-process tab mirror.

The browser extension is the source of truth for which tabs are open. It
pushes the live tab list to the server, which keeps an ``InMemoryTabHost``
in sync; grouping operations are applied to the mirror and read back by the
extension through ``GET /api/groups``.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from tabmind.agents.models import ClusterColor, LiveTab, TabEvent, TabEventType, TabGroup
from tabmind.config import get_logger
from tabmind.exceptions import GroupNotFoundError, TabNotFoundError

logger = get_logger(__name__)


class TabHost(ABC):
    """Abstract interface for enumerating, grouping and closing tabs."""

    @abstractmethod
    async def query_tabs(self) -> list[LiveTab]:
        """Return every live tab, across all windows."""
        pass

    @abstractmethod
    async def get_tab(self, tab_id: int) -> LiveTab:
        """
        Resolve a tab id to a live tab.

        Raises:
            TabNotFoundError: If the tab no longer exists
        """
        pass

    @abstractmethod
    async def query_groups(self) -> list[TabGroup]:
        """Return every visual tab group, across all windows."""
        pass

    @abstractmethod
    async def tabs_in_group(self, group_id: int) -> list[LiveTab]:
        pass

    @abstractmethod
    async def ungroup(self, tab_ids: Sequence[int]) -> None:
        pass

    @abstractmethod
    async def group(self, tab_ids: Sequence[int]) -> int:
        """
        Put tabs into a new visual group.

        Returns:
            The new group's id
        """
        pass

    @abstractmethod
    async def update_group(
        self,
        group_id: int,
        title: Optional[str] = None,
        color: Optional[ClusterColor] = None,
        collapsed: Optional[bool] = None,
    ) -> TabGroup:
        pass

    @abstractmethod
    async def close_tabs(self, tab_ids: Sequence[int]) -> None:
        pass


class InMemoryTabHost(TabHost):
    """Tab host kept in memory and synchronized from the extension.

    Group membership is owned by this mirror: syncing the tab list adds,
    updates and removes tabs but never changes which group a known tab is in.
    """

    def __init__(self, tabs: Optional[Sequence[LiveTab]] = None):
        self._tabs: dict[int, LiveTab] = {}
        self._groups: dict[int, TabGroup] = {}
        self._page_text: dict[int, str] = {}
        self._next_group_id = 1
        for tab in tabs or []:
            self._tabs[tab.id] = tab.model_copy()

    # ------------------------------------------------------------------
    # TabHost
    # ------------------------------------------------------------------

    async def query_tabs(self) -> list[LiveTab]:
        return [tab.model_copy() for tab in self._tabs.values()]

    async def get_tab(self, tab_id: int) -> LiveTab:
        tab = self._tabs.get(tab_id)
        if tab is None:
            raise TabNotFoundError(tab_id)
        return tab.model_copy()

    async def query_groups(self) -> list[TabGroup]:
        return [group.model_copy() for group in self._groups.values()]

    async def tabs_in_group(self, group_id: int) -> list[LiveTab]:
        return [
            tab.model_copy() for tab in self._tabs.values()
            if tab.group_id == group_id
        ]

    async def ungroup(self, tab_ids: Sequence[int]) -> None:
        for tab_id in tab_ids:
            tab = self._tabs.get(tab_id)
            if tab is None:
                raise TabNotFoundError(tab_id)
            tab.group_id = None
        self._drop_empty_groups()

    async def group(self, tab_ids: Sequence[int]) -> int:
        if not tab_ids:
            raise ValueError("Cannot create a group without tabs")
        missing = [tab_id for tab_id in tab_ids if tab_id not in self._tabs]
        if missing:
            raise TabNotFoundError(missing[0])

        group_id = self._next_group_id
        self._next_group_id += 1
        window_id = self._tabs[tab_ids[0]].window_id
        self._groups[group_id] = TabGroup(id=group_id, window_id=window_id)

        for tab_id in tab_ids:
            self._tabs[tab_id].group_id = group_id
        self._drop_empty_groups()
        return group_id

    async def update_group(
        self,
        group_id: int,
        title: Optional[str] = None,
        color: Optional[ClusterColor] = None,
        collapsed: Optional[bool] = None,
    ) -> TabGroup:
        group = self._groups.get(group_id)
        if group is None:
            raise GroupNotFoundError(group_id)
        if title is not None:
            group.title = title
        if color is not None:
            group.color = ClusterColor(color)
        if collapsed is not None:
            group.collapsed = collapsed
        return group.model_copy()

    async def close_tabs(self, tab_ids: Sequence[int]) -> None:
        missing = [tab_id for tab_id in tab_ids if tab_id not in self._tabs]
        if missing:
            raise TabNotFoundError(missing[0])
        for tab_id in tab_ids:
            del self._tabs[tab_id]
            self._page_text.pop(tab_id, None)
        self._drop_empty_groups()

    # ------------------------------------------------------------------
    # Extension synchronization
    # ------------------------------------------------------------------

    def sync_tabs(self, tabs: Sequence[LiveTab]) -> list[TabEvent]:
        """
        Replace the live tab set with what the browser reports.

        Args:
            tabs: Every open tab, as reported by the extension

        Returns:
            Lifecycle events implied by the difference with the previous set
        """
        events: list[TabEvent] = []
        incoming = {tab.id: tab for tab in tabs}

        for tab_id in list(self._tabs):
            if tab_id not in incoming:
                del self._tabs[tab_id]
                self._page_text.pop(tab_id, None)
                events.append(TabEvent(type=TabEventType.REMOVED, tab_id=tab_id))

        for tab_id, tab in incoming.items():
            current = self._tabs.get(tab_id)
            if current is None:
                self._tabs[tab_id] = tab.model_copy(update={"group_id": None})
                events.append(TabEvent(type=TabEventType.CREATED, tab_id=tab_id))
            elif current.url != tab.url or current.title != tab.title:
                self._tabs[tab_id] = tab.model_copy(update={"group_id": current.group_id})
                if current.url != tab.url:
                    self._page_text.pop(tab_id, None)
                events.append(TabEvent(type=TabEventType.UPDATED, tab_id=tab_id, status="complete"))

        self._drop_empty_groups()
        logger.debug(f"Synced {len(incoming)} tabs ({len(events)} changes)")
        return events

    def set_page_text(self, tab_id: int, text: str) -> None:
        if tab_id not in self._tabs:
            raise TabNotFoundError(tab_id)
        self._page_text[tab_id] = text

    def page_text(self, tab_id: int) -> Optional[str]:
        return self._page_text.get(tab_id)

    def _drop_empty_groups(self) -> None:
        used = {tab.group_id for tab in self._tabs.values() if tab.group_id is not None}
        for group_id in list(self._groups):
            if group_id not in used:
                del self._groups[group_id]
