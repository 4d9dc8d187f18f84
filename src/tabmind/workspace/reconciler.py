"""
Applies clusters as visual tab groups and reverts to the original tab set.

Both operations first clear every existing group on the host. Neither is
transactional: a failure halfway leaves whatever was already done in place.
"""

from typing import Sequence

from tabmind.agents.models import PALETTE, Cluster
from tabmind.config import get_logger
from tabmind.exceptions import TabNotFoundError
from tabmind.workspace.host import TabHost

logger = get_logger(__name__)


class GroupReconciler:
    """Reconciles clusters against the live tabs of a host."""

    def __init__(self, host: TabHost):
        self.host = host

    async def ungroup_all(self) -> int:
        """
        Remove every visual group, across all windows.

        Returns:
            Number of tabs that were ungrouped
        """
        ungrouped = 0
        for group in await self.host.query_groups():
            tabs_in_group = await self.host.tabs_in_group(group.id)
            tab_ids = [tab.id for tab in tabs_in_group]
            if tab_ids:
                await self.host.ungroup(tab_ids)
                ungrouped += len(tab_ids)
        return ungrouped

    async def _live_tab_ids(self, tab_ids: Sequence[int]) -> list[int]:
        valid_tab_ids = []
        for tab_id in tab_ids:
            try:
                await self.host.get_tab(tab_id)
            except TabNotFoundError:
                logger.info(f"Tab no longer exists: {tab_id}")
                continue
            valid_tab_ids.append(tab_id)
        return valid_tab_ids

    async def apply(self, clusters: Sequence[Cluster]) -> list[int]:
        """
        Materialize clusters as visual tab groups.

        Tab ids that no longer resolve are dropped. Clusters may overlap: a tab
        listed in several clusters ends up in the last group created for it.

        Args:
            clusters: Clusters to apply, in display order

        Returns:
            Ids of the groups that were created
        """
        logger.info(f"Applying {len(clusters)} clusters as tab groups")
        await self.ungroup_all()

        group_ids = []
        for index, cluster in enumerate(clusters):
            valid_tab_ids = await self._live_tab_ids(cluster.tab_ids)
            if not valid_tab_ids:
                continue

            try:
                group_id = await self.host.group(valid_tab_ids)
                await self.host.update_group(
                    group_id,
                    title=cluster.name,
                    color=PALETTE[index % len(PALETTE)],
                    collapsed=False,
                )
                group_ids.append(group_id)
                logger.info(f"Created group: {cluster.name} with {len(valid_tab_ids)} tabs")
            except Exception as e:
                logger.error(f"Error creating group for cluster '{cluster.name}': {e}")

        return group_ids

    async def revert(self, original_tab_ids: Sequence[int]) -> list[int]:
        """
        Ungroup everything and close tabs opened since startup.

        Tabs are only closed when doing so leaves at least one tab open.

        Args:
            original_tab_ids: Tabs that were open at first startup

        Returns:
            Ids of the tabs that were closed
        """
        logger.info("Reverting tabs...")
        await self.ungroup_all()

        original = set(original_tab_ids)
        current_tabs = await self.host.query_tabs()
        tabs_to_close = [tab.id for tab in current_tabs if tab.id not in original]

        if not tabs_to_close:
            return []
        if len(tabs_to_close) >= len(current_tabs):
            logger.warning("Revert would close every open tab, leaving tabs open")
            return []

        await self.host.close_tabs(tabs_to_close)
        logger.info(f"Tabs reverted successfully, closed {len(tabs_to_close)}")
        return tabs_to_close
