"""
Incremental cache of tab descriptors.

The cache keeps the last-known descriptor for every tab it has seen. A tab is
only re-described (and re-summarized) when its URL changes, so unchanged tabs
cost nothing on repeated analysis cycles. Entries for closed tabs are kept:
clusters that still reference them stay displayable until the next cycle.
"""

import asyncio
from datetime import datetime, UTC
from typing import Optional, Sequence

from tabmind.agents.models import LiveTab, TabDescriptor
from tabmind.agents.tab_summarizer import TabSummarizer
from tabmind.config import get_logger

logger = get_logger(__name__)


class TabSnapshotCache:
    """Tab id -> TabDescriptor mapping with URL-based staleness."""

    def __init__(
        self,
        summarizer: Optional[TabSummarizer] = None,
        entries: Optional[dict[int, TabDescriptor]] = None,
    ):
        """
        Initialize the cache.

        Args:
            summarizer: Used to summarize new or changed tabs. If None, no
                summaries are produced.
            entries: Backing mapping. Shared, not copied, so the owner (the
                workspace state) sees every update.
        """
        self.summarizer = summarizer
        self.entries: dict[int, TabDescriptor] = entries if entries is not None else {}

    def get(self, tab_id: int) -> Optional[TabDescriptor]:
        return self.entries.get(tab_id)

    def __contains__(self, tab_id: object) -> bool:
        return tab_id in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def is_stale(self, tab: LiveTab) -> bool:
        """A tab is stale if it was never seen or its URL changed."""
        cached = self.entries.get(tab.id)
        return cached is None or cached.url != tab.url

    async def refresh(self, live_tabs: Sequence[LiveTab]) -> list[TabDescriptor]:
        """
        Bring the cache up to date with the live tabs.

        Args:
            live_tabs: Tabs currently open

        Returns:
            One descriptor per live tab, in the same order
        """
        stale = list({tab.id: tab for tab in live_tabs if self.is_stale(tab)}.values())
        if stale:
            logger.debug(f"Refreshing {len(stale)} of {len(live_tabs)} tabs")
            await asyncio.gather(*(self._describe(tab) for tab in stale))

        return [self.entries[tab.id] for tab in live_tabs]

    async def _describe(self, tab: LiveTab) -> None:
        descriptor = TabDescriptor(
            id=tab.id,
            title=tab.title,
            url=tab.url,
            favicon_url=tab.favicon_url,
            last_accessed=datetime.now(UTC),
        )

        if self.summarizer is not None:
            try:
                descriptor.summary = await self.summarizer.summarize(tab.id)
            except Exception as e:
                logger.warning(f"Could not get summary for tab {tab.id}: {e}")

        self.entries[tab.id] = descriptor
