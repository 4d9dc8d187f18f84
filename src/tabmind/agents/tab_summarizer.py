"""
Tab summarization service.

Turns a tab's page text into a short synopsis using the configured
summarizer backend. Summaries are best-effort: a tab can exist without one.
"""

from typing import Optional

from tabmind.agents.backends import PageContentProbe, SummarizerBackend
from tabmind.config import get_logger

logger = get_logger(__name__)

MAX_CONTENT_CHARS = 5000
MIN_CONTENT_CHARS = 100


class TabSummarizer:
    """Service for generating page summaries for tabs."""

    def __init__(
        self,
        content_probe: PageContentProbe,
        backend: SummarizerBackend,
        max_content_chars: int = MAX_CONTENT_CHARS,
        min_content_chars: int = MIN_CONTENT_CHARS,
    ):
        """
        Initialize the tab summarizer.

        Args:
            content_probe: Source of page text
            backend: Summarization backend
            max_content_chars: Maximum characters of page text sent for summarization
            min_content_chars: Pages with less text than this are not summarized
        """
        self.content_probe = content_probe
        self.backend = backend
        self.max_content_chars = max_content_chars
        self.min_content_chars = min_content_chars

    async def summarize(self, tab_id: int) -> Optional[str]:
        """
        Generate a short summary of a tab's page.

        Args:
            tab_id: Tab to summarize

        Returns:
            Summary text, or None if the page has too little text, the backend
            is unavailable, or anything fails along the way
        """
        try:
            page_text = await self.content_probe.extract_text(tab_id, self.max_content_chars)
            if not page_text or len(page_text.strip()) < self.min_content_chars:
                return None

            if not await self.backend.is_ready():
                return None

            session = await self.backend.create_session(
                mode="tl;dr",
                format="plain-text",
                length="short",
            )
            try:
                summary = await session.summarize(page_text[:self.max_content_chars])
            finally:
                session.destroy()

            summary = summary.strip() if summary else ""
            if not summary:
                return None

            logger.info(f"Generated summary for tab {tab_id}")
            return summary

        except Exception as e:
            logger.error(
                f"Error getting page summary for tab {tab_id}: {e}",
                exc_info=True,
                extra={"tab_id": tab_id}
            )
            return None
