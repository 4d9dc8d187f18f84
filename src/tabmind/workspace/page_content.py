"""
Page content probes.

A probe returns (a bounded prefix of) the visible text of a tab's page. Two
sources are supported: text pushed by the extension's content script, and a
direct HTTP fetch of the tab's URL.
"""

from typing import Optional

import httpx
from bs4 import BeautifulSoup, Comment
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from tabmind.agents.backends import PageContentProbe
from tabmind.config import get_logger, get_settings
from tabmind.workspace.host import InMemoryTabHost, TabHost

logger = get_logger(__name__)

_INVISIBLE_TAGS = ["script", "style", "noscript", "template", "svg", "head"]


def visible_text(markup: str) -> str:
    """
    Reduce an HTML document to its visible text.

    Args:
        markup: Raw HTML

    Returns:
        Whitespace-collapsed text with scripts, styles and tags removed
    """
    soup = BeautifulSoup(markup, "html.parser")

    for element in soup(_INVISIBLE_TAGS):
        element.extract()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()

    text = soup.get_text(" ", strip=True)
    return " ".join(text.split())


class HostPageContentProbe(PageContentProbe):
    """Reads page text the extension pushed into the tab mirror."""

    def __init__(self, host: InMemoryTabHost):
        self.host = host

    async def extract_text(self, tab_id: int, max_chars: int) -> Optional[str]:
        text = self.host.page_text(tab_id)
        if text is None:
            return None
        return text[:max_chars]


class HttpPageContentProbe(PageContentProbe):
    """Fetches the tab's URL and extracts its visible text."""

    def __init__(self, host: TabHost, client: Optional[httpx.AsyncClient] = None):
        """
        Initialize the probe.

        Args:
            host: Tab host used to resolve tab ids to URLs
            client: HTTP client. If not provided, one is created from config.
        """
        self.host = host
        self.client = client or httpx.AsyncClient(
            timeout=get_settings().request_timeout,
            follow_redirects=True,
            headers={"User-Agent": "TabMind/0.1 (+page summary)"},
        )

    async def extract_text(self, tab_id: int, max_chars: int) -> Optional[str]:
        tab = await self.host.get_tab(tab_id)
        if not tab.url.startswith(("http://", "https://")):
            return None

        markup = await self._fetch(tab.url)
        return visible_text(markup)[:max_chars]

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _fetch(self, url: str) -> str:
        response = await self.client.get(url)
        response.raise_for_status()
        content_type = response.headers.get("content-type", "")
        if "html" not in content_type and "text" not in content_type:
            logger.debug(f"Skipping non-text content ({content_type}) at {url}")
            return ""
        return response.text

    async def close(self) -> None:
        await self.client.aclose()
