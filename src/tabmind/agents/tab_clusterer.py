"""
Tab clustering service with a language-model path and a hostname fallback.

This module groups the tabs of a workspace into a handful of named clusters.
When a language model is ready it is asked for the grouping in a single round
trip; whenever that is not possible (backend unavailable, call failure,
unparseable answer) tabs are grouped by hostname instead, so a clustering
call always terminates with a result.
"""

import json
from typing import Any, Optional, Protocol, Sequence
from urllib.parse import urlparse

from pydantic import TypeAdapter, ValidationError

from tabmind.agents.backends import LanguageModelBackend, LanguageModelSession
from tabmind.agents.models import Cluster
from tabmind.config import get_logger

logger = get_logger(__name__)


CLUSTERING_SYSTEM_PROMPT = (
    "You are an intelligent tab clustering assistant. Analyze tab titles and URLs "
    "to group related tabs into meaningful clusters. Return a JSON array of clusters, "
    'where each cluster has a "name" (descriptive category), "description" (what this '
    'cluster is about), and "tabIds" (array of tab IDs belonging to this cluster). '
    "Create 3-7 clusters maximum."
)

_clusters_adapter = TypeAdapter(list[Cluster])


class TabLike(Protocol):
    id: int
    title: str
    url: str


def normalize_hostname(url: str) -> Optional[str]:
    """
    Extract the grouping key for a URL.

    Examples:
        https://www.github.com/user/repo → github.com
        https://docs.python.org/3/ → docs.python.org
        about:blank → None

    Returns:
        Lower-cased hostname without a leading ``www.``, or None if the URL
        has no hostname
    """
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return None

    if not hostname:
        return None
    if hostname.startswith("www."):
        hostname = hostname[len("www."):]
    return hostname or None


def fallback_clusters(tab_info: Sequence[TabLike]) -> list[Cluster]:
    """
    Group tabs by hostname.

    Each distinct hostname, in first-seen order, becomes one cluster named
    after it. Tabs whose URL has no hostname belong to no cluster.

    Args:
        tab_info: Tabs to group

    Returns:
        One cluster per hostname
    """
    domain_map: dict[str, list[int]] = {}
    for tab in tab_info:
        domain = normalize_hostname(tab.url)
        if domain is None:
            continue
        domain_map.setdefault(domain, []).append(tab.id)

    return [
        Cluster(name=domain, description=f"Tabs from {domain}", tab_ids=tab_ids)
        for domain, tab_ids in domain_map.items()
    ]


def extract_json_array(text: str) -> Optional[list[Any]]:
    """
    Find the first well-formed JSON array embedded in free text.

    Models often wrap JSON in prose or code fences; this scans every ``[`` and
    returns the first position that decodes to a complete array.
    """
    decoder = json.JSONDecoder()
    index = text.find("[")
    while index != -1:
        try:
            value, _ = decoder.raw_decode(text, index)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, list):
            return value
        index = text.find("[", index + 1)
    return None


class TabClusterer:
    """
    Clusters tabs using a language model, falling back to hostnames.

    Key Design Decisions:
    - Exactly one backend round trip per call; any error falls back
    - At most one clustering session is alive: the previous one is released
      before a new one is opened, and on close()
    - Only id, title and URL are sent to the model (summaries would inflate
      the prompt)
    - Tab ids the model invents are dropped; clusters may still overlap

    Attributes:
        backend: Language model backend
        temperature: Sampling temperature for the clustering session
        top_k: Top-k cutoff for the clustering session
    """

    def __init__(
        self,
        backend: LanguageModelBackend,
        temperature: float = 0.3,
        top_k: int = 3,
    ):
        """
        Initialize the TabClusterer.

        Args:
            backend: Language model backend used for clustering
            temperature: Sampling temperature. Default: 0.3
            top_k: Top-k sampling cutoff. Default: 3
        """
        self.backend = backend
        self.temperature = temperature
        self.top_k = top_k
        self._session: Optional[LanguageModelSession] = None

    @property
    def has_session(self) -> bool:
        return self._session is not None

    async def cluster(self, tab_info: Sequence[TabLike]) -> list[Cluster]:
        """
        Group tabs into named clusters.

        Args:
            tab_info: Tabs to cluster (descriptors or live tabs)

        Returns:
            Clusters with name, description and tab ids; possibly empty
        """
        if not tab_info:
            return []

        try:
            if not await self.backend.is_ready():
                logger.info("Language model not available, using hostname clustering")
                return fallback_clusters(tab_info)

            await self._open_session()

            tab_list = [{"id": t.id, "title": t.title, "url": t.url} for t in tab_info]
            prompt = (
                "Analyze these tabs and create intelligent clusters:\n"
                f"{json.dumps(tab_list, indent=2)}\n\n"
                "Return only valid JSON with this structure: "
                '[{"name": "cluster name", "description": "what this is about", "tabIds": [1, 2, 3]}]'
            )
            result = await self._session.prompt(prompt)

            raw_clusters = extract_json_array(result)
            if raw_clusters is None:
                logger.warning("No JSON array in clustering response, using hostname clustering")
                return fallback_clusters(tab_info)

            clusters = self._sanitize(
                _clusters_adapter.validate_python(raw_clusters),
                {t.id for t in tab_info},
            )
            if not clusters:
                logger.warning("Clustering response referenced no known tabs, using hostname clustering")
                return fallback_clusters(tab_info)

            logger.info(f"Language model produced {len(clusters)} clusters for {len(tab_info)} tabs")
            return clusters

        except ValidationError as e:
            logger.warning(f"Malformed clusters in clustering response: {e}")
            return fallback_clusters(tab_info)
        except Exception as e:
            logger.error(f"AI clustering failed: {e}", exc_info=True)
            return fallback_clusters(tab_info)

    def _sanitize(self, clusters: list[Cluster], known_ids: set[int]) -> list[Cluster]:
        """Drop unknown and repeated tab ids, then clusters left empty."""
        cleaned = []
        for cluster in clusters:
            tab_ids = list(dict.fromkeys(tab_id for tab_id in cluster.tab_ids if tab_id in known_ids))
            dropped = len(cluster.tab_ids) - len(tab_ids)
            if dropped:
                logger.debug(f"Dropped {dropped} unknown tab ids from cluster '{cluster.name}'")
            if tab_ids:
                cleaned.append(cluster.model_copy(update={"tab_ids": tab_ids, "summary": ""}))
        return cleaned

    async def _open_session(self) -> None:
        self.release_session()
        self._session = await self.backend.create_session(
            system_prompt=CLUSTERING_SYSTEM_PROMPT,
            temperature=self.temperature,
            top_k=self.top_k,
        )

    def release_session(self) -> None:
        """Destroy the held clustering session, if any."""
        if self._session is None:
            return
        session, self._session = self._session, None
        try:
            session.destroy()
        except Exception as e:
            logger.warning(f"Error destroying previous session: {e}")

    async def close(self) -> None:
        self.release_session()
