"""
One-line descriptions for clusters.
"""

from typing import Mapping

from tabmind.agents.backends import LanguageModelBackend
from tabmind.agents.models import Cluster, TabDescriptor
from tabmind.config import get_logger

logger = get_logger(__name__)


SUMMARY_SYSTEM_PROMPT = (
    "You are a concise workspace summarizer. Based on the provided list of tab titles, "
    "generate a single, brief, and engaging sentence (max 15 words) that summarizes the "
    "main topic of this group of tabs. The summary should be in the third person and "
    "focus on the content."
)


class ClusterSummarizer:
    """Describes a cluster in one sentence, with templated fallbacks."""

    def __init__(self, backend: LanguageModelBackend, temperature: float = 0.5, top_k: int = 3):
        self.backend = backend
        self.temperature = temperature
        self.top_k = top_k

    @staticmethod
    def templated(cluster: Cluster) -> str:
        return f"{len(cluster.tab_ids)} tabs related to {cluster.name}"

    async def describe(self, cluster: Cluster, tab_data: Mapping[int, TabDescriptor]) -> str:
        """
        Generate a one-line description of a cluster.

        Args:
            cluster: Cluster to describe
            tab_data: Snapshot cache used to resolve tab titles

        Returns:
            A model-written sentence, or a templated one when the model is
            unavailable or fails
        """
        tab_titles = [
            tab_data[tab_id].title
            for tab_id in cluster.tab_ids
            if tab_id in tab_data and tab_data[tab_id].title
        ]

        if not tab_titles:
            return f"This workspace contains {len(cluster.tab_ids)} tabs."

        try:
            if not await self.backend.is_ready():
                return self.templated(cluster)

            # Short-lived session, independent of the clustering session
            session = await self.backend.create_session(
                system_prompt=SUMMARY_SYSTEM_PROMPT,
                temperature=self.temperature,
                top_k=self.top_k,
            )
            try:
                prompt = f'Tab titles for the workspace "{cluster.name}":\n' + "\n".join(tab_titles)
                result = await session.prompt(prompt)
            finally:
                session.destroy()

            summary = result.strip()
            return summary or self.templated(cluster)

        except Exception as e:
            logger.error(f"Error generating cluster summary for '{cluster.name}': {e}")
            return self.templated(cluster)
