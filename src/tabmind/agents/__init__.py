"""
Agents that analyze a browser workspace.

This package provides:
- Tab descriptor caching (TabSnapshotCache)
- Page summarization (TabSummarizer)
- Tab clustering with a hostname fallback (TabClusterer)
- Cluster descriptions (ClusterSummarizer)
"""

from tabmind.agents.models import (
    LiveTab,
    TabDescriptor,
    Cluster,
    ClusterColor,
    TabGroup,
    TabEvent,
    TabEventType,
    WorkspaceState,
    WorkspaceSnapshot,
)
from tabmind.agents.backends import Availability
from tabmind.agents.tab_summarizer import TabSummarizer
from tabmind.agents.snapshot_cache import TabSnapshotCache
from tabmind.agents.tab_clusterer import TabClusterer, fallback_clusters
from tabmind.agents.cluster_summarizer import ClusterSummarizer

__all__ = [
    "LiveTab",
    "TabDescriptor",
    "Cluster",
    "ClusterColor",
    "TabGroup",
    "TabEvent",
    "TabEventType",
    "WorkspaceState",
    "WorkspaceSnapshot",
    "Availability",
    "TabSummarizer",
    "TabSnapshotCache",
    "TabClusterer",
    "fallback_clusters",
    "ClusterSummarizer",
]
