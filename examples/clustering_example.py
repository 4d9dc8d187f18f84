"""
Example running the workspace pipeline against an in-memory tab set.

This example shows:
1. Running an analysis cycle over a handful of tabs
2. Hostname clustering when no OPENAI_API_KEY is configured
3. Applying the clusters as tab groups
4. Reverting to the tabs that were open at startup
"""

import asyncio
import sys
from pathlib import Path

# Add src to path so we can import tabmind
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tabmind.agents import ClusterSummarizer, LiveTab, TabClusterer
from tabmind.agents.openai_backend import OpenAILanguageModel
from tabmind.config import get_settings, setup_logging
from tabmind.workspace.host import InMemoryTabHost
from tabmind.workspace.orchestrator import WorkspaceOrchestrator
from tabmind.workspace.store import InMemoryKeyValueStore


async def main():
    """Run the workspace pipeline example."""
    setup_logging("WARNING")
    settings = get_settings()

    print("=" * 80)
    print("TabMind Example: Workspace Analysis")
    print("=" * 80)
    print()
    if not settings.openai_api_key:
        print("OPENAI_API_KEY not set: tabs will be grouped by hostname")
        print()

    host = InMemoryTabHost([
        LiveTab(id=1, url="https://neo4j.com/docs", title="Neo4j Documentation - Graph Database"),
        LiveTab(id=2, url="https://neo4j.com/docs/cypher-manual", title="Cypher Query Language Tutorial"),
        LiveTab(id=3, url="https://react.dev/learn", title="React Documentation - Learn React"),
        LiveTab(id=4, url="https://react.dev/reference/react/hooks", title="React Hooks API Reference"),
        LiveTab(id=5, url="https://arxiv.org/abs/1706.03762", title="Attention Is All You Need"),
    ])

    language_model = OpenAILanguageModel()
    orchestrator = WorkspaceOrchestrator(
        host=host,
        clusterer=TabClusterer(language_model),
        cluster_summarizer=ClusterSummarizer(language_model),
        store=InMemoryKeyValueStore(),
    )

    await orchestrator.start()
    await orchestrator.wait_idle()

    print("-" * 80)
    print("Clusters")
    print("-" * 80)
    for cluster in orchestrator.state.clusters:
        print(f"  {cluster.name}: tabs {cluster.tab_ids}")
        print(f"    {cluster.summary}")
    print()

    await orchestrator.apply_clusters(orchestrator.state.clusters)
    groups = await host.query_groups()
    print(f"✓ Applied {len(groups)} tab groups")

    host.sync_tabs([*await host.query_tabs(), LiveTab(id=6, url="https://python.org", title="Python")])
    await orchestrator.revert()
    print(f"✓ Reverted: {len(await host.query_tabs())} tabs open, {len(await host.query_groups())} groups")

    await orchestrator.stop()


if __name__ == "__main__":
    asyncio.run(main())
