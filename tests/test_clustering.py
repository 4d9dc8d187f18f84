"""
Unit tests for tab clustering.

Tests the clustering engine including:
- Hostname fallback grouping and determinism
- Language model clustering and response parsing
- Fallback on unavailable backends, failures and bad responses
- Session discipline (one clustering session at a time)
"""

import json

import pytest

from tabmind.agents.backends import Availability
from tabmind.agents.models import LiveTab
from tabmind.agents.tab_clusterer import (
    CLUSTERING_SYSTEM_PROMPT,
    TabClusterer,
    extract_json_array,
    fallback_clusters,
    normalize_hostname,
)

from fakes import FakeLanguageModel


def make_tabs(*urls):
    return [LiveTab(id=i, url=url, title=f"Tab {i}") for i, url in enumerate(urls, start=1)]


class TestNormalizeHostname:
    def test_strips_www_prefix(self):
        assert normalize_hostname("https://www.github.com/user/repo") == "github.com"

    def test_keeps_other_subdomains(self):
        assert normalize_hostname("https://docs.python.org/3/") == "docs.python.org"

    def test_lowercases_and_drops_port(self):
        assert normalize_hostname("http://LocalHost:8000/docs") == "localhost"

    def test_only_leading_www_is_stripped(self):
        assert normalize_hostname("https://awww.example.com") == "awww.example.com"

    @pytest.mark.parametrize("url", ["about:blank", "not a url", "", "http://[::1"])
    def test_no_hostname(self, url):
        assert normalize_hostname(url) is None


class TestFallbackClusters:
    def test_groups_by_hostname(self):
        tabs = make_tabs("https://a.com/1", "https://www.a.com/2", "https://b.com/3")

        clusters = fallback_clusters(tabs)

        assert [(c.name, c.tab_ids) for c in clusters] == [("a.com", [1, 2]), ("b.com", [3])]
        assert clusters[0].description == "Tabs from a.com"

    def test_unparseable_urls_are_excluded(self):
        tabs = make_tabs("https://a.com/1", "about:blank", "garbage")

        clusters = fallback_clusters(tabs)

        assert len(clusters) == 1
        assert sum(len(c.tab_ids) for c in clusters) == 1

    def test_deterministic(self):
        tabs = make_tabs("https://b.com", "https://a.com", "https://b.com/x", "https://c.org")

        first = fallback_clusters(tabs)
        second = fallback_clusters(list(tabs))

        assert first == second

    def test_empty_input(self):
        assert fallback_clusters([]) == []


class TestExtractJsonArray:
    def test_array_wrapped_in_prose(self):
        text = 'Here are the clusters:\n```json\n[{"name": "Docs", "tabIds": [1]}]\n```\nEnjoy!'
        assert extract_json_array(text) == [{"name": "Docs", "tabIds": [1]}]

    def test_skips_malformed_brackets(self):
        text = 'Step [1 of 2]: [{"name": "A", "tabIds": [2]}]'
        assert extract_json_array(text) == [{"name": "A", "tabIds": [2]}]

    def test_no_array(self):
        assert extract_json_array('{"name": "A"}') is None
        assert extract_json_array("I cannot help with that.") is None


class TestTabClusterer:
    @pytest.mark.asyncio
    async def test_unavailable_backend_uses_fallback(self, unavailable_model):
        clusterer = TabClusterer(unavailable_model)
        tabs = make_tabs("https://a.com/1", "https://www.a.com/2", "https://b.com/3")

        clusters = await clusterer.cluster(tabs)

        assert [c.name for c in clusters] == ["a.com", "b.com"]
        assert unavailable_model.sessions == []

    @pytest.mark.asyncio
    async def test_after_download_counts_as_unavailable(self):
        backend = FakeLanguageModel(availability=Availability.AFTER_DOWNLOAD)
        clusters = await TabClusterer(backend).cluster(make_tabs("https://a.com"))

        assert clusters[0].name == "a.com"
        assert backend.sessions == []

    @pytest.mark.asyncio
    async def test_language_model_clusters(self):
        response = json.dumps([
            {"name": "Graph Databases", "description": "Neo4j and Cypher", "tabIds": [1, 2]},
            {"name": "Frontend", "description": "React docs", "tabIds": [3]},
        ])
        backend = FakeLanguageModel(response=f"Sure! {response}")
        clusterer = TabClusterer(backend)
        tabs = make_tabs("https://neo4j.com/docs", "https://neo4j.com/cypher", "https://react.dev")

        clusters = await clusterer.cluster(tabs)

        assert [(c.name, c.tab_ids) for c in clusters] == [("Graph Databases", [1, 2]), ("Frontend", [3])]
        assert clusters[0].description == "Neo4j and Cypher"

        session = backend.sessions[0]
        assert session.system_prompt == CLUSTERING_SYSTEM_PROMPT
        assert session.temperature == 0.3
        assert session.top_k == 3
        assert len(session.prompts) == 1

    @pytest.mark.asyncio
    async def test_prompt_contains_only_id_title_url(self):
        backend = FakeLanguageModel(response='[{"name": "A", "tabIds": [1]}]')
        tab = LiveTab(id=1, url="https://a.com", title="A", favicon_url="https://a.com/favicon.ico")

        await TabClusterer(backend).cluster([tab])

        prompt = backend.sessions[0].prompts[0]
        assert '"title": "A"' in prompt
        assert "favicon" not in prompt

    @pytest.mark.asyncio
    async def test_unknown_tab_ids_are_dropped(self):
        backend = FakeLanguageModel(response=json.dumps([
            {"name": "Real", "description": "", "tabIds": [1, 99, 1]},
            {"name": "Imaginary", "description": "", "tabIds": [100]},
        ]))

        clusters = await TabClusterer(backend).cluster(make_tabs("https://a.com", "https://b.com"))

        assert [(c.name, c.tab_ids) for c in clusters] == [("Real", [1])]

    @pytest.mark.asyncio
    async def test_overlapping_clusters_are_kept(self):
        backend = FakeLanguageModel(response=json.dumps([
            {"name": "Work", "description": "", "tabIds": [1, 2]},
            {"name": "Reading", "description": "", "tabIds": [2]},
        ]))

        clusters = await TabClusterer(backend).cluster(make_tabs("https://a.com", "https://b.com"))

        assert [c.tab_ids for c in clusters] == [[1, 2], [2]]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [
        "I could not cluster these tabs.",
        '[{"description": "missing name", "tabIds": [1]}]',
        '[{"name": "Bad ids", "tabIds": ["one"]}]',
        '[{"name": "Nobody", "tabIds": [42]}]',
    ])
    async def test_bad_response_falls_back(self, response):
        backend = FakeLanguageModel(response=response)
        tabs = make_tabs("https://a.com/1", "https://b.com/2")

        clusters = await TabClusterer(backend).cluster(tabs)

        assert [c.name for c in clusters] == ["a.com", "b.com"]

    @pytest.mark.asyncio
    async def test_backend_error_falls_back(self):
        backend = FakeLanguageModel(error=TimeoutError("model took too long"))
        tabs = make_tabs("https://a.com/1")

        clusters = await TabClusterer(backend).cluster(tabs)

        assert clusters[0].description == "Tabs from a.com"
        assert len(backend.sessions[0].prompts) == 1

    @pytest.mark.asyncio
    async def test_empty_input_makes_no_backend_call(self, language_model):
        assert await TabClusterer(language_model).cluster([]) == []
        assert language_model.sessions == []


class TestSessionDiscipline:
    @pytest.mark.asyncio
    async def test_previous_session_released_before_new_one(self):
        backend = FakeLanguageModel(response='[{"name": "A", "tabIds": [1]}]')
        clusterer = TabClusterer(backend)
        tabs = make_tabs("https://a.com")

        for _ in range(3):
            await clusterer.cluster(tabs)

        assert backend.events == ["create", "destroy", "create", "destroy", "create"]
        assert backend.max_live_sessions == 1
        assert clusterer.has_session

    @pytest.mark.asyncio
    async def test_session_kept_after_failed_prompt_and_released_on_close(self):
        backend = FakeLanguageModel(error=RuntimeError("boom"))
        clusterer = TabClusterer(backend)

        await clusterer.cluster(make_tabs("https://a.com"))
        assert backend.live_sessions == 1

        await clusterer.close()
        assert backend.live_sessions == 0
        assert not clusterer.has_session

    @pytest.mark.asyncio
    async def test_destroy_failure_does_not_block_new_session(self):
        backend = FakeLanguageModel(response='[{"name": "A", "tabIds": [1]}]')
        clusterer = TabClusterer(backend)
        await clusterer.cluster(make_tabs("https://a.com"))

        def broken_destroy():
            raise RuntimeError("already gone")

        backend.sessions[0].destroy = broken_destroy
        clusters = await clusterer.cluster(make_tabs("https://a.com"))

        assert clusters[0].name == "A"
        assert len(backend.sessions) == 2
