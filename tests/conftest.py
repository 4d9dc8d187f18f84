"""
Shared fixtures for the workspace pipeline tests.
"""

import pytest

from tabmind.agents.backends import Availability
from tabmind.agents.models import LiveTab
from tabmind.workspace.host import InMemoryTabHost

from fakes import FakeLanguageModel


@pytest.fixture
def sample_tabs():
    """Live tabs on a few hosts."""
    return [
        LiveTab(id=1, url="https://neo4j.com/docs", title="Neo4j Documentation"),
        LiveTab(id=2, url="https://www.neo4j.com/cypher", title="Cypher Query Language Guide"),
        LiveTab(id=3, url="https://react.dev/learn", title="React Documentation - Learn React"),
    ]


@pytest.fixture
def host(sample_tabs):
    return InMemoryTabHost(sample_tabs)


@pytest.fixture
def language_model():
    return FakeLanguageModel()


@pytest.fixture
def unavailable_model():
    return FakeLanguageModel(availability=Availability.NO)
