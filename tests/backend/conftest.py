"""
Pytest configuration and fixtures for backend API tests.
"""

import pytest
from unittest.mock import Mock, patch
from fastapi.testclient import TestClient


@pytest.fixture(autouse=True)
def reset_app_state():
    """Reset the global tab mirror and orchestrator between tests."""
    import tabmind.server.app as app_module

    app_module._host = None
    app_module._orchestrator = None
    yield
    app_module._host = None
    app_module._orchestrator = None


@pytest.fixture(autouse=True)
def mock_settings():
    """Mock settings to avoid requiring .env file in tests."""
    with patch("tabmind.server.app.get_settings") as mock_app_settings, \
         patch("tabmind.agents.openai_backend.get_settings") as mock_backend_settings:
        settings = Mock()
        settings.openai_api_key = None  # No key: the language model reports unavailable
        settings.openai_llm_model = "gpt-4o-mini"
        settings.request_timeout = 5.0
        settings.storage_backend = "memory"
        settings.db_path = ":memory:"
        settings.page_content_source = "host"
        settings.max_content_chars = 5000
        settings.min_content_chars = 100
        settings.coalesce_tab_events = True
        settings.log_level = "WARNING"
        mock_app_settings.return_value = settings
        mock_backend_settings.return_value = settings
        yield settings


@pytest.fixture
def client(mock_settings):
    """Test client with the application lifespan (orchestrator worker) running."""
    from tabmind.server.app import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def sample_tabs_data():
    """Sample tab data for testing API endpoints."""
    return {
        "tabs": [
            {
                "id": 1,
                "url": "https://neo4j.com/docs",
                "title": "Neo4j Documentation - Graph Database",
                "favicon_url": "https://neo4j.com/favicon.ico",
            },
            {
                "id": 2,
                "url": "https://react.dev/learn",
                "title": "React Documentation - Learn React",
                "favicon_url": "https://react.dev/favicon.ico",
            },
            {
                "id": 3,
                "url": "https://www.neo4j.com/cypher",
                "title": "Cypher Query Language Guide",
                "favicon_url": "https://neo4j.com/favicon.ico",
                "content": "Cypher is a declarative graph query language...",
            },
        ],
        "timestamp": "2025-10-28T10:00:00Z",
    }
