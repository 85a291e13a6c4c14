"""Pytest configuration and shared fixtures for opencoder-server tests.

This module provides common fixtures used across all test modules,
including test app creation and async client setup.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from opencoder_server import create_app
from opencoder_server.config import OpenCoderSettings


@pytest.fixture
def test_settings(tmp_path):
    """Create test settings with isolated temporary directories.

    Args:
        tmp_path: Pytest fixture providing a temporary directory.

    Returns:
        OpenCoderSettings: Settings instance configured for testing.
    """
    return OpenCoderSettings(
        host="127.0.0.1",
        port=8000,
        ollama_host="http://localhost:11434",
        model="llama3.2:latest",
        data_dir=str(tmp_path),
        tools_dir="tools",
        system_prompt="You are a test assistant.",
        user_id="tester",
        capability_timeout=5.0,
        max_capability_rounds=10,
        log_level="DEBUG",
        cors_origins=["*"],
    )


@pytest.fixture
def capability_sessions():
    """Capability sessions registered with the test app (none by default)."""
    return []


@pytest.fixture
def test_app(test_settings, capability_sessions):
    """Create a FastAPI test application instance.

    Args:
        test_settings: Test settings fixture.
        capability_sessions: Sessions registered ahead of discovered providers.

    Returns:
        FastAPI: Configured test application.
    """
    return create_app(settings=test_settings, sessions=capability_sessions)


@pytest_asyncio.fixture
async def async_client(test_app):
    """Create an async HTTP client for testing FastAPI endpoints.

    Args:
        test_app: Test application fixture.

    Yields:
        AsyncClient: Async HTTP client for making test requests.
    """
    # Trigger the lifespan startup manually for tests
    async with test_app.router.lifespan_context(test_app):
        transport = ASGITransport(app=test_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
