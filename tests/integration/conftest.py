"""Pytest configuration for integration tests.

This module provides integration-test-specific fixtures that ensure
proper test isolation and mocking for API endpoint tests.
"""

from unittest.mock import AsyncMock, patch

import pytest
from fakes import FakeSession


@pytest.fixture(autouse=True)
def mock_ollama_client():
    """Mock OllamaClient for all integration tests.

    This fixture patches the OllamaClient class before the app is created,
    ensuring the lifespan uses our mock instead of creating a real client.
    """
    with patch("opencoder_server.app.OllamaClient") as mock_client_class:
        # Create the mock instance
        mock_instance = AsyncMock()
        mock_instance.host = "http://localhost:11434"
        mock_instance.check_connection.return_value = True

        # Return the mock instance when OllamaClient is instantiated
        mock_client_class.return_value = mock_instance

        yield mock_instance


@pytest.fixture
def files_session():
    """A capability session serving read_file from an in-memory file table."""
    files = {"x.txt": "hello"}

    def read_file(args):
        if args["path"] not in files:
            raise FileNotFoundError(args["path"])
        return files[args["path"]]

    return FakeSession(
        "files",
        capabilities=[
            {
                "name": "read_file",
                "description": "Read a file",
                "parameters": {
                    "type": "object",
                    "properties": {
                        "path": {"type": "string"},
                        "uid": {"type": "string"},
                    },
                    "required": ["path", "uid"],
                },
            },
            {"name": "run_cmd", "description": "Run a shell command"},
        ],
        handlers={
            "read_file": read_file,
            "run_cmd": PermissionError("commands are disabled"),
        },
    )


@pytest.fixture
def capability_sessions(files_session):
    """Register the files session with the test app."""
    return [files_session]


@pytest.fixture
def script_ollama(mock_ollama_client):
    """Replace chat_stream with one scripted chunk list per completion round.

    Returns a function taking the rounds and returning the list of recorded
    chat_stream keyword arguments.
    """

    def script(*rounds):
        remaining = list(rounds)
        requests = []

        async def mock_chat_stream(*args, **kwargs):
            requests.append(kwargs)
            for chunk in remaining.pop(0):
                if isinstance(chunk, Exception):
                    raise chunk
                yield chunk

        mock_ollama_client.chat_stream = mock_chat_stream
        return requests

    return script
