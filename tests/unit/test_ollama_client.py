"""Unit tests for the OllamaClient wrapper."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from opencoder_server.ollama import OllamaClient


@pytest.fixture
def mock_ollama_async_client():
    """Create a mock ollama.AsyncClient."""
    with patch("opencoder_server.ollama.client.ollama.AsyncClient") as mock_class:
        mock_instance = AsyncMock()
        mock_class.return_value = mock_instance
        yield mock_instance


@pytest.fixture
def ollama_client(mock_ollama_async_client):
    """Create an OllamaClient with mocked AsyncClient."""
    return OllamaClient(host="http://localhost:11434")


async def _chunks(*chunks):
    for chunk in chunks:
        yield chunk


@pytest.mark.asyncio
async def test_client_initialization():
    """Test that OllamaClient initializes correctly."""
    with patch("opencoder_server.ollama.client.ollama.AsyncClient"):
        client = OllamaClient(host="http://test:11434")
        assert client.host == "http://test:11434"
        assert client._client is not None


@pytest.mark.asyncio
async def test_check_connection_success(ollama_client, mock_ollama_async_client):
    """Test successful connection check."""
    mock_ollama_async_client.list.return_value = {"models": []}

    result = await ollama_client.check_connection()

    assert result is True
    mock_ollama_async_client.list.assert_called_once()


@pytest.mark.asyncio
async def test_check_connection_failure(ollama_client, mock_ollama_async_client):
    """Test connection check when Ollama is unreachable."""
    mock_ollama_async_client.list.side_effect = Exception("Connection refused")

    result = await ollama_client.check_connection()

    assert result is False


@pytest.mark.asyncio
async def test_chat_stream_yields_dicts(ollama_client, mock_ollama_async_client):
    """Test that dict and pydantic-style chunks are both yielded as dicts."""
    model_chunk = MagicMock()
    model_chunk.model_dump.return_value = {
        "message": {"role": "assistant", "content": " world"},
        "done": True,
    }
    mock_ollama_async_client.chat.return_value = _chunks(
        {"message": {"role": "assistant", "content": "Hello"}, "done": False},
        model_chunk,
    )

    chunks = [
        chunk
        async for chunk in ollama_client.chat_stream(
            model="llama3.2:latest",
            messages=[{"role": "user", "content": "Hi"}],
        )
    ]

    assert [c["message"]["content"] for c in chunks] == ["Hello", " world"]
    assert chunks[-1]["done"] is True


@pytest.mark.asyncio
async def test_chat_stream_passes_tools(ollama_client, mock_ollama_async_client):
    """Test that tools are forwarded and an empty tool list is sent as None."""
    mock_ollama_async_client.chat.return_value = _chunks()
    tools = [{"type": "function", "function": {"name": "ls", "parameters": {}}}]

    async for _ in ollama_client.chat_stream(model="m", messages=[], tools=tools):
        pass

    kwargs = mock_ollama_async_client.chat.call_args.kwargs
    assert kwargs["tools"] == tools
    assert kwargs["stream"] is True

    mock_ollama_async_client.chat.return_value = _chunks()
    async for _ in ollama_client.chat_stream(model="m", messages=[], tools=[]):
        pass

    assert mock_ollama_async_client.chat.call_args.kwargs["tools"] is None


@pytest.mark.asyncio
async def test_chat_stream_api_error(ollama_client, mock_ollama_async_client):
    """Test that API errors propagate to the caller."""
    mock_ollama_async_client.chat.side_effect = Exception("model not found")

    with pytest.raises(Exception, match="model not found"):
        async for _ in ollama_client.chat_stream(model="missing", messages=[]):
            pass


@pytest.mark.asyncio
async def test_close(ollama_client):
    """Test client close method."""
    # Should not raise any errors
    await ollama_client.close()
