"""Unit tests for MCP stdio capability sessions.

The tests spawn a small FastMCP server script with the current interpreter.
Every test starts and closes its sessions itself, since an MCP stdio
connection must be closed by the task that opened it.
"""

import sys
import textwrap
from unittest.mock import AsyncMock, patch

import pytest

from opencoder_server import create_app
from opencoder_server.capabilities import (
    CapabilityCatalog,
    CapabilityDispatcher,
    McpCapabilitySession,
    SessionRegistry,
    open_mcp_sessions,
    result_to_text,
)
from opencoder_server.config import McpServerSettings, OpenCoderSettings
from opencoder_server.errors import CapabilityExecutionError, CapabilityNotFound

FILES_SERVER = textwrap.dedent(
    '''
    from mcp.server.fastmcp import FastMCP

    FILES = {"x.txt": "hello"}

    mcp = FastMCP("files")


    @mcp.tool()
    def read_file(path: str, uid: str = "") -> str:
        """Read a file from the sandbox."""
        if path not in FILES:
            raise FileNotFoundError(f"{path} does not exist")
        return FILES[path]


    @mcp.tool()
    def whoami(uid: str = "") -> str:
        """Return the calling user."""
        return uid


    if __name__ == "__main__":
        mcp.run()
    '''
)

MISSING_COMMAND = "/nonexistent/opencoder-missing-mcp-server"


@pytest.fixture
def server_script(tmp_path):
    path = tmp_path / "files_server.py"
    path.write_text(FILES_SERVER)
    return path


@pytest.fixture
def files_server(server_script):
    return McpServerSettings(
        name="files", command=sys.executable, args=[str(server_script)]
    )


@pytest.mark.asyncio
async def test_lists_and_invokes_tools(files_server):
    session = McpCapabilitySession.from_settings(files_server)
    await session.start()
    try:
        tools = await session.list_capabilities()
        content = await session.invoke("read_file", {"path": "x.txt", "uid": "alice"})
        user = await session.invoke("whoami", {"uid": "alice"})
    finally:
        await session.close()

    assert [tool.name for tool in tools] == ["read_file", "whoami"]
    assert tools[0].description == "Read a file from the sandbox."
    assert "path" in tools[0].inputSchema["properties"]
    assert result_to_text(content) == "hello"
    assert result_to_text(user) == "alice"


@pytest.mark.asyncio
async def test_tool_error_raises_execution_error(files_server):
    session = McpCapabilitySession.from_settings(files_server)
    await session.start()
    try:
        with pytest.raises(CapabilityExecutionError) as exc_info:
            await session.invoke("read_file", {"path": "y.txt"})
    finally:
        await session.close()

    assert exc_info.value.name == "read_file"
    assert "does not exist" in str(exc_info.value)


@pytest.mark.asyncio
async def test_unknown_tool_raises_not_found(files_server):
    session = McpCapabilitySession.from_settings(files_server)
    await session.start()
    try:
        with pytest.raises(CapabilityNotFound):
            await session.invoke("launch_rocket", {})
    finally:
        await session.close()


@pytest.mark.asyncio
async def test_close_stops_the_session(files_server):
    session = McpCapabilitySession.from_settings(files_server)
    await session.start()
    assert session.started is True

    await session.close()
    await session.close()

    assert session.started is False
    with pytest.raises(RuntimeError, match="not started"):
        await session.list_capabilities()


@pytest.mark.asyncio
async def test_open_mcp_sessions_skips_providers_that_fail_to_start(files_server):
    broken = McpServerSettings(name="broken", command=MISSING_COMMAND)

    sessions = await open_mcp_sessions([broken, files_server])
    try:
        assert [s.name for s in sessions] == ["files"]
        assert sessions[0].started is True
    finally:
        for session in sessions:
            await session.close()


@pytest.mark.asyncio
async def test_dispatch_through_stdio_provider(files_server):
    """The catalog and dispatcher drive an MCP provider like any other session."""
    session = McpCapabilitySession.from_settings(files_server)
    await session.start()
    registry = SessionRegistry([session])
    try:
        catalog = CapabilityCatalog()
        await catalog.refresh(registry.sessions)
        dispatcher = CapabilityDispatcher(registry, catalog, user_id="tester")

        descriptor = catalog.get("read_file")
        user = await dispatcher.dispatch("whoami", {"uid": "mallory"})
        with pytest.raises(CapabilityExecutionError) as exc_info:
            await dispatcher.dispatch("read_file", {"path": "y.txt"})
    finally:
        await registry.close_all()

    assert descriptor.session_name == "files"
    assert "uid" not in descriptor.parameters["properties"]
    assert user == "tester"
    assert "does not exist" in str(exc_info.value)
    assert session.started is False


@pytest.mark.asyncio
async def test_lifespan_starts_and_closes_configured_providers(tmp_path, files_server):
    settings = OpenCoderSettings(
        data_dir=str(tmp_path),
        mcp_servers=[
            files_server,
            McpServerSettings(name="broken", command=MISSING_COMMAND),
        ],
    )
    app = create_app(settings=settings)

    with patch("opencoder_server.app.OllamaClient") as mock_client_class:
        mock_client_class.return_value = AsyncMock()
        async with app.router.lifespan_context(app):
            registry = app.state.session_registry
            session = registry.get("files")
            names = registry.names
            capabilities = [d.name for d in app.state.catalog.descriptors]

    assert names == ["files"]
    assert capabilities == ["read_file", "whoami"]
    assert session.started is False
