"""Out-of-process capability providers speaking MCP over stdio.

Each configured provider command is spawned as a subprocess and driven with the
``mcp`` client SDK: ``tools/list`` feeds the catalog and ``tools/call`` executes
capabilities.
"""

import asyncio
import logging
from contextlib import AsyncExitStack
from typing import Any

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client

from opencoder_server.config import McpServerSettings
from opencoder_server.errors import CapabilityExecutionError, CapabilityNotFound

logger = logging.getLogger(__name__)


class McpCapabilitySession:
    """Capability session backed by an MCP server subprocess.

    ``start`` and ``close`` must run in the same task; the application
    lifespan does both. Calls may come from any task in between.
    """

    def __init__(
        self,
        name: str,
        command: str,
        args: list[str] | None = None,
        env: dict[str, str] | None = None,
        startup_timeout: float = 30.0,
    ):
        self.name = name
        self.command = command
        self.args = list(args or [])
        self.env = env
        self.startup_timeout = startup_timeout
        self._exit_stack: AsyncExitStack | None = None
        self._session: ClientSession | None = None
        self._tool_names: set[str] | None = None

    @classmethod
    def from_settings(cls, server: McpServerSettings) -> "McpCapabilitySession":
        return cls(
            name=server.name,
            command=server.command,
            args=server.args,
            env=server.env,
            startup_timeout=server.startup_timeout,
        )

    @property
    def started(self) -> bool:
        return self._session is not None

    async def start(self) -> None:
        """Spawn the server and perform the MCP initialize handshake.

        Raises:
            OSError: If the command cannot be started
            TimeoutError: If the handshake does not finish in time
        """
        if self._session is not None:
            return

        command = " ".join([self.command, *self.args])
        logger.info(f"Starting MCP provider {self.name}: {command}")
        params = StdioServerParameters(command=self.command, args=self.args, env=self.env)

        stack = AsyncExitStack()
        try:
            read, write = await stack.enter_async_context(stdio_client(params))
            session = await stack.enter_async_context(ClientSession(read, write))
            result = await asyncio.wait_for(
                session.initialize(), timeout=self.startup_timeout
            )
        except BaseException:
            await stack.aclose()
            raise

        self._exit_stack = stack
        self._session = session
        logger.info(f"MCP provider {self.name} initialized: {result.serverInfo.name}")

    async def list_capabilities(self) -> list[Any]:
        session = self._require_session()
        result = await session.list_tools()
        self._tool_names = {tool.name for tool in result.tools}
        return list(result.tools)

    async def invoke(self, name: str, arguments: dict[str, Any]) -> Any:
        """Call a tool on the server.

        Raises:
            CapabilityNotFound: If the server does not list the tool
            CapabilityExecutionError: If the server reports a tool error
        """
        session = self._require_session()
        if self._tool_names is None:
            await self.list_capabilities()
        if name not in self._tool_names:
            raise CapabilityNotFound(name)

        result = await session.call_tool(name, arguments)
        if result.isError:
            message = "\n".join(
                part.text
                for part in result.content
                if getattr(part, "type", None) == "text"
            )
            raise CapabilityExecutionError(name, message or "tool reported an error")
        return result

    async def close(self) -> None:
        if self._exit_stack is None:
            return
        stack = self._exit_stack
        self._exit_stack = None
        self._session = None
        self._tool_names = None
        await stack.aclose()
        logger.info(f"MCP provider {self.name} stopped")

    def _require_session(self) -> ClientSession:
        if self._session is None:
            raise RuntimeError(f"MCP provider {self.name} is not started")
        return self._session


async def open_mcp_sessions(
    servers: list[McpServerSettings],
) -> list[McpCapabilitySession]:
    """Start every configured MCP provider.

    A provider that fails to start is logged and skipped, the remaining
    providers are still started.
    """
    sessions: list[McpCapabilitySession] = []
    for server in servers:
        session = McpCapabilitySession.from_settings(server)
        try:
            await session.start()
        except Exception as e:
            logger.error(f"Failed to start MCP provider {server.name}: {e}")
            continue
        sessions.append(session)
    return sessions
