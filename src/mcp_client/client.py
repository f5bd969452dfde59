"""MCP client for remote tool services.

Opens a streamable-HTTP MCP session against one service endpoint, with the
ATXP account attached to every request, and exposes tool discovery and tool
execution on top of it.
"""

from contextlib import AsyncExitStack
from typing import Any, AsyncContextManager, Optional

import httpx
from mcp import ClientSession
from mcp.client.streamable_http import streamablehttp_client
from mcp.types import CallToolResult

from shared.logging import get_logger
from shared.models import ToolDefinition
from mcp_client.account import Account, AccountAuth
from mcp_client.errors import MCPAuthError, MCPClientError, MCPConnectionError

logger = get_logger(__name__)


def build_streamable_transport(server_url: str, account: Account) -> AsyncContextManager:
    """
    Build the streamable-HTTP transport for one service.

    Timeouts and reconnection follow the MCP SDK defaults.
    """
    return streamablehttp_client(server_url, auth=AccountAuth(account))


def find_http_error(exc: BaseException) -> Optional[httpx.HTTPError]:
    """
    Find the httpx error behind an exception.

    The SDK transport runs in a task group, so failures arrive wrapped in
    (possibly nested) exception groups.
    """
    if isinstance(exc, httpx.HTTPError):
        return exc
    for inner in getattr(exc, "exceptions", None) or ():
        found = find_http_error(inner)
        if found is not None:
            return found
    return None


class RemoteToolSession:
    """
    Session with one remote MCP tool service.

    Provides methods for:
    - Opening and closing the session
    - Discovering the tools the service exposes
    - Executing a tool call

    Use as an async context manager, or call ``open``/``close``.
    """

    def __init__(
        self,
        server_url: str,
        account: Account,
        service: Optional[str] = None
    ) -> None:
        """
        Initialize a remote tool session.

        Args:
            server_url: MCP service endpoint
            account: Account used to authenticate requests
            service: Service key, recorded on discovered tools
        """
        self.server_url = server_url.rstrip("/")
        self.account = account
        self.service = service
        self._stack: Optional[AsyncExitStack] = None
        self._session: Optional[ClientSession] = None

    @property
    def is_open(self) -> bool:
        return self._session is not None

    async def open(self) -> "RemoteToolSession":
        """
        Connect and run the MCP initialization handshake.

        Raises:
            MCPConnectionError: If the service is unreachable
            MCPAuthError: If the service rejects the account
        """
        if self._session is not None:
            return self

        stack = AsyncExitStack()
        try:
            read, write, _ = await stack.enter_async_context(
                build_streamable_transport(self.server_url, self.account)
            )
            session = await stack.enter_async_context(ClientSession(read, write))
            await session.initialize()
        except BaseException as e:
            # A transport failure cancels the handshake and surfaces on close.
            failure: BaseException = e
            try:
                await stack.aclose()
            except Exception as close_error:
                failure = close_error
            error = self._translate_error(failure, "Session setup")
            if error is not None:
                raise error from failure
            if failure is e:
                raise
            raise failure from e

        self._stack = stack
        self._session = session
        logger.debug("MCP session opened", server=self.server_url)
        return self

    async def close(self) -> None:
        """Close the session and its transport."""
        if self._stack is not None:
            stack, self._stack, self._session = self._stack, None, None
            try:
                await stack.aclose()
            except Exception as e:
                error = self._translate_error(e, "Session close")
                if error is None:
                    raise
                raise error from e
            logger.debug("MCP session closed", server=self.server_url)

    async def __aenter__(self) -> "RemoteToolSession":
        """Async context manager entry."""
        return await self.open()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    def _require_session(self) -> ClientSession:
        if self._session is None:
            raise MCPClientError(f"Session with {self.server_url} is not open")
        return self._session

    async def list_tools(self) -> list[ToolDefinition]:
        """
        List the tools exposed by the service.

        Returns:
            Tool definitions in service order
        """
        session = self._require_session()
        result = await session.list_tools()

        return [
            ToolDefinition(
                name=tool.name,
                description=tool.description or "",
                input_schema=tool.inputSchema or {"type": "object", "properties": {}},
                service=self.service,
            )
            for tool in result.tools
        ]

    async def call_tool(
        self,
        tool_name: str,
        arguments: dict[str, Any]
    ) -> CallToolResult:
        """
        Execute a tool on the service.

        Args:
            tool_name: Tool name as listed by the service
            arguments: Tool arguments

        Returns:
            Raw MCP tool result
        """
        session = self._require_session()

        logger.debug("Calling tool", tool=tool_name, server=self.server_url)
        try:
            return await session.call_tool(tool_name, arguments)
        except Exception as e:
            error = self._translate_error(e, f"Tool call {tool_name}")
            if error is None:
                raise
            raise error from e

    def _translate_error(self, exc: BaseException, action: str) -> Optional[MCPClientError]:
        """Map a transport failure to a client error, or None if it is not one."""
        http_error = find_http_error(exc)
        if isinstance(http_error, httpx.HTTPStatusError):
            if http_error.response.status_code in (401, 403):
                return MCPAuthError(f"{self.server_url} rejected the account")
            return MCPClientError(f"{action} with {self.server_url} failed: {http_error}")
        if isinstance(http_error, httpx.TransportError):
            return MCPConnectionError(f"Cannot connect to {self.server_url}: {http_error}")
        return None
