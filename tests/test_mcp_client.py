"""Tests for MCP client components."""

import asyncio
import threading
from contextlib import AsyncExitStack, asynccontextmanager
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from unittest.mock import AsyncMock

import anyio
import httpx
import pytest
from mcp.types import CallToolResult, ListToolsResult, TextContent, Tool

from shared.models import ToolDefinition


VALID_CONNECTION = "https://accounts.atxp.ai?connection_token=tok_123&account_id=acct_456"


def make_account():
    from mcp_client.account import Account

    return Account.from_connection_string(VALID_CONNECTION)


class TestAccount:
    """Tests for connection string parsing."""

    def test_parse_connection_string(self):
        """Test parsing a complete connection string."""
        account = make_account()

        assert account.origin == "https://accounts.atxp.ai"
        assert account.account_id == "acct_456"
        assert account.connection_token == "tok_123"

    def test_missing_token_raises(self):
        """Test that a connection string without a token is rejected."""
        from mcp_client.account import Account
        from mcp_client.errors import AccountError

        with pytest.raises(AccountError, match="connection_token"):
            Account.from_connection_string("https://accounts.atxp.ai?account_id=acct_456")

    def test_missing_account_id_raises(self):
        """Test that a connection string without an account id is rejected."""
        from mcp_client.account import Account
        from mcp_client.errors import AccountError

        with pytest.raises(AccountError, match="account_id"):
            Account.from_connection_string("https://accounts.atxp.ai?connection_token=tok_123")

    def test_relative_string_raises(self):
        """Test that non-URL strings are rejected."""
        from mcp_client.account import Account
        from mcp_client.errors import AccountError

        with pytest.raises(AccountError, match="absolute URL"):
            Account.from_connection_string("not-a-connection-string")

    def test_token_hidden_from_repr(self):
        """Test that the token never appears in the account repr."""
        account = make_account()

        assert "tok_123" not in repr(account)
        assert "acct_456" in repr(account)

    def test_account_is_frozen(self):
        """Test that accounts cannot be modified."""
        from pydantic import ValidationError

        account = make_account()

        with pytest.raises(ValidationError):
            account.account_id = "other"

    def test_auth_flow_sets_bearer_token(self):
        """Test that requests carry the connection token."""
        from mcp_client.account import AccountAuth

        request = httpx.Request("POST", "https://image.mcp.atxp.ai")
        flow = AccountAuth(make_account()).auth_flow(request)

        authed = next(flow)

        assert authed.headers["Authorization"] == "Bearer tok_123"


class FakeClientSession:
    """Stand-in for mcp.ClientSession."""

    instances: list["FakeClientSession"] = []

    def __init__(self, read, write):
        self.read = read
        self.write = write
        self.initialize = AsyncMock()
        self.list_tools = AsyncMock(return_value=ListToolsResult(tools=[
            Tool(name="search_search", description=None, inputSchema={"type": "object", "properties": {}}),
        ]))
        self.call_tool = AsyncMock(return_value=CallToolResult(
            content=[TextContent(type="text", text="results")]
        ))
        self.exited = False
        FakeClientSession.instances.append(self)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.exited = True


class TestRemoteToolSession:
    """Tests for RemoteToolSession."""

    def setup_method(self):
        FakeClientSession.instances = []

    @pytest.fixture
    def transport(self, monkeypatch):
        """Patch the transport and MCP session classes."""
        calls = []

        @asynccontextmanager
        async def fake_transport(server_url, account):
            calls.append((server_url, account))
            yield "read", "write", lambda: "session-id"

        monkeypatch.setattr("mcp_client.client.build_streamable_transport", fake_transport)
        monkeypatch.setattr("mcp_client.client.ClientSession", FakeClientSession)
        return calls

    @pytest.mark.asyncio
    async def test_open_initializes_session(self, transport):
        """Test that opening runs the MCP handshake."""
        from mcp_client.client import RemoteToolSession

        account = make_account()
        session = RemoteToolSession("https://search.mcp.atxp.ai/", account, service="search")

        async with session:
            assert session.is_open
            assert transport == [("https://search.mcp.atxp.ai", account)]
            FakeClientSession.instances[0].initialize.assert_awaited_once()

        assert not session.is_open
        assert FakeClientSession.instances[0].exited

    @pytest.mark.asyncio
    async def test_list_tools(self, transport):
        """Test converting SDK tools to tool definitions."""
        from mcp_client.client import RemoteToolSession

        async with RemoteToolSession("https://search.mcp.atxp.ai", make_account(), service="search") as session:
            tools = await session.list_tools()

        assert len(tools) == 1
        assert tools[0].name == "search_search"
        assert tools[0].description == ""
        assert tools[0].service == "search"

    @pytest.mark.asyncio
    async def test_call_tool(self, transport):
        """Test executing a tool on the session."""
        from mcp_client.client import RemoteToolSession

        async with RemoteToolSession("https://search.mcp.atxp.ai", make_account()) as session:
            result = await session.call_tool("search_search", {"query": "AI"})

        FakeClientSession.instances[0].call_tool.assert_awaited_once_with("search_search", {"query": "AI"})
        assert result.content[0].text == "results"

    @pytest.mark.asyncio
    async def test_closed_session_raises(self):
        """Test that calls require an open session."""
        from mcp_client.client import RemoteToolSession
        from mcp_client.errors import MCPClientError

        session = RemoteToolSession("https://search.mcp.atxp.ai", make_account())

        with pytest.raises(MCPClientError, match="not open"):
            await session.list_tools()

    @pytest.mark.asyncio
    async def test_connect_error_is_wrapped(self, monkeypatch):
        """Test that connection failures raise MCPConnectionError."""
        from mcp_client.client import RemoteToolSession
        from mcp_client.errors import MCPConnectionError

        @asynccontextmanager
        async def failing_transport(server_url, account):
            raise httpx.ConnectError("connection refused")
            yield

        monkeypatch.setattr("mcp_client.client.build_streamable_transport", failing_transport)

        session = RemoteToolSession("https://image.mcp.atxp.ai", make_account())

        with pytest.raises(MCPConnectionError, match="Cannot connect"):
            await session.open()
        assert not session.is_open

    @pytest.mark.asyncio
    async def test_unauthorized_is_wrapped(self, monkeypatch):
        """Test that 401 responses raise MCPAuthError."""
        from mcp_client.client import RemoteToolSession
        from mcp_client.errors import MCPAuthError

        request = httpx.Request("POST", "https://image.mcp.atxp.ai")
        response = httpx.Response(401, request=request)

        @asynccontextmanager
        async def rejecting_transport(server_url, account):
            raise httpx.HTTPStatusError("unauthorized", request=request, response=response)
            yield

        monkeypatch.setattr("mcp_client.client.build_streamable_transport", rejecting_transport)

        with pytest.raises(MCPAuthError):
            await RemoteToolSession("https://image.mcp.atxp.ai", make_account()).open()

    @pytest.mark.asyncio
    async def test_grouped_connect_error_is_wrapped(self, monkeypatch):
        """Test that connection failures raised from the transport task group are mapped."""
        from mcp_client.client import RemoteToolSession
        from mcp_client.errors import MCPConnectionError

        @asynccontextmanager
        async def grouped_transport(server_url, account):
            async with anyio.create_task_group() as tg:
                tg.start_soon(raise_later, httpx.ConnectError("All connection attempts failed"))
            yield

        monkeypatch.setattr("mcp_client.client.build_streamable_transport", grouped_transport)

        session = RemoteToolSession("https://image.mcp.atxp.ai", make_account())

        with pytest.raises(MCPConnectionError, match="All connection attempts failed"):
            await session.open()
        assert not session.is_open

    @pytest.mark.asyncio
    async def test_grouped_call_failure_is_wrapped(self, transport):
        """Test that HTTP failures during a tool call raise client errors."""
        from mcp_client.client import RemoteToolSession
        from mcp_client.errors import MCPClientError

        request = httpx.Request("POST", "https://search.mcp.atxp.ai")
        response = httpx.Response(502, request=request)

        async def failing_call(name, arguments):
            async with anyio.create_task_group() as tg:
                tg.start_soon(
                    raise_later,
                    httpx.HTTPStatusError("bad gateway", request=request, response=response)
                )

        async with RemoteToolSession("https://search.mcp.atxp.ai", make_account()) as session:
            FakeClientSession.instances[0].call_tool.side_effect = failing_call

            with pytest.raises(MCPClientError, match="Tool call search_search"):
                await session.call_tool("search_search", {"query": "AI"})

    def test_find_http_error_in_nested_groups(self):
        """Test locating the httpx error inside nested groups."""
        from mcp_client.client import find_http_error

        error = httpx.ConnectError("refused")

        class Group(Exception):
            def __init__(self, exceptions):
                super().__init__("group")
                self.exceptions = exceptions

        assert find_http_error(Group([ValueError("x"), Group([error])])) is error
        assert find_http_error(ValueError("x")) is None


async def raise_later(error):
    await anyio.sleep(0)
    raise error


class RejectingHandler(BaseHTTPRequestHandler):
    """Answers every request with 401."""

    def _reject(self):
        length = int(self.headers.get("Content-Length") or 0)
        self.rfile.read(length)
        self.send_response(401)
        self.send_header("Content-Length", "0")
        self.end_headers()

    do_GET = do_POST = do_DELETE = _reject

    def log_message(self, format, *args):
        pass


class TestRemoteToolSessionOverHTTP:
    """Tests for RemoteToolSession against local HTTP endpoints."""

    @pytest.fixture
    def rejecting_server(self):
        server = ThreadingHTTPServer(("127.0.0.1", 0), RejectingHandler)
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        yield f"http://127.0.0.1:{server.server_port}/mcp"
        server.shutdown()
        server.server_close()

    @pytest.mark.asyncio
    async def test_unreachable_service(self):
        """Test that a closed port raises MCPConnectionError."""
        from mcp_client.client import RemoteToolSession
        from mcp_client.errors import MCPConnectionError

        session = RemoteToolSession("http://127.0.0.1:1/mcp", make_account())

        with pytest.raises(MCPConnectionError, match="Cannot connect"):
            await asyncio.wait_for(session.open(), timeout=30)
        assert not session.is_open

    @pytest.mark.asyncio
    async def test_rejected_account(self, rejecting_server):
        """Test that a 401 from the service raises MCPAuthError."""
        from mcp_client.client import RemoteToolSession
        from mcp_client.errors import MCPAuthError

        session = RemoteToolSession(rejecting_server, make_account())

        with pytest.raises(MCPAuthError, match="rejected the account"):
            await asyncio.wait_for(session.open(), timeout=30)
        assert not session.is_open


def catalog_tool(name, service, session=None):
    from mcp_client.discovery import CatalogTool

    return CatalogTool(
        definition=ToolDefinition(name=name, description=f"{service} {name}", service=service),
        session=session,
    )


class TestToolCatalog:
    """Tests for ToolCatalog."""

    def test_merge_union(self):
        """Test merging disjoint tool sets."""
        from mcp_client.discovery import ToolCatalog

        catalog = ToolCatalog()
        catalog.merge({"image_create_image": catalog_tool("image_create_image", "image")})
        catalog.merge({"search_search": catalog_tool("search_search", "search")})

        assert catalog.names() == ["image_create_image", "search_search"]
        assert len(catalog) == 2
        assert "search_search" in catalog

    def test_later_service_wins(self):
        """Test that a later tool with the same name overwrites the earlier one."""
        from mcp_client.discovery import ToolCatalog

        catalog = ToolCatalog()
        catalog.merge({"shared": catalog_tool("shared", "image"), "a": catalog_tool("a", "image")})
        catalog.merge({"shared": catalog_tool("shared", "search")})

        assert catalog.names() == ["shared", "a"]
        assert catalog.get("shared").definition.service == "search"

    def test_to_openai_tools(self):
        """Test exporting tools in OpenAI function format."""
        from mcp_client.discovery import ToolCatalog

        catalog = ToolCatalog()
        catalog.merge({"search_search": catalog_tool("search_search", "search")})

        tools = catalog.to_openai_tools()

        assert tools == [{
            "type": "function",
            "function": {
                "name": "search_search",
                "description": "search search_search",
                "parameters": {"type": "object", "properties": {}},
            },
        }]

    def test_get_missing(self):
        """Test looking up a tool that is not present."""
        from mcp_client.discovery import ToolCatalog

        assert ToolCatalog().get("nope") is None


class TestLoader:
    """Tests for per-service and merged catalog loading."""

    @pytest.mark.asyncio
    async def test_load_tools_for_service(self, session_factory, default_tools):
        """Test loading one service's tools."""
        from mcp_client.discovery import load_tools_for_service

        factory, sessions = session_factory(default_tools)

        async with AsyncExitStack() as stack:
            tools = await load_tools_for_service(make_account(), "image", stack, factory)

            assert list(tools) == ["image_create_image"]
            assert tools["image_create_image"].session is sessions[0]
            assert sessions[0].server_url == "https://image.mcp.atxp.ai"
            assert sessions[0].service == "image"
            assert not sessions[0].closed

        assert sessions[0].closed

    @pytest.mark.asyncio
    async def test_unknown_service_rejected(self, session_factory, default_tools):
        """Test that unknown service keys fail before any session is opened."""
        from mcp_client.discovery import load_tools_for_service
        from services import UnknownServiceError

        factory, sessions = session_factory(default_tools)

        async with AsyncExitStack() as stack:
            with pytest.raises(UnknownServiceError):
                await load_tools_for_service(make_account(), "video", stack, factory)

        assert sessions == []

    @pytest.mark.asyncio
    async def test_load_catalog_order_and_override(self, session_factory):
        """Test merged catalog order and that search wins on collisions."""
        from mcp_client.discovery import load_catalog
        from services import DEFAULT_SERVICES

        schema = {"type": "object", "properties": {}}
        factory, sessions = session_factory({
            "https://image.mcp.atxp.ai": [("image_create_image", schema), ("describe", schema)],
            "https://search.mcp.atxp.ai": [("search_search", schema), ("describe", schema)],
        })

        async with AsyncExitStack() as stack:
            catalog = await load_catalog(make_account(), DEFAULT_SERVICES, stack, factory)

        assert set(catalog.names()) == {"image_create_image", "describe", "search_search"}
        assert catalog.get("describe").definition.service == "search"
        assert catalog.get("describe").session is sessions[1]
        assert [s.service for s in sessions] == ["image", "search"]

    @pytest.mark.asyncio
    async def test_load_catalog_fails_fast(self, session_factory, default_tools):
        """Test that one failing service aborts the load and closes open sessions."""
        from mcp_client.discovery import load_catalog
        from mcp_client.errors import MCPConnectionError
        from services import DEFAULT_SERVICES

        factory, sessions = session_factory(
            default_tools,
            failures={"https://search.mcp.atxp.ai": MCPConnectionError("down")}
        )

        with pytest.raises(MCPConnectionError):
            async with AsyncExitStack() as stack:
                await load_catalog(make_account(), DEFAULT_SERVICES, stack, factory)

        assert sessions[0].closed
        assert not sessions[1].opened
