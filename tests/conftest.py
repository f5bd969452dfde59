"""Shared fixtures for the test suite."""

import pytest
import structlog
from mcp.types import CallToolResult, TextContent

from shared.config import get_settings
from shared.models import ToolDefinition


VALID_CONNECTION = "https://accounts.atxp.ai?connection_token=tok_123&account_id=acct_456"

IMAGE_TOOL_SCHEMA = {
    "type": "object",
    "properties": {"prompt": {"type": "string"}},
    "required": ["prompt"],
}

SEARCH_TOOL_SCHEMA = {
    "type": "object",
    "properties": {"query": {"type": "string"}},
    "required": ["query"],
}


@pytest.fixture(autouse=True)
def reset_global_state():
    """Reset logging configuration, cached settings and log context."""
    get_settings.cache_clear()
    structlog.contextvars.clear_contextvars()
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    get_settings.cache_clear()


class FakeToolSession:
    """In-memory stand-in for RemoteToolSession."""

    def __init__(self, server_url, account, service=None, tools=None, fail_open=None, results=None):
        self.server_url = server_url
        self.account = account
        self.service = service
        self.tools = tools or []
        self.fail_open = fail_open
        self.results = results or {}
        self.calls: list[tuple[str, dict]] = []
        self.opened = False
        self.closed = False

    async def __aenter__(self):
        if self.fail_open is not None:
            raise self.fail_open
        self.opened = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.closed = True

    async def list_tools(self):
        return [
            ToolDefinition(name=name, description=f"{name} tool", input_schema=schema, service=self.service)
            for name, schema in self.tools
        ]

    async def call_tool(self, tool_name, arguments):
        self.calls.append((tool_name, arguments))
        outcome = self.results.get(tool_name, "ok")
        if isinstance(outcome, Exception):
            raise outcome
        return CallToolResult(content=[TextContent(type="text", text=outcome)])


@pytest.fixture
def session_factory():
    """
    Build a session factory serving fixed tools per endpoint.

    Returns a ``make(tools_by_server, failures=None, results=None)`` function
    that yields ``(factory, sessions)``; ``sessions`` lists every session
    created, in order.
    """
    def make(tools_by_server, failures=None, results=None):
        sessions: list[FakeToolSession] = []
        failures = failures or {}

        def factory(server_url, account, service=None):
            session = FakeToolSession(
                server_url,
                account,
                service=service,
                tools=tools_by_server.get(server_url, []),
                fail_open=failures.get(server_url),
                results=results,
            )
            sessions.append(session)
            return session

        return factory, sessions

    return make


@pytest.fixture
def default_tools():
    """Tools exposed by the image and search services."""
    return {
        "https://image.mcp.atxp.ai": [("image_create_image", IMAGE_TOOL_SCHEMA)],
        "https://search.mcp.atxp.ai": [("search_search", SEARCH_TOOL_SCHEMA)],
    }
