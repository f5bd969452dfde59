"""MCP Client - Remote tool sessions and tool discovery.

The MCP Client opens one authenticated session per tool service,
discovers the tools each service exposes and executes tool calls.
"""

from mcp_client.account import Account, AccountAuth
from mcp_client.client import RemoteToolSession, build_streamable_transport
from mcp_client.discovery import CatalogTool, ToolCatalog, load_catalog, load_tools_for_service
from mcp_client.errors import AccountError, MCPAuthError, MCPClientError, MCPConnectionError

__all__ = [
    "Account",
    "AccountAuth",
    "AccountError",
    "MCPAuthError",
    "MCPClientError",
    "MCPConnectionError",
    "RemoteToolSession",
    "build_streamable_transport",
    "CatalogTool",
    "ToolCatalog",
    "load_catalog",
    "load_tools_for_service",
]
