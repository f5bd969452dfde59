"""Exceptions raised by the MCP client layer."""


class MCPClientError(Exception):
    """Base exception for MCP Client errors."""
    pass


class MCPConnectionError(MCPClientError):
    """Connection to an MCP service failed."""
    pass


class MCPAuthError(MCPClientError):
    """The MCP service rejected the account credentials."""
    pass


class AccountError(MCPClientError):
    """Connection string cannot be turned into an account."""
    pass
