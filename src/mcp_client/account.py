"""ATXP account derived from a connection string.

A connection string looks like::

    https://accounts.atxp.ai?connection_token=<token>&account_id=<id>

The same string is used as the model gateway API key.
"""

from typing import Generator

import httpx
from pydantic import BaseModel, ConfigDict, Field

from mcp_client.errors import AccountError


class Account(BaseModel):
    """Identity used to authenticate every remote tool session."""
    origin: str
    account_id: str
    connection_token: str = Field(repr=False)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_connection_string(cls, connection_string: str) -> "Account":
        """
        Parse a connection string.

        Raises:
            AccountError: If the string is not an absolute URL or lacks the
                connection token or account id
        """
        try:
            url = httpx.URL(connection_string)
        except httpx.InvalidURL as e:
            raise AccountError(f"Invalid connection string: {e}") from None

        if not url.scheme or not url.host:
            raise AccountError("Connection string must be an absolute URL")

        token = url.params.get("connection_token")
        if not token:
            raise AccountError("Connection string is missing connection_token")

        account_id = url.params.get("account_id")
        if not account_id:
            raise AccountError("Connection string is missing account_id")

        origin = f"{url.scheme}://{url.netloc.decode('ascii')}"
        return cls(origin=origin, account_id=account_id, connection_token=token)


class AccountAuth(httpx.Auth):
    """httpx auth flow presenting the account's connection token."""

    def __init__(self, account: Account) -> None:
        self.account = account

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = f"Bearer {self.account.connection_token}"
        yield request
