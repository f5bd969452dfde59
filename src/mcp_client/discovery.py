"""Tool discovery across remote tool services.

Loads the tool catalog of each service and merges them into one catalog
the LLM can call into.
"""

from contextlib import AsyncExitStack
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional

from shared.logging import get_logger
from shared.models import ToolDefinition
from mcp_client.account import Account
from mcp_client.client import RemoteToolSession
from services import Service, get_service

logger = get_logger(__name__)

SessionFactory = Callable[..., RemoteToolSession]


@dataclass(frozen=True)
class CatalogTool:
    """A discovered tool and the open session that can execute it."""
    definition: ToolDefinition
    session: RemoteToolSession

    @property
    def name(self) -> str:
        return self.definition.name


class ToolCatalog:
    """
    Tools available to one generation run, keyed by tool name.

    Insertion order follows the order services were merged in. Merging a
    tool whose name is already present replaces the earlier entry.
    """

    def __init__(self) -> None:
        self._tools: dict[str, CatalogTool] = {}

    def merge(self, tools: Mapping[str, CatalogTool]) -> None:
        """Shallow-merge tools into the catalog; later entries win."""
        for name, tool in tools.items():
            previous = self._tools.get(name)
            if previous is not None:
                logger.debug(
                    "Tool overridden",
                    tool=name,
                    previous_service=previous.definition.service,
                    service=tool.definition.service
                )
            self._tools[name] = tool

    def get(self, name: str) -> Optional[CatalogTool]:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def to_openai_tools(self) -> list[dict[str, Any]]:
        """Return all tools in OpenAI function format."""
        return [tool.definition.to_openai_tool() for tool in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[str]:
        return iter(self._tools)

    def __len__(self) -> int:
        return len(self._tools)


async def load_tools_for_service(
    account: Account,
    service: Service | str,
    stack: AsyncExitStack,
    session_factory: SessionFactory = RemoteToolSession
) -> dict[str, CatalogTool]:
    """
    Open a session with one service and collect its tools.

    The session is registered on ``stack`` and stays open until the stack
    is closed, so the tools remain callable during generation.

    Args:
        account: Account used to authenticate the session
        service: Service key
        stack: Exit stack owning the session
        session_factory: Builds the session; defaults to RemoteToolSession

    Returns:
        Catalog entries for the service keyed by tool name

    Raises:
        UnknownServiceError: If the service key is not known
    """
    descriptor = get_service(service)

    session = session_factory(descriptor.mcp_server, account, service=descriptor.key)
    await stack.enter_async_context(session)

    definitions = await session.list_tools()
    tools = {
        definition.name: CatalogTool(definition=definition, session=session)
        for definition in definitions
    }

    for problem in descriptor.check_tools({name: t.definition for name, t in tools.items()}):
        logger.warning("Service catalog mismatch", service=descriptor.key, problem=problem)

    logger.info(
        "Service tools loaded",
        service=descriptor.key,
        server=descriptor.mcp_server,
        tool_count=len(tools)
    )
    return tools


async def load_catalog(
    account: Account,
    services: Iterable[Service | str],
    stack: AsyncExitStack,
    session_factory: SessionFactory = RemoteToolSession
) -> ToolCatalog:
    """
    Load and merge the tools of several services, in order.

    Any failure aborts the whole load.
    """
    catalog = ToolCatalog()
    for service in services:
        tools = await load_tools_for_service(account, service, stack, session_factory)
        catalog.merge(tools)

    logger.info("Tool catalog ready", tool_count=len(catalog), tools=catalog.names())
    return catalog
