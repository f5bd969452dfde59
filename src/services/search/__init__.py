"""Search service - web search over MCP."""

from typing import Any

from services.base import Service, ServiceDescriptor, get_field


def get_arguments(prompt: str) -> dict[str, Any]:
    """Map a prompt to the search tool arguments."""
    return {"query": prompt}


def get_result(result: Any) -> Any:
    """Return the text of the first content item.

    Raises:
        ValueError: If the result carries no content
    """
    content = get_field(result, "content")
    if not content:
        raise ValueError("Search result has no content")
    return get_field(content[0], "text")


SEARCH_SERVICE = ServiceDescriptor(
    service=Service.SEARCH,
    mcp_server="https://search.mcp.atxp.ai",
    tool_name="search_search",
    description="search",
    summary="Search for information",
    get_arguments=get_arguments,
    get_result=get_result,
)
