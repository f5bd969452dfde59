"""Base types for remote tool services.

Each service descriptor:
- Names one MCP endpoint and the tool it is expected to expose
- Maps a free-text prompt to that tool's argument shape
- Normalizes that tool's raw result
- Holds no state and makes no network calls
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from shared.models import ToolDefinition
from shared.schema import validate_schema


class Service(str, Enum):
    """Supported remote tool services."""
    IMAGE = "image"
    SEARCH = "search"


class UnknownServiceError(ValueError):
    """Service key is not part of the service table."""

    def __init__(self, key: Any) -> None:
        self.key = key
        known = ", ".join(s.value for s in Service)
        super().__init__(f"Unknown service: {key!r}. Known services: {known}")


@dataclass(frozen=True)
class ServiceDescriptor:
    """Static description of one remote tool service."""
    service: Service
    mcp_server: str
    tool_name: str
    description: str
    summary: str
    get_arguments: Callable[[str], dict[str, Any]]
    get_result: Callable[[Any], Any]

    @property
    def key(self) -> str:
        return self.service.value

    def check_tools(self, tools: Mapping[str, ToolDefinition]) -> list[str]:
        """
        Compare discovered tools with what this descriptor expects.

        Args:
            tools: Tools discovered on the service, keyed by name

        Returns:
            Human-readable problems; empty when the expected tool is present
            and the argument adapter output satisfies its input schema
        """
        tool = tools.get(self.tool_name)
        if tool is None:
            return [f"expected tool '{self.tool_name}' not exposed by {self.mcp_server}"]

        is_valid, errors = validate_schema(self.get_arguments("example"), tool.input_schema)
        if is_valid:
            return []
        return [f"{self.tool_name} arguments: {error}" for error in errors]


def get_field(value: Any, name: str) -> Any:
    if isinstance(value, Mapping):
        return value.get(name)
    return getattr(value, name, None)


def first_content_text(result: Any) -> Optional[str]:
    """
    Return the text of the first content item of a tool result.

    Accepts plain dicts as well as MCP SDK result objects.
    """
    content = get_field(result, "content")
    if not isinstance(content, (list, tuple)) or not content:
        return None
    text = get_field(content[0], "text")
    return text or None
