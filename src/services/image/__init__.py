"""Image service - image generation over MCP."""

import json
from typing import Any, Optional

from services.base import Service, ServiceDescriptor, first_content_text


def get_arguments(prompt: str) -> dict[str, Any]:
    """Map a prompt to the image tool arguments."""
    return {"prompt": prompt}


def get_result(result: Any) -> Optional[Any]:
    """
    Extract the generated image URL from a raw tool result.

    The tool answers with a JSON document in its first text item. Text that
    is not JSON is returned unchanged; results without text give None.
    """
    text = first_content_text(result)
    if text is None:
        return None

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return text

    if isinstance(parsed, dict):
        return parsed.get("url")
    return None


IMAGE_SERVICE = ServiceDescriptor(
    service=Service.IMAGE,
    mcp_server="https://image.mcp.atxp.ai",
    tool_name="image_create_image",
    description="image generation",
    summary="Generate images",
    get_arguments=get_arguments,
    get_result=get_result,
)
