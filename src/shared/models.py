"""Core data models for the ATXP prompt CLI.

This module defines the structures passed between the tool sessions, the
LLM layer and the output printer.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class ToolDefinition(BaseModel):
    """
    A tool discovered on a remote MCP service.

    The name is the key the model uses to call the tool; it is not
    namespaced per service.
    """
    name: str = Field(..., description="Tool name as exposed by the service")
    description: str = Field(default="", description="Description shown to the LLM")
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        description="JSON Schema for the tool arguments"
    )
    service: Optional[str] = Field(default=None, description="Service the tool was loaded from")

    def to_openai_tool(self) -> dict[str, Any]:
        """Return the tool in OpenAI function format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            }
        }


class ConversationMessage(BaseModel):
    """A single message sent to the LLM."""
    role: str = Field(..., description="Message role: user, assistant, system, tool")
    content: str
    tool_calls: Optional[list[dict[str, Any]]] = None
    tool_call_id: Optional[str] = None


class LLMResponse(BaseModel):
    """Response from the LLM layer."""
    content: Optional[str] = None
    tool_calls: Optional[list[dict[str, Any]]] = None
    finish_reason: str = "stop"
    usage: dict[str, int] = Field(default_factory=dict)


class ToolCallTrace(BaseModel):
    """A tool call requested by the model."""
    id: str
    tool_name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class ToolResultTrace(BaseModel):
    """Outcome of executing one tool call against its service."""
    id: str
    tool_name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    service: Optional[str] = None
    output: Any = None
    is_error: bool = False
    error: Optional[str] = None


class GenerationStep(BaseModel):
    """One model round-trip plus the tool calls it triggered."""
    index: int
    text: str = ""
    finish_reason: str = "stop"
    tool_calls: list[ToolCallTrace] = Field(default_factory=list)
    tool_results: list[ToolResultTrace] = Field(default_factory=list)
    usage: dict[str, int] = Field(default_factory=dict)


class GenerationResult(BaseModel):
    """
    Full response of a generation run.

    Top-level text, finish reason and tool traces describe the final step;
    usage is summed over all steps.
    """
    model: str
    text: str = ""
    finish_reason: str = "stop"
    tool_calls: list[ToolCallTrace] = Field(default_factory=list)
    tool_results: list[ToolResultTrace] = Field(default_factory=list)
    steps: list[GenerationStep] = Field(default_factory=list)
    usage: dict[str, int] = Field(default_factory=dict)
