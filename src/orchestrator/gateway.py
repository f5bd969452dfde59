"""AI Gateway - one generation run over a merged tool catalog.

The gateway coordinates:
- The fixed two-message conversation (persona + user prompt)
- LLM interactions
- Execution of the tool calls the LLM requests
- Collection of the full response object

The user prompt is passed to the LLM verbatim and the LLM may call any tool
in the catalog with arguments of its choosing. Tool calls therefore run
with the account's full spending authority on every attached service.
"""

import json
from typing import Any, Optional

from mcp.shared.exceptions import McpError

from shared.logging import get_logger
from shared.models import (
    ConversationMessage,
    GenerationResult,
    GenerationStep,
    ToolCallTrace,
    ToolResultTrace,
)
from mcp_client.discovery import ToolCatalog
from mcp_client.errors import MCPClientError
from orchestrator.llm import LLMProvider

logger = get_logger(__name__)


DEFAULT_SYSTEM_PROMPT = """AI assistant is a brand new, powerful, human-like artificial intelligence.
The traits of AI include expert knowledge, helpfulness, cleverness, and articulateness.
AI is a well-behaved and well-mannered individual.
AI is always friendly, kind, and inspiring, and he is eager to provide vivid and thoughtful responses to the user.
AI has the sum of all knowledge in their brain, and is able to accurately answer nearly any question about any topic in conversation.
AI assistant prefers using the tools provided to it to answer questions.
"""


class AIGateway:
    """
    AI Gateway - runs one prompt against the LLM with remote tools attached.

    Each step calls the LLM once. Tool calls returned by the LLM are executed
    against the session that exposed the tool, and their results are added
    to the conversation. A run ends when the LLM answers without tool calls
    or when ``max_steps`` LLM calls have been made. With the default of one
    step, tool calls are executed and returned but not fed back.
    """

    def __init__(
        self,
        llm_provider: LLMProvider,
        system_prompt: Optional[str] = None,
        max_steps: int = 1
    ) -> None:
        """
        Initialize AI Gateway.

        Args:
            llm_provider: LLM provider for completions
            system_prompt: Custom system prompt
            max_steps: Maximum LLM calls per run
        """
        if max_steps < 1:
            raise ValueError("max_steps must be at least 1")

        self.llm = llm_provider
        self.system_prompt = system_prompt or DEFAULT_SYSTEM_PROMPT
        self.max_steps = max_steps

    def build_messages(self, prompt: str) -> list[ConversationMessage]:
        """Build the initial conversation for a prompt."""
        return [
            ConversationMessage(role="system", content=self.system_prompt),
            ConversationMessage(role="user", content=prompt),
        ]

    async def generate(self, prompt: str, catalog: ToolCatalog) -> GenerationResult:
        """
        Generate a response for a prompt.

        Args:
            prompt: User prompt, used verbatim
            catalog: Tools the LLM may call

        Returns:
            The full generation result, including tool call traces

        Raises:
            Exception: Whatever the LLM provider raises
        """
        messages = self.build_messages(prompt)
        tools = catalog.to_openai_tools() or None
        steps: list[GenerationStep] = []

        logger.info("Generating", model=self.llm.model, tool_count=len(catalog))

        while len(steps) < self.max_steps:
            llm_response = await self.llm.complete(messages=messages, tools=tools)
            step = GenerationStep(
                index=len(steps),
                text=llm_response.content or "",
                finish_reason=llm_response.finish_reason,
                usage=llm_response.usage
            )
            steps.append(step)

            if not llm_response.tool_calls:
                break

            logger.debug(
                "LLM requested tool calls",
                count=len(llm_response.tool_calls),
                step=step.index
            )

            messages.append(ConversationMessage(
                role="assistant",
                content=llm_response.content or "",
                tool_calls=llm_response.tool_calls
            ))

            for tool_call in llm_response.tool_calls:
                call, result = await self._execute_tool_call(tool_call, catalog)
                step.tool_calls.append(call)
                step.tool_results.append(result)
                messages.append(ConversationMessage(
                    role="tool",
                    content=self._format_tool_result(result),
                    tool_call_id=result.id
                ))

        return self._build_result(steps)

    def _parse_tool_call(self, tool_call: dict[str, Any]) -> tuple[ToolCallTrace, Optional[str]]:
        """Parse a raw tool call; returns the trace and an error, if any."""
        function = tool_call.get("function", {})
        call_id = tool_call.get("id") or ""
        tool_name = function.get("name", "")

        args = function.get("arguments") or "{}"
        try:
            arguments = json.loads(args) if isinstance(args, str) else dict(args)
        except (json.JSONDecodeError, TypeError, ValueError):
            return ToolCallTrace(id=call_id, tool_name=tool_name), "Invalid tool call arguments"

        if not isinstance(arguments, dict):
            return ToolCallTrace(id=call_id, tool_name=tool_name), "Tool call arguments must be an object"

        return ToolCallTrace(id=call_id, tool_name=tool_name, arguments=arguments), None

    async def _execute_tool_call(
        self,
        tool_call: dict[str, Any],
        catalog: ToolCatalog
    ) -> tuple[ToolCallTrace, ToolResultTrace]:
        """Execute a single tool call against the session that exposed it."""
        call, error = self._parse_tool_call(tool_call)
        result = ToolResultTrace(id=call.id, tool_name=call.tool_name, arguments=call.arguments)

        if error:
            result.is_error = True
            result.error = error
            return call, result

        tool = catalog.get(call.tool_name)
        if tool is None:
            result.is_error = True
            result.error = f"Unknown tool: {call.tool_name}"
            logger.warning("LLM called unknown tool", tool=call.tool_name)
            return call, result

        result.service = tool.definition.service
        logger.info("Executing tool", tool=call.tool_name, service=result.service)

        try:
            raw = await tool.session.call_tool(call.tool_name, call.arguments)
        except (MCPClientError, McpError) as e:
            logger.warning("Tool execution failed", tool=call.tool_name, error=str(e))
            result.is_error = True
            result.error = str(e)
            return call, result

        result.output = raw.model_dump(mode="json", exclude_none=True)
        result.is_error = bool(raw.isError)

        logger.info("Tool executed", tool=call.tool_name, is_error=result.is_error)
        return call, result

    def _format_tool_result(self, result: ToolResultTrace) -> str:
        """Format tool result for the conversation."""
        if result.error:
            return f"Tool error: {result.error}"

        output = result.output or {}
        texts = [
            item["text"]
            for item in output.get("content", [])
            if isinstance(item, dict) and item.get("type") == "text"
        ]
        if texts:
            return "\n".join(texts)
        return json.dumps(output, default=str)

    def _build_result(self, steps: list[GenerationStep]) -> GenerationResult:
        """Assemble the response object from the recorded steps."""
        final = steps[-1]

        usage: dict[str, int] = {}
        for step in steps:
            for key, value in step.usage.items():
                usage[key] = usage.get(key, 0) + value

        return GenerationResult(
            model=self.llm.model,
            text=final.text,
            finish_reason=final.finish_reason,
            tool_calls=list(final.tool_calls),
            tool_results=list(final.tool_results),
            steps=steps,
            usage=usage
        )
