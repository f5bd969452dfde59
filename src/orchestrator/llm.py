"""LLM Integration Layer using LlamaIndex.

Supports:
- The ATXP LLM gateway, or any other OpenAI-compatible endpoint
- A mock provider for tests

The LLM never talks to the tool services itself; it only returns tool
calls for the gateway to execute.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Optional

from shared.config import LLMSettings
from shared.logging import get_logger
from shared.models import ConversationMessage, LLMResponse

logger = get_logger(__name__)


class LLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    LLM Integration Rules:
    - LLM receives only the tools of the current catalog
    - LLM outputs either structured tool calls or a final text response
    """

    model: str = "unknown"

    @abstractmethod
    async def complete(
        self,
        messages: list[ConversationMessage],
        tools: Optional[list[dict[str, Any]]] = None
    ) -> LLMResponse:
        """
        Generate a completion from the LLM.

        Args:
            messages: Conversation so far
            tools: Available tools in OpenAI function format

        Returns:
            LLM response with content and/or tool calls
        """
        pass


class OpenAILikeProvider(LLMProvider):
    """OpenAI-compatible gateway provider using LlamaIndex."""

    def __init__(self, settings: LLMSettings) -> None:
        self.settings = settings
        self.model = settings.model
        self._llm = None

    def _get_llm(self):
        """Lazy initialization of LlamaIndex LLM."""
        if self._llm is None:
            from llama_index.llms.openai_like import OpenAILike

            kwargs: dict[str, Any] = {}
            if self.settings.temperature is not None:
                kwargs["temperature"] = self.settings.temperature
            if self.settings.max_tokens is not None:
                kwargs["max_tokens"] = self.settings.max_tokens

            self._llm = OpenAILike(
                model=self.settings.model,
                api_base=self.settings.api_base,
                api_key=self.settings.api_key,
                is_chat_model=True,
                is_function_calling_model=True,
                **kwargs,
            )
        return self._llm

    def _convert_messages(self, messages: list[ConversationMessage]) -> list:
        """Convert internal messages to LlamaIndex format."""
        from llama_index.core.llms import ChatMessage, MessageRole

        role_map = {
            "user": MessageRole.USER,
            "assistant": MessageRole.ASSISTANT,
            "system": MessageRole.SYSTEM,
            "tool": MessageRole.TOOL,
        }

        result = []
        for msg in messages:
            additional_kwargs: dict[str, Any] = {}
            if msg.tool_calls:
                additional_kwargs["tool_calls"] = msg.tool_calls
            if msg.tool_call_id:
                additional_kwargs["tool_call_id"] = msg.tool_call_id

            result.append(ChatMessage(
                role=role_map.get(msg.role, MessageRole.USER),
                content=msg.content,
                additional_kwargs=additional_kwargs,
            ))

        return result

    async def complete(
        self,
        messages: list[ConversationMessage],
        tools: Optional[list[dict[str, Any]]] = None
    ) -> LLMResponse:
        """Generate completion through the gateway."""
        llm = self._get_llm()
        chat_messages = self._convert_messages(messages)

        try:
            if tools:
                response = await llm.achat(chat_messages, tools=tools)
            else:
                response = await llm.achat(chat_messages)
        except Exception as e:
            logger.error("LLM completion failed", model=self.model, error=str(e))
            raise

        selections = llm.get_tool_calls_from_response(response, error_on_no_tool_call=False)
        tool_calls = [
            {
                "id": selection.tool_id,
                "type": "function",
                "function": {
                    "name": selection.tool_name,
                    "arguments": json.dumps(selection.tool_kwargs)
                }
            }
            for selection in selections
        ] or None

        usage = {
            key: value
            for key, value in (response.additional_kwargs or {}).items()
            if key.endswith("_tokens") and isinstance(value, int)
        }

        return LLMResponse(
            content=response.message.content if response.message else None,
            tool_calls=tool_calls,
            finish_reason="tool_calls" if tool_calls else "stop",
            usage=usage
        )


class MockLLMProvider(LLMProvider):
    """Mock LLM provider for testing without API calls."""

    def __init__(self, settings: Optional[LLMSettings] = None) -> None:
        self.settings = settings
        self.model = settings.model if settings else "mock"
        self.call_history: list[dict[str, Any]] = []
        self._next_responses: list[LLMResponse] = []

    def set_next_response(self, response: LLMResponse) -> None:
        """Queue a response to return."""
        self._next_responses.append(response)

    async def complete(
        self,
        messages: list[ConversationMessage],
        tools: Optional[list[dict[str, Any]]] = None
    ) -> LLMResponse:
        """Return mock response."""
        self.call_history.append({
            "messages": list(messages),
            "tools": tools,
        })

        if self._next_responses:
            return self._next_responses.pop(0)

        return LLMResponse(
            content="This is a mock response.",
            tool_calls=None,
            finish_reason="stop",
            usage={"prompt_tokens": 10, "completion_tokens": 5}
        )


def create_llm_provider(settings: LLMSettings) -> LLMProvider:
    """
    Factory function to create appropriate LLM provider.

    Supports:
    - openai_like: OpenAI-compatible gateway (the ATXP LLM gateway by default)
    - mock: Mock provider for testing

    Args:
        settings: LLM configuration settings

    Returns:
        Configured LLM provider

    Raises:
        ValueError: If provider is not supported
    """
    providers = {
        "openai_like": OpenAILikeProvider,
        "mock": MockLLMProvider,
    }

    provider_class = providers.get(settings.provider)
    if not provider_class:
        raise ValueError(
            f"Unsupported LLM provider: {settings.provider}. "
            f"Supported: {list(providers.keys())}"
        )

    logger.info("Creating LLM provider", provider=settings.provider, model=settings.model)
    return provider_class(settings)
