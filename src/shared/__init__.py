"""Shared utilities and models for the ATXP prompt CLI."""

from shared.models import (
    ToolDefinition,
    ConversationMessage,
    LLMResponse,
    ToolCallTrace,
    ToolResultTrace,
    GenerationStep,
    GenerationResult,
)
from shared.config import LLMSettings, Settings, get_settings
from shared.logging import get_logger, setup_logging

__all__ = [
    "ToolDefinition",
    "ConversationMessage",
    "LLMResponse",
    "ToolCallTrace",
    "ToolResultTrace",
    "GenerationStep",
    "GenerationResult",
    "LLMSettings",
    "Settings",
    "get_settings",
    "get_logger",
    "setup_logging",
]
