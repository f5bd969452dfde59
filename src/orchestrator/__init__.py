"""Orchestrator / AI Gateway.

Validates the command line, loads the service tool catalogs, runs the
LLM via LlamaIndex with those tools attached and prints the result.
"""

from orchestrator.llm import LLMProvider, create_llm_provider
from orchestrator.gateway import AIGateway

__all__ = [
    "LLMProvider",
    "create_llm_provider",
    "AIGateway",
]
