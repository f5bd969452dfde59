"""Orchestrator - command-line entry point.

Runs one prompt end to end:
- Validate the prompt and the ATXP connection string
- Build the account and the LLM gateway client
- Open the image and search tool sessions and merge their tools
- Generate a response and print it as JSON on stdout
"""

import asyncio
import sys
import uuid
from contextlib import AsyncExitStack
from typing import Optional, Sequence

from pydantic import ValidationError

from shared.config import Settings, get_settings
from shared.logging import bind_context, clear_context, get_logger, setup_logging
from shared.models import GenerationResult
from mcp_client.account import Account
from mcp_client.client import RemoteToolSession
from mcp_client.discovery import SessionFactory, load_catalog
from orchestrator.gateway import AIGateway
from orchestrator.llm import LLMProvider, create_llm_provider
from orchestrator.validation import CLIError, validate_args, validate_environment
from services import DEFAULT_SERVICES

logger = get_logger(__name__)


async def run(
    prompt: str,
    settings: Settings,
    llm_provider: Optional[LLMProvider] = None,
    session_factory: SessionFactory = RemoteToolSession
) -> GenerationResult:
    """
    Generate a response for a prompt with the service tools attached.

    Sessions stay open for the whole generation and are closed before
    returning.

    Args:
        prompt: User prompt, used verbatim
        settings: Application settings with a connection string
        llm_provider: Optional provider; built from settings otherwise
        session_factory: Builds tool sessions

    Returns:
        The generation result
    """
    account = Account.from_connection_string(settings.connection)
    bind_context(account_id=account.account_id)

    llm_provider = llm_provider or create_llm_provider(settings.gateway_settings())
    gateway = AIGateway(
        llm_provider=llm_provider,
        system_prompt=settings.system_prompt,
        max_steps=settings.max_steps
    )

    async with AsyncExitStack() as stack:
        catalog = await load_catalog(account, DEFAULT_SERVICES, stack, session_factory)
        return await gateway.generate(prompt, catalog)


def main(
    argv: Optional[Sequence[str]] = None,
    settings: Optional[Settings] = None,
    llm_provider: Optional[LLMProvider] = None,
    session_factory: SessionFactory = RemoteToolSession
) -> int:
    """
    Run the CLI and return the process exit code.

    Args:
        argv: Arguments after the program name; defaults to sys.argv[1:]
        settings: Settings to use; defaults to the cached settings
        llm_provider: Optional LLM provider override
        session_factory: Builds tool sessions
    """
    args = list(sys.argv[1:] if argv is None else argv)

    try:
        prompt = validate_args(args)
        if settings is None:
            settings = get_settings()
        validate_environment(settings.connection)
    except CLIError as e:
        print(str(e), file=sys.stderr)
        return e.exit_code
    except ValidationError as e:
        print(f"Error: invalid configuration\n{e}", file=sys.stderr)
        return 1

    setup_logging(settings.log_level, json_output=settings.environment == "production")
    bind_context(request_id=str(uuid.uuid4()))

    try:
        result = asyncio.run(run(prompt, settings, llm_provider, session_factory))
        output = result.model_dump_json(indent=2)
    except Exception as e:
        logger.error("Run failed", error=str(e), error_type=type(e).__name__)
        print(f"Error: {e!r}", file=sys.stderr)
        return 1
    finally:
        clear_context()

    print(output)
    return 0


def cli() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    cli()
