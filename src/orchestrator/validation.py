"""Command-line and environment validation.

Validators raise ``CLIError`` subclasses instead of exiting; the entry point
decides what is printed and which exit code is used.
"""

from typing import Sequence

from services import DEFAULT_SERVICES, get_service

PROGRAM_NAME = "atxp-prompt"

CONNECTION_EXAMPLE = (
    "ATXP_CONNECTION=https://accounts.atxp.ai"
    "?connection_token=<random_token>&account_id=<random_string>"
)


class CLIError(Exception):
    """A user-facing failure detected before any remote call."""
    exit_code = 1


class UsageError(CLIError):
    """No prompt was given."""
    pass


class ConfigurationError(CLIError):
    """A required setting is missing."""
    pass


def usage_text(program: str = PROGRAM_NAME) -> str:
    """Return the usage message listing the available services."""
    lines = [
        f'Usage: {program} "your prompt/query here"',
        "Services available:",
    ]
    for service in DEFAULT_SERVICES:
        descriptor = get_service(service)
        lines.append(f"  {descriptor.key} - {descriptor.summary}")
    lines += [
        "",
        "Examples:",
        f'  {program} "create an image of a beautiful sunset over mountains"',
        f'  {program} "provide me with the latest news about AI"',
    ]
    return "\n".join(lines)


def validate_args(args: Sequence[str]) -> str:
    """
    Return the prompt from the positional arguments.

    Args:
        args: Arguments after the program name

    Raises:
        UsageError: If no prompt was given
    """
    if len(args) < 1:
        raise UsageError(usage_text())
    return args[0]


def validate_environment(connection: str) -> str:
    """
    Return the connection string if it is set.

    Raises:
        ConfigurationError: If the connection string is missing or empty
    """
    if not connection:
        raise ConfigurationError(
            "Error: ATXP_CONNECTION environment variable is required\n"
            f"Example: {CONNECTION_EXAMPLE}"
        )
    return connection
