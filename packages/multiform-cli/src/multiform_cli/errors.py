"""CLI error handling for multiform-cli.

This module wraps multiform-core exceptions into user-friendly messages
with the CLI's exit codes. Every failure exits with status 1.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn

import click
from pydantic import ValidationError as PydanticValidationError

from multiform_cli.output import error

if TYPE_CHECKING:
    from pydantic_core import ErrorDetails

    from multiform_core.errors import MultiformError


EXIT_FAILURE = 1


class CLIError(click.ClickException):
    """CLI-specific exception with exit code support.

    Attributes:
        message: User-facing error message.
        exit_code: Exit code for the CLI (default: 1).
    """

    def __init__(self, message: str, exit_code: int = EXIT_FAILURE) -> None:
        super().__init__(message)
        self.exit_code = exit_code

    def show(self, file: object = None) -> None:
        """Display the error message using Rich formatting.

        Args:
            file: Output file (unused, for Click compatibility).
        """
        error(self.format_message())


def format_pydantic_error(err: PydanticValidationError) -> str:
    """Format Pydantic validation error into user-friendly message.

    Args:
        err: Pydantic ValidationError instance.

    Returns:
        Formatted error message with field paths and issues.

    Example:
        >>> format_pydantic_error(err)
        "Validation failed:\\n  - builds: Field required"
    """
    errors: list[ErrorDetails] = err.errors()
    lines = ["Validation failed:"]

    for e in errors:
        loc = ".".join(str(x) for x in e["loc"])
        msg = e["msg"]
        lines.append(f"  - {loc}: {msg}")

    return "\n".join(lines)


def handle_validation_error(err: PydanticValidationError, file_path: str) -> NoReturn:
    """Raise a CLIError describing a schema validation failure.

    Raises:
        CLIError: Always.
    """
    formatted = format_pydantic_error(err)
    raise CLIError(f"Invalid configuration in {file_path}:\n{formatted}")


def handle_file_not_found(file_path: str) -> NoReturn:
    """Raise a CLIError for a missing configuration file.

    Raises:
        CLIError: Always.
    """
    raise CLIError(
        f"File not found: {file_path}\n\n"
        "Create a multiform.json in the project directory, or use --config to specify a path."
    )


def handle_multiform_error(err: MultiformError) -> NoReturn:
    """Raise a CLIError carrying the user-facing message of a core error.

    Raises:
        CLIError: Always.
    """
    raise CLIError(err.user_message)


def describe_failure(err: BaseException) -> str:
    """Return the one-line description printed for a failed build."""
    user_message = getattr(err, "user_message", None)
    if user_message:
        return user_message
    return f"{type(err).__name__}: {err}"
