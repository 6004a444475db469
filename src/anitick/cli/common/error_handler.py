"""
CLI Error Handling Utilities

Consistent error output for CLI commands: the same failure renders as a
red console line or as a JSON error envelope depending on ``--json``.
"""

from __future__ import annotations

import logging
from typing import Any

import typer
from rich.console import Console

from anitick.cli.json_formatter import format_error_output
from anitick.shared.errors import (
    AniTickError,
    ApplicationError,
    ErrorCode,
    ErrorContext,
)
from anitick.shared.logging import log_operation_error

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1

_console = Console(stderr=True)


def _to_cli_error(error: Exception, command: str) -> AniTickError:
    if isinstance(error, AniTickError):
        return error
    return ApplicationError(
        code=ErrorCode.CLI_UNEXPECTED_ERROR,
        message=f"Unexpected error: {error}",
        context=ErrorContext(operation=command),
        original_error=error,
    )


def output_error(error: dict[str, Any], command: str, *, json_output: bool) -> int:
    """Print an error dictionary (``AniTickError.to_dict()``) and return the exit code."""
    if json_output:
        typer.echo(format_error_output(command, [error]).decode("utf-8"))
    else:
        _console.print(f"[red]Error:[/red] {error.get('message', 'unknown error')}")
    return EXIT_ERROR


def handle_cli_error(
    error: Exception,
    command: str,
    *,
    json_output: bool = False,
) -> int:
    """Handle CLI errors with consistent formatting and logging.

    Args:
        error: The exception that occurred
        command: The CLI command being executed
        json_output: Whether to output JSON format

    Returns:
        Exit code for the CLI command
    """
    cli_error = _to_cli_error(error, command)
    log_operation_error(logger=logger, error=cli_error, operation=command)
    return output_error(cli_error.to_dict(), command, json_output=json_output)
