"""
Reusable Typer Options Module

Global options shared by the main callback:
- verbose: Verbosity level (count-based)
- log_level: Logging level (enum-based)
- json_output: JSON output mode (flag-based)
- config: TOML configuration file
- version: Print the version and exit

Each option is used as ``Annotated[<type>, <option>] = <default>``.
"""

from __future__ import annotations

import typer

from anitick import __version__
from anitick.shared.constants import CLIHelp


def version_callback(value: bool) -> None:
    """Print version information and exit."""
    if value:
        typer.echo(CLIHelp.VERSION_TEXT.format(version=__version__))
        raise typer.Exit


# Verbose option - count-based for multiple -v flags
verbose_option = typer.Option(
    "--verbose",
    "-v",
    count=True,
    help="Enable verbose output (equivalent to --log-level DEBUG).",
)

# Log level option - enum-based with case-insensitive choices
log_level_option = typer.Option(
    "--log-level",
    case_sensitive=False,
    help="Set the logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL). Default: from configuration.",
)

# JSON output option - flag-based
json_output_option = typer.Option(
    "--json",
    help="Enable machine-readable JSON output instead of human-readable format.",
)

config_option = typer.Option(
    "--config",
    "-c",
    help="Path to a TOML configuration file (default: $ANITICK_CONFIG or ~/.anitick/config.toml).",
    dir_okay=False,
)

# Version option - for main app only
version_option = typer.Option(
    "--version",
    "-V",
    help="Show version information and exit.",
    callback=version_callback,
    is_eager=True,
)
