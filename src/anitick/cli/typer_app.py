"""
AniTick Typer CLI Application

This is the main Typer-based CLI application for AniTick. Every command
builds the application container, runs one service command and prints the
result either as rich tables or as a JSON envelope (``--json``).
"""

from __future__ import annotations

from collections.abc import Awaitable
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Callable, Optional

import orjson
import typer

from anitick.adapters import AsyncioTimerScheduler
from anitick.cli.common.context import CliContext, LogLevel, get_cli_context, set_cli_context
from anitick.cli.common.error_handler import handle_cli_error, output_error
from anitick.cli.common.options import (
    config_option,
    json_output_option,
    log_level_option,
    verbose_option,
    version_option,
)
from anitick.cli.json_formatter import format_success_output
from anitick.cli.renderers import (
    console,
    format_timestamp_ms,
    render_details,
    render_search_results,
    render_settings,
    render_watchlist,
)
from anitick.cli.runtime import run_service_command
from anitick.services import BackgroundService, CommandResponse
from anitick.shared.constants import CLICommands, CLIHelp, CLIMessages
from anitick.shared.errors import create_validation_error

ServiceCall = Callable[[BackgroundService], Awaitable[CommandResponse]]


class Switch(str, Enum):
    """On/off argument values."""

    ON = "on"
    OFF = "off"


app = typer.Typer(
    name=CLIHelp.APP_NAME,
    help=CLIHelp.APP_DESCRIPTION,
    add_completion=True,
    rich_markup_mode=CLIHelp.APP_STYLE,
    no_args_is_help=True,
)

settings_app = typer.Typer(help=CLIHelp.SETTINGS_HELP, no_args_is_help=True)
app.add_typer(settings_app, name=CLICommands.SETTINGS)


@app.callback()
def main(
    verbose: Annotated[int, verbose_option] = 0,
    log_level: Annotated[Optional[LogLevel], log_level_option] = None,
    json_output: Annotated[bool, json_output_option] = False,
    config: Annotated[Optional[Path], config_option] = None,
    version: Annotated[bool, version_option] = False,
) -> None:
    """Track airing anime from AniList and get notified about new episodes."""
    set_cli_context(
        CliContext(
            verbose=verbose,
            log_level=log_level,
            json_output=json_output,
            config_path=config,
        ),
    )


def _execute(
    command: str,
    call: ServiceCall,
    render: Callable[[Any], None],
) -> None:
    """Run ``call`` against the service and print its response.

    Raises:
        typer.Exit: With a non-zero code when the command fails
    """
    context = get_cli_context()
    try:
        response = run_service_command(context, call)
    except Exception as e:
        raise typer.Exit(handle_cli_error(e, command, json_output=context.json_output)) from e

    if not response.success:
        raise typer.Exit(output_error(response.error or {}, command, json_output=context.json_output))

    if context.json_output:
        typer.echo(format_success_output(command, response.data).decode("utf-8"))
    else:
        render(response.data)


@app.command(CLICommands.SEARCH, help=CLIHelp.SEARCH_HELP)
def search_command(
    query: Annotated[str, typer.Argument(help="Title to search for")],
) -> None:
    """
    Search AniList for anime by title.

    Examples:
        anitick search "frieren"
        anitick --json search "one piece"
    """

    def render(results: list[Any]) -> None:
        if not results:
            console.print(CLIMessages.NO_RESULTS)
            return
        render_search_results(results)

    _execute(CLICommands.SEARCH, lambda service: service.search(query), render)


@app.command(CLICommands.DETAILS, help=CLIHelp.DETAILS_HELP)
def details_command(
    anime_id: Annotated[int, typer.Argument(help="AniList anime id")],
) -> None:
    _execute(CLICommands.DETAILS, lambda service: service.get_details(anime_id), render_details)


@app.command(CLICommands.ADD, help=CLIHelp.ADD_HELP)
def add_command(
    anime_id: Annotated[int, typer.Argument(help="AniList anime id")],
) -> None:
    """
    Add an anime to the watchlist.

    The anime is looked up on AniList first; adding an id that is already
    tracked leaves the watchlist unchanged.
    """

    def render(entry: Any) -> None:
        console.print(CLIMessages.ADDED.format(title=entry.display_title, id=entry.id))

    _execute(CLICommands.ADD, lambda service: service.add_to_watchlist(anime_id), render)


@app.command(CLICommands.REMOVE, help=CLIHelp.REMOVE_HELP)
def remove_command(
    anime_id: Annotated[int, typer.Argument(help="AniList anime id")],
) -> None:
    def render(removed: bool) -> None:
        if removed:
            console.print(CLIMessages.REMOVED.format(id=anime_id))
        else:
            console.print(CLIMessages.NOT_TRACKED.format(id=anime_id))

    _execute(CLICommands.REMOVE, lambda service: service.remove_from_watchlist(anime_id), render)


@app.command(CLICommands.NOTIFY, help=CLIHelp.NOTIFY_HELP)
def notify_command(
    anime_id: Annotated[int, typer.Argument(help="AniList anime id")],
    state: Annotated[Switch, typer.Argument(help="on or off", case_sensitive=False)],
) -> None:
    """
    Turn notifications on or off for one tracked anime.

    Examples:
        anitick notify 154587 off
    """
    enabled = state is Switch.ON

    def render(entry: Any) -> None:
        if entry is None:
            console.print(CLIMessages.NOT_TRACKED.format(id=anime_id))
            return
        console.print(
            CLIMessages.NOTIFICATIONS_SWITCHED.format(
                state="enabled" if enabled else "disabled",
                title=entry.display_title,
                id=entry.id,
            ),
        )

    _execute(
        CLICommands.NOTIFY,
        lambda service: service.set_anime_notifications(anime_id, enabled),
        render,
    )


@app.command(CLICommands.LIST, help=CLIHelp.LIST_HELP)
def list_command() -> None:
    display: dict[str, Any] = {}

    async def call(service: BackgroundService) -> CommandResponse:
        settings = await service.settings_store.get()
        display["sort_by"] = settings.display.sort_by
        display["last_update"] = await service.last_update()
        return await service.get_watchlist()

    def render(entries: list[Any]) -> None:
        if not entries:
            console.print(CLIMessages.EMPTY_WATCHLIST)
            return
        render_watchlist(entries, sort_by=display["sort_by"])
        console.print(
            CLIMessages.LAST_UPDATE.format(when=format_timestamp_ms(display["last_update"])),
            style="dim",
        )

    _execute(CLICommands.LIST, call, render)


@app.command(CLICommands.REFRESH, help=CLIHelp.REFRESH_HELP)
def refresh_command() -> None:
    def render(summary: dict[str, int]) -> None:
        console.print(
            f"{CLIMessages.REFRESHED} ({summary['updated']}/{summary['tracked']} updated)",
        )

    _execute(CLICommands.REFRESH, lambda service: service.force_refresh(), render)


@app.command(CLICommands.CHECK, help=CLIHelp.CHECK_HELP)
def check_command() -> None:
    def render(sent: list[Any]) -> None:
        console.print(CLIMessages.CHECKED.format(count=len(sent)))

    _execute(CLICommands.CHECK, lambda service: service.check_notifications(), render)


@app.command(CLICommands.CLEAR_CACHE, help=CLIHelp.CLEAR_CACHE_HELP)
def clear_cache_command() -> None:
    _execute(
        CLICommands.CLEAR_CACHE,
        lambda service: service.clear_cache(),
        lambda _: console.print(CLIMessages.CACHE_CLEARED),
    )


@app.command(CLICommands.RUN, help=CLIHelp.RUN_HELP)
def run_command() -> None:
    """
    Run AniTick in the foreground.

    Seeds default settings, arms the refresh and notification timers and
    keeps running until interrupted with Ctrl+C.
    """
    context = get_cli_context()

    async def call(service: BackgroundService) -> CommandResponse:
        await service.install()
        console.print(CLIMessages.RUNNING)
        await service.notification_cycle()
        if isinstance(service.timers, AsyncioTimerScheduler):
            await service.timers.wait()
        return CommandResponse(success=True)

    try:
        run_service_command(context, call)
    except KeyboardInterrupt:
        console.print(CLIMessages.INTERRUPTED)
    except Exception as e:
        raise typer.Exit(handle_cli_error(e, CLICommands.RUN, json_output=context.json_output)) from e


@settings_app.command("show", help=CLIHelp.SETTINGS_SHOW_HELP)
def settings_show_command() -> None:
    _execute(CLICommands.SETTINGS, lambda service: service.get_settings(), render_settings)


def parse_setting(key: str, raw_value: str) -> dict[str, Any]:
    """Turn ``section.field`` and a raw value into a partial settings update.

    Values are parsed as JSON when possible (``true``, ``1800``), otherwise
    used as plain strings.

    Raises:
        DomainError: If ``key`` is not of the form ``section.field``
    """
    section, _, field = key.partition(".")
    if not section or not field or "." in field:
        raise create_validation_error(
            f"Setting must be given as <section>.<field>, got: {key}",
            field=key,
            operation="settings_set",
        )
    try:
        value = orjson.loads(raw_value)
    except orjson.JSONDecodeError:
        value = raw_value
    return {section: {field: value}}


@settings_app.command("set", help=CLIHelp.SETTINGS_SET_HELP)
def settings_set_command(
    key: Annotated[str, typer.Argument(help="Setting name, e.g. notifications.beforeAiring")],
    value: Annotated[str, typer.Argument(help="New value")],
) -> None:
    context = get_cli_context()
    try:
        partial = parse_setting(key, value)
    except Exception as e:
        raise typer.Exit(handle_cli_error(e, CLICommands.SETTINGS, json_output=context.json_output)) from e

    def render(settings: Any) -> None:
        console.print(CLIMessages.SETTINGS_UPDATED)
        render_settings(settings)

    _execute(CLICommands.SETTINGS, lambda service: service.update_settings(partial), render)


if __name__ == "__main__":
    app()
