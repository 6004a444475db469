"""Rich renderers for human-readable command output."""

from __future__ import annotations

import re
import time
from datetime import datetime
from typing import Sequence

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from anitick.services.notifications import format_time_until
from anitick.shared.models import AnimeDetails, AnimeSummary, TrackedAnime, UserSettings

console = Console()

_HTML_TAG = re.compile(r"<[^>]+>")


def _next_episode(anime: AnimeSummary | TrackedAnime, now: float) -> str:
    airing = anime.next_airing_episode
    if airing is None:
        return "-"
    remaining = airing.airing_at - now
    if remaining <= 0:
        return f"EP {airing.episode} (aired)"
    return f"EP {airing.episode} in {format_time_until(remaining)}"


def _status(anime: AnimeSummary | TrackedAnime) -> str:
    return anime.status.value if anime.status else "-"


def sort_watchlist(entries: Sequence[TrackedAnime], sort_by: str) -> list[TrackedAnime]:
    """Display order for the watchlist; the stored order is not touched."""
    if sort_by == "title":
        return sorted(entries, key=lambda item: item.display_title.casefold())
    if sort_by == "addedAt":
        return sorted(entries, key=lambda item: item.added_at)
    return sorted(
        entries,
        key=lambda item: (
            item.next_airing_episode is None,
            item.next_airing_episode.airing_at if item.next_airing_episode else 0,
        ),
    )


def render_search_results(results: Sequence[AnimeSummary]) -> None:
    table = Table(title="Search results")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Title")
    table.add_column("Season")
    table.add_column("Status")
    table.add_column("Episodes", justify="right")

    for anime in results:
        season = f"{anime.season or ''} {anime.season_year or ''}".strip() or "-"
        table.add_row(
            str(anime.id),
            escape(anime.display_title),
            season,
            _status(anime),
            str(anime.episodes) if anime.episodes is not None else "?",
        )
    console.print(table)


def render_watchlist(
    entries: Sequence[TrackedAnime],
    sort_by: str = "nextEpisode",
    now: float | None = None,
) -> None:
    now = time.time() if now is None else now
    table = Table(title=f"Watchlist ({len(entries)})")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Episodes", justify="right")
    table.add_column("Next episode")
    table.add_column("Notify", justify="center")

    for item in sort_watchlist(entries, sort_by):
        table.add_row(
            str(item.id),
            escape(item.display_title),
            _status(item),
            str(item.episodes) if item.episodes is not None else "?",
            _next_episode(item, now),
            "yes" if item.notifications_enabled else "no",
        )
    console.print(table)


def render_details(details: AnimeDetails, now: float | None = None) -> None:
    now = time.time() if now is None else now
    lines = [
        f"[bold]Status:[/bold] {_status(details)}",
        f"[bold]Episodes:[/bold] {details.episodes if details.episodes is not None else '?'}",
        f"[bold]Next:[/bold] {_next_episode(details, now)}",
    ]
    if details.genres:
        lines.append(f"[bold]Genres:[/bold] {', '.join(details.genres)}")
    if details.studios:
        lines.append(f"[bold]Studios:[/bold] {', '.join(details.studios)}")
    if details.average_score is not None:
        lines.append(f"[bold]Score:[/bold] {details.average_score}%")
    if details.description:
        lines.extend(["", escape(_HTML_TAG.sub("", details.description))])

    console.print(
        Panel(
            "\n".join(lines),
            title=escape(f"{details.display_title} ({details.id})"),
            expand=False,
        ),
    )


def render_settings(settings: UserSettings) -> None:
    table = Table(title="Settings")
    table.add_column("Setting")
    table.add_column("Value")
    for section, values in settings.to_payload().items():
        for name, value in values.items():
            table.add_row(f"{section}.{name}", str(value))
    console.print(table)


def format_timestamp_ms(value: int | None) -> str:
    if value is None:
        return "never"
    return datetime.fromtimestamp(value / 1000).strftime("%Y-%m-%d %H:%M")
