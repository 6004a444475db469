"""Notification display that renders to the terminal with rich."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.panel import Panel

from anitick.shared.errors import ErrorCode, ErrorContext, NotificationDisplayError
from anitick.shared.models import NotificationContent

logger = logging.getLogger(__name__)


class RichConsoleNotifier:
    """Shows notifications as rich panels.

    The notification id doubles as the platform handle.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()
        self._active: set[str] = set()

    async def create(self, notification_id: str, content: NotificationContent) -> str:
        try:
            self.console.print(
                Panel(
                    content.body,
                    title=f"[bold]{content.title}[/bold]",
                    subtitle=notification_id,
                    border_style="cyan",
                    expand=False,
                ),
            )
        except (OSError, ValueError) as e:
            raise NotificationDisplayError(
                ErrorCode.NOTIFICATION_DISPLAY_FAILED,
                f"Could not display notification {notification_id}: {e}",
                ErrorContext(
                    operation="display_notification",
                    additional_data={"notification_id": notification_id},
                ),
                e,
            ) from e

        self._active.add(notification_id)
        return notification_id

    async def clear(self, notification_id: str) -> None:
        self._active.discard(notification_id)
        logger.debug("Notification dismissed: %s", notification_id)

    @property
    def active(self) -> frozenset[str]:
        """Ids shown and not yet dismissed."""
        return frozenset(self._active)
