"""Concrete capability adapters for running AniTick outside a browser."""

from .asyncio_timer import AsyncioTimerScheduler
from .console_notifier import RichConsoleNotifier

__all__ = ["AsyncioTimerScheduler", "RichConsoleNotifier"]
