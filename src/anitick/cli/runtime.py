"""Container construction and async execution for CLI commands."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from pathlib import Path
from typing import Callable, TypeVar

from dependency_injector import providers
from rich.console import Console

from anitick.adapters import RichConsoleNotifier
from anitick.cli.common.context import CliContext
from anitick.config import load_settings
from anitick.containers import Container
from anitick.services import BackgroundService
from anitick.shared.logging import setup_structured_logger


T = TypeVar("T")


def build_container(config_path: Path | None = None, *, json_output: bool = False) -> Container:
    """Create a container bound to the settings loaded from ``config_path``.

    In JSON mode notifications are drawn on stderr so stdout stays parseable.
    """
    container = Container()
    container.config.override(providers.Object(load_settings(config_path)))
    if json_output:
        container.notifier.override(
            providers.Singleton(RichConsoleNotifier, console=Console(stderr=True)),
        )
    return container


def configure_logging(container: Container, context: CliContext) -> None:
    settings = container.config()
    setup_structured_logger(
        level=context.get_effective_log_level(settings.logging.level),
        log_file=settings.logging.file,
        use_rich_console=settings.logging.rich_console and not context.json_output,
    )


async def _run_with_service(
    container: Container,
    func: Callable[[BackgroundService], Awaitable[T]],
) -> T:
    service = container.background_service()
    try:
        await service.restore_cache()
        return await func(service)
    finally:
        close = getattr(container.transport(), "close", None)
        if close is not None:
            await close()


def run_service_command(
    context: CliContext,
    func: Callable[[BackgroundService], Awaitable[T]],
) -> T:
    """Build the application, run ``func`` against the service and shut down.

    Raises:
        ApplicationError: If the configuration cannot be loaded
    """
    container = build_container(context.config_path, json_output=context.json_output)
    configure_logging(container, context)
    return asyncio.run(_run_with_service(container, func))
