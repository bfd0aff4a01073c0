"""Socket Mode bootstrap entrypoint for handler/connection wiring."""

from __future__ import annotations

import asyncio
import importlib
import logging
from typing import Optional

from socketmode.config import SocketModeSettings, get_settings
from socketmode.credentials import CredentialStore
from socketmode.handler import EventHandler
from socketmode.network.connection import ConnectionManager, ExitStatus, Termination

LOGGER = logging.getLogger(__name__)
DEFAULT_HANDLER = "socketmode.handler:ack_only"


def load_handler(path: str) -> EventHandler:
    """Resolve a ``module:attribute`` reference to an event handler."""

    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Handler reference must look like 'module:attribute', got {path!r}")
    module = importlib.import_module(module_name)
    try:
        handler = getattr(module, attr)
    except AttributeError as exc:
        raise ValueError(f"Module {module_name!r} has no attribute {attr!r}") from exc
    if not callable(handler):
        raise ValueError(f"Handler {path!r} is not callable")
    return handler


async def serve(
    handler: EventHandler,
    *,
    settings: Optional[SocketModeSettings] = None,
    credentials: Optional[CredentialStore] = None,
) -> Termination:
    """Run one Socket Mode session and return how it ended."""

    settings = settings or get_settings()
    manager = ConnectionManager(settings, handler, credentials=credentials)
    LOGGER.debug("Starting Socket Mode session via %s", getattr(handler, "__name__", handler))
    try:
        return await manager.run()
    except asyncio.CancelledError:
        LOGGER.info("Socket Mode shutdown requested")
        raise
    finally:
        await manager.stop()


def run(handler: EventHandler, *, settings: Optional[SocketModeSettings] = None) -> int:
    """Blocking wrapper around :func:`serve` returning a process exit code."""

    try:
        termination = asyncio.run(serve(handler, settings=settings))
    except KeyboardInterrupt:
        LOGGER.info("Socket Mode interrupted")
        return int(ExitStatus.STOPPED)
    return termination.exit_code
