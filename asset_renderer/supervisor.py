"""
Supervisor Boundary
===================

Top-level handling of ``FatalCrashThresholdExceeded``. The renderer core only
signals that crashes have clustered; this boundary decides to log, release
the browser and exit so the platform's process supervisor restarts us clean.
"""

from typing import Awaitable, Callable, NoReturn, Optional, TypeVar
import asyncio

from asset_renderer.config.logging import get_logger
from asset_renderer.config.settings import Settings, get_settings
from asset_renderer.core.rendering.errors import FatalCrashThresholdExceeded
from asset_renderer.core.rendering.renderer import AssetRenderer

logger = get_logger(__name__)

T = TypeVar("T")

SHUTDOWN_TIMEOUT_SECONDS = 5.0


async def handle_fatal_escalation(
    error: FatalCrashThresholdExceeded,
    renderer: AssetRenderer,
    settings: Optional[Settings] = None,
) -> NoReturn:
    """Log the escalation, wait the grace delay, release the browser and exit."""
    settings = settings or get_settings()
    escalation = error.escalation
    logger.critical(
        "Browser crash threshold exceeded, exiting for restart",
        crash_count=escalation.crash_count,
        threshold=escalation.threshold,
        window_seconds=escalation.window_seconds,
        last_error=escalation.last_error,
        grace_seconds=settings.fatal_exit_grace_seconds,
        exit_code=settings.fatal_exit_code,
    )

    await asyncio.sleep(settings.fatal_exit_grace_seconds)
    try:
        await asyncio.wait_for(renderer.shutdown(), timeout=SHUTDOWN_TIMEOUT_SECONDS)
    except Exception as e:
        logger.warning("Renderer shutdown failed during fatal exit", error=str(e))

    raise SystemExit(settings.fatal_exit_code)


async def run_supervised(
    work: Callable[[], Awaitable[T]],
    renderer: AssetRenderer,
    settings: Optional[Settings] = None,
) -> T:
    """Run ``work``, turning a fatal escalation into a process exit."""
    try:
        return await work()
    except FatalCrashThresholdExceeded as e:
        await handle_fatal_escalation(e, renderer, settings)
