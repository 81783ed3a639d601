"""
Render Executor
===============

Runs one render end to end: markup, isolated browsing context, viewport,
content load, readiness/font/image waits, capture, content hash. The context
is released on every exit path.

Browser acquisition and context creation get one retry when the failure is a
classified crash. Failures after the context is open are classified and
counted towards the circuit breaker but never retried here. A crashed page
does not replace the browser; a dead browser is counted once however many
renders were using it.
"""

from typing import Any, Dict, Optional, Tuple
import hashlib
import io
import time

from PIL import Image

from asset_renderer.config.logging import get_logger
from asset_renderer.config.settings import Settings, get_settings
from asset_renderer.core.templates.registry import ResolvedTemplate
from asset_renderer.models.schemas import MIME_TYPES, RenderFormat, RenderRequest, RenderResult
from .browser import BrowserContextHandle, BrowserFailure, BrowserHandle, BrowserTimeout
from .browser_manager import BrowserResourceManager
from .crash_policy import CrashCircuitBreaker, classify
from .errors import (
    BrowserCrash,
    BrowserLaunchError,
    FatalCrashThresholdExceeded,
    ImageLoadFailed,
    ReadinessTimeout,
    RenderError,
    RenderFailed,
)
from .markup import produce_markup
from .validator import named_paper_size, parse_dimensions

logger = get_logger(__name__)


FONTS_READY_SCRIPT = "() => document.fonts.ready.then(() => true)"

# Resolves to the first image source that failed to load, or null
IMAGES_LOADED_SCRIPT = """() => Promise.all(Array.from(document.images).map((img) => {
  const src = img.getAttribute('src');
  if (!src) return null;
  if (img.complete) return img.naturalWidth === 0 ? (img.currentSrc || src) : null;
  return new Promise((resolve) => {
    img.addEventListener('load', () => resolve(null), { once: true });
    img.addEventListener('error', () => resolve(img.currentSrc || src), { once: true });
  });
})).then((failed) => failed.find((src) => src) || null)"""

MAX_OPEN_ATTEMPTS = 2


class RenderExecutor:
    """Executes validated render requests on the shared browser."""

    def __init__(
        self,
        browser_manager: BrowserResourceManager,
        circuit_breaker: CrashCircuitBreaker,
        settings: Optional[Settings] = None,
    ):
        self.browser_manager = browser_manager
        self.circuit_breaker = circuit_breaker
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(component="render_executor")

    async def execute(self, template: ResolvedTemplate, request: RenderRequest) -> RenderResult:
        """
        Render a validated request.

        Args:
            template: Template resolved for the request
            request: Validated render request

        Returns:
            RenderResult with the output bytes and their SHA-256

        Raises:
            RenderError: Categorised render failure
            FatalCrashThresholdExceeded: Crashes clustered past the threshold
        """
        context_fields = request.log_context()
        log = self.logger.bind(**context_fields)
        started = time.perf_counter()

        render_format = request.render_format
        dimensions = parse_dimensions(request.variant)
        paper_format = named_paper_size(request.variant) if render_format == RenderFormat.PDF else None
        if paper_format:
            dimensions = None

        try:
            markup = produce_markup(template, request.payload)
        except RenderError as e:
            raise e.with_context(context_fields)

        handle, context = await self._open_context(context_fields, log)
        try:
            try:
                if dimensions:
                    await context.set_viewport(*dimensions)
                await context.load_content(markup)
                await self._wait_until_ready(context, context_fields)
                await self._wait_for_assets(context, context_fields)
                buffer = await self._capture(context, render_format, paper_format, dimensions)
            except RenderError:
                raise
            except BrowserFailure as e:
                raise self._render_phase_failure(e, handle, context_fields, log) from e
            except Exception as e:
                raise RenderFailed(f"Render failed: {e}", **context_fields) from e

            content_hash = hashlib.sha256(buffer).hexdigest()
        except RenderError as e:
            log.error("Render failed", category=e.category.value, error=e.message)
            raise
        finally:
            await self._close_context(context, log)
            await self.browser_manager.release(handle)

        self.circuit_breaker.record_success()

        if render_format == RenderFormat.PNG and dimensions:
            self._check_png_dimensions(buffer, dimensions, log)

        result = RenderResult(
            buffer=buffer,
            content_hash=content_hash,
            mime_type=MIME_TYPES[render_format],
            width=dimensions[0] if dimensions else None,
            height=dimensions[1] if dimensions else None,
        )
        log.info(
            "Render completed",
            byte_size=result.byte_size,
            content_hash=content_hash[:16],
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return result

    async def _open_context(
        self, context_fields: Dict[str, Any], log: Any
    ) -> Tuple[BrowserHandle, BrowserContextHandle]:
        """Acquire the browser and open a context, retrying once after a crash.

        On success the returned browser is held until ``execute`` releases it.
        """
        attempt = 0
        while True:
            attempt += 1
            handle: Optional[BrowserHandle] = None
            try:
                handle = await self.browser_manager.acquire()
                self.browser_manager.hold(handle)
                try:
                    context = await handle.new_context()
                except BaseException:
                    await self.browser_manager.release(handle)
                    raise
                return handle, context
            except BrowserFailure as e:
                if not classify(e):
                    if handle is None:
                        raise BrowserLaunchError(f"Browser launch failed: {e.message}", **context_fields) from e
                    raise RenderFailed(f"Opening browsing context failed: {e.message}", **context_fields) from e

                # Waiters on one launch, or renders on one browser, share a single crash
                if self.browser_manager.report_crash(handle, e):
                    self._record_crash(e)
                if attempt == MAX_OPEN_ATTEMPTS:
                    raise BrowserCrash(
                        f"Browser crashed again after relaunch: {e.message}", e.reason, **context_fields
                    ) from e
                log.warning("Browser crash while opening context, retrying", reason=e.reason.value, error=e.message)
            except Exception as e:
                if handle is None:
                    raise BrowserLaunchError(f"Browser launch failed: {e}", **context_fields) from e
                raise RenderFailed(f"Opening browsing context failed: {e}", **context_fields) from e

    async def _wait_until_ready(self, context: BrowserContextHandle, context_fields: Dict[str, Any]) -> None:
        selector = self.settings.readiness_selector
        timeout_ms = self.settings.readiness_timeout_ms
        try:
            await context.wait_for_selector(selector, timeout_ms)
        except BrowserTimeout as e:
            raise ReadinessTimeout(
                f"Readiness marker {selector} not set within {timeout_ms}ms", **context_fields
            ) from e

    async def _wait_for_assets(self, context: BrowserContextHandle, context_fields: Dict[str, Any]) -> None:
        await context.evaluate(FONTS_READY_SCRIPT)
        failed_source = await context.evaluate(IMAGES_LOADED_SCRIPT)
        if failed_source:
            source = str(failed_source)[: self.settings.image_source_preview_length]
            raise ImageLoadFailed(source, **context_fields)

    async def _capture(
        self,
        context: BrowserContextHandle,
        render_format: RenderFormat,
        paper_format: Optional[str],
        dimensions: Optional[Tuple[int, int]],
    ) -> bytes:
        if render_format == RenderFormat.PNG:
            return await context.screenshot()
        if paper_format:
            return await context.pdf(paper_format=paper_format)
        width, height = dimensions  # type: ignore[misc]
        return await context.pdf(width=width, height=height)

    def _render_phase_failure(
        self,
        error: BrowserFailure,
        handle: BrowserHandle,
        context_fields: Dict[str, Any],
        log: Any,
    ) -> RenderError:
        if not classify(error):
            return RenderFailed(f"Render failed: {error.message}", **context_fields)

        # A page crash leaves the browser and the other renders on it untouched
        if handle.is_connected() or self.browser_manager.report_crash(handle, error):
            self._record_crash(error)
        log.warning(
            "Browser crashed during render", reason=error.reason.value, browser_connected=handle.is_connected()
        )
        return BrowserCrash(f"Browser crashed during render: {error.message}", error.reason, **context_fields)

    def _record_crash(self, error: BrowserFailure) -> None:
        escalation = self.circuit_breaker.record_crash(error)
        if escalation is not None:
            raise FatalCrashThresholdExceeded(escalation) from error

    async def _close_context(self, context: BrowserContextHandle, log: Any) -> None:
        try:
            await context.close()
        except Exception as e:
            # The context is already gone when the browser crashed mid-render
            log.warning("Closing browsing context failed", error=str(e))

    def _check_png_dimensions(self, buffer: bytes, dimensions: Tuple[int, int], log: Any) -> None:
        try:
            with Image.open(io.BytesIO(buffer)) as image:
                actual = image.size
        except OSError as e:
            log.warning("Captured PNG could not be inspected", error=str(e))
            return
        if actual != dimensions:
            log.warning(
                "Captured PNG size differs from viewport",
                expected=f"{dimensions[0]}x{dimensions[1]}",
                actual=f"{actual[0]}x{actual[1]}",
            )
