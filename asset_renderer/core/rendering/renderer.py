"""
Asset Renderer
==============

Entry point for collaborators (HTTP layer, queue worker, preview CLI):
``render(template_key, template_version, format, variant, payload)`` and
``shutdown()``. Wires the registry, validator, browser manager, circuit
breaker and executor together.
"""

from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from asset_renderer.config.logging import get_logger
from asset_renderer.config.settings import Settings, get_settings
from asset_renderer.core.templates.registry import TemplateRegistry, get_template_registry
from asset_renderer.models.schemas import RenderFormat, RenderRequest, RenderResult, RendererStats
from .browser import BrowserLauncher
from .browser_manager import BrowserResourceManager
from .crash_policy import CrashCircuitBreaker
from .errors import InvalidFormat, RenderValidationError
from .executor import RenderExecutor
from .validator import RequestValidator

logger = get_logger(__name__)


def build_request(
    template_key: str,
    template_version: int,
    format: Union[str, RenderFormat],
    variant: str,
    payload: Optional[Dict[str, Any]] = None,
) -> RenderRequest:
    """Build a request, reporting malformed fields as validation errors."""
    if isinstance(format, RenderFormat):
        format = format.value
    if not isinstance(format, str):
        raise InvalidFormat(format)
    try:
        return RenderRequest(
            template_key=template_key,
            template_version=template_version,
            format=format,
            variant=variant,
            payload=payload if payload is not None else {},
        )
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in e.errors()
        )
        raise RenderValidationError(
            f"Invalid render request: {errors}",
            template_key=template_key if isinstance(template_key, str) else None,
            format=format,
            variant=variant if isinstance(variant, str) else None,
        ) from e


class AssetRenderer:
    """Renders templates to PNG/PDF on a shared, crash-supervised browser."""

    def __init__(
        self,
        registry: Optional[TemplateRegistry] = None,
        launcher: Optional[BrowserLauncher] = None,
        circuit_breaker: Optional[CrashCircuitBreaker] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.registry = registry or get_template_registry()
        self.validator = RequestValidator(self.registry)

        if launcher is None:
            from .playwright_adapter import PlaywrightLauncher

            launcher = PlaywrightLauncher(self.settings)
        self.browser_manager = BrowserResourceManager(launcher)
        self.circuit_breaker = circuit_breaker or CrashCircuitBreaker(
            threshold=self.settings.crash_threshold,
            window_seconds=self.settings.crash_window_seconds,
        )
        self.executor = RenderExecutor(self.browser_manager, self.circuit_breaker, self.settings)
        self.logger: Any = logger.bind(component="asset_renderer")

    async def render(
        self,
        template_key: str,
        template_version: int,
        format: Union[str, RenderFormat],
        variant: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> RenderResult:
        """
        Render a template.

        Args:
            template_key: Registered template identifier
            template_version: Template version
            format: PNG or PDF
            variant: WIDTHxHEIGHT, or a named paper size for PDF
            payload: Template payload

        Returns:
            RenderResult with bytes, SHA-256 content hash and MIME type

        Raises:
            RenderError: Categorised failure (validation, timeout, asset, crash, launch)
            FatalCrashThresholdExceeded: For the supervisor; the process should be recycled
        """
        request = build_request(template_key, template_version, format, variant, payload)
        return await self.render_request(request)

    async def render_request(self, request: RenderRequest) -> RenderResult:
        """Render an already constructed request."""
        try:
            template = self.validator.validate(request)
        except RenderValidationError as e:
            self.logger.info("Render request rejected", error=e.message, **request.log_context())
            raise

        self.logger.info("Render started", **request.log_context())
        return await self.executor.execute(template, request)

    async def shutdown(self) -> None:
        """Release the browser deterministically."""
        await self.browser_manager.shutdown()

    def stats(self) -> RendererStats:
        return RendererStats(
            browser_state=self.browser_manager.state,
            launch_count=self.browser_manager.launch_count,
            crashes=self.circuit_breaker.snapshot(),
        )


# Global renderer instance
_global_renderer: Optional[AssetRenderer] = None


def get_renderer() -> AssetRenderer:
    """Get the process-wide renderer, creating it on first use."""
    global _global_renderer
    if _global_renderer is None:
        _global_renderer = AssetRenderer()
    return _global_renderer


async def render(
    template_key: str,
    template_version: int,
    format: Union[str, RenderFormat],
    variant: str,
    payload: Optional[Dict[str, Any]] = None,
) -> RenderResult:
    """Render with the process-wide renderer."""
    return await get_renderer().render(template_key, template_version, format, variant, payload)


async def shutdown() -> None:
    """Shut down the process-wide renderer, if one was created."""
    global _global_renderer
    if _global_renderer is not None:
        await _global_renderer.shutdown()
        _global_renderer = None
