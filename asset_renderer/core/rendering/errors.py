"""
Render Errors
=============

Error taxonomy surfaced by the renderer. Every terminal error carries a stable
``category`` so the HTTP and queue layers can map it to a client status code or
to requeue behaviour without parsing messages.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .browser import BrowserFailureReason


class ErrorCategory(str, Enum):
    """Stable error categories exposed to collaborators."""
    VALIDATION = "validation"
    READINESS_TIMEOUT = "readiness_timeout"
    ASSET_LOAD_FAILED = "asset_load_failed"
    BROWSER_CRASH = "browser_crash"
    LAUNCH_FAILED = "launch_failed"
    RENDER_FAILED = "render_failed"


class RenderError(Exception):
    """Base class for render failures returned to callers."""

    category: ErrorCategory = ErrorCategory.RENDER_FAILED

    def __init__(
        self,
        message: str,
        template_key: Optional[str] = None,
        template_version: Optional[int] = None,
        variant: Optional[str] = None,
        format: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.template_key = template_key
        self.template_version = template_version
        self.variant = variant
        self.format = format

    def with_context(self, context: Dict[str, Any]) -> "RenderError":
        """Fill in request context fields that are not yet set."""
        for field in ("template_key", "template_version", "variant", "format"):
            if getattr(self, field) is None and field in context:
                setattr(self, field, context[field])
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.category.value,
            "type": type(self).__name__,
            "message": self.message,
            "template_key": self.template_key,
            "template_version": self.template_version,
            "variant": self.variant,
            "format": self.format,
        }


# Validation
class RenderValidationError(RenderError):
    """The request is malformed. Never retried and never touches the browser."""

    category = ErrorCategory.VALIDATION


class UnknownTemplate(RenderValidationError):
    """Template key is not registered."""

    def __init__(self, template_key: str, available: List[str]):
        super().__init__(
            f"Unknown template: {template_key}. Available: {', '.join(available)}",
            template_key=template_key,
        )
        self.available = available


class UnsupportedVersion(RenderValidationError):
    """Template key exists but not at the requested version."""

    def __init__(self, template_key: str, template_version: Any, available_versions: List[int]):
        super().__init__(
            f"Unsupported version {template_version} for template {template_key}. "
            f"Available versions: {', '.join(str(v) for v in available_versions)}",
            template_key=template_key,
        )
        self.available_versions = available_versions


class InvalidFormat(RenderValidationError):
    """Format is neither PNG nor PDF."""

    def __init__(self, format: Any):
        super().__init__(f"Invalid format: {format}. Must be PNG or PDF", format=str(format))


class InvalidVariant(RenderValidationError):
    """Variant does not match the format-specific pattern."""

    def __init__(self, variant: Any, format: str, expected: str):
        super().__init__(
            f"Invalid {format} variant: {variant}. Must be {expected}",
            variant=str(variant),
            format=format,
        )


# Render phase
class ReadinessTimeout(RenderError):
    """The document never signalled readiness before the timeout."""

    category = ErrorCategory.READINESS_TIMEOUT


class ImageLoadFailed(RenderError):
    """An embedded image failed to load."""

    category = ErrorCategory.ASSET_LOAD_FAILED

    def __init__(self, source: str, **context: Any):
        super().__init__(f"Image failed to load: {source}", **context)
        self.source = source


class BrowserCrash(RenderError):
    """The browser process, context or page died underneath a render."""

    category = ErrorCategory.BROWSER_CRASH

    def __init__(self, message: str, reason: "BrowserFailureReason", **context: Any):
        super().__init__(message, **context)
        self.reason = reason


class BrowserLaunchError(RenderError):
    """The browser process could not be started."""

    category = ErrorCategory.LAUNCH_FAILED


class RenderFailed(RenderError):
    """Any other failure while rendering."""

    category = ErrorCategory.RENDER_FAILED


# Escalation
@dataclass(frozen=True)
class FatalEscalation:
    """Record of crashes clustering past the circuit-breaker threshold."""
    crash_count: int
    threshold: int
    window_seconds: float
    window_started_at: float
    last_error: str


class FatalCrashThresholdExceeded(Exception):
    """Signal for the supervisor boundary: the process should be recycled.

    Not a ``RenderError``, so ``except RenderError`` handlers let it through
    to the supervisor.
    """

    def __init__(self, escalation: FatalEscalation):
        super().__init__(
            f"Browser crashed {escalation.crash_count} times within "
            f"{escalation.window_seconds:g}s (threshold {escalation.threshold}): {escalation.last_error}"
        )
        self.escalation = escalation
