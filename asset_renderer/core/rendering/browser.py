"""
Browser Capability Interface
============================

Abstract capability set the renderer drives: launch a browser, open isolated
contexts, load markup, wait, capture and close. The Playwright implementation
lives in ``playwright_adapter``; tests substitute fakes.

Raw boundary-library errors are translated once, where the library is called,
into ``BrowserFailure`` tagged with a ``BrowserFailureReason``. Everything
above the adapter works with the tag instead of error strings.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Optional, Tuple


class BrowserFailureReason(str, Enum):
    """Closed set of boundary failure reasons."""
    CLOSED = "closed"
    CRASHED = "crashed"
    DISCONNECTED = "disconnected"
    OTHER = "other"


# Checked in order; the first fragment found in the lower-cased message wins.
CRASH_SIGNATURES: Tuple[Tuple[str, BrowserFailureReason], ...] = (
    ("crashed", BrowserFailureReason.CRASHED),
    ("disconnected", BrowserFailureReason.DISCONNECTED),
    ("connection closed", BrowserFailureReason.DISCONNECTED),
    ("target page, context or browser has been closed", BrowserFailureReason.CLOSED),
    ("target closed", BrowserFailureReason.CLOSED),
    ("browser has been closed", BrowserFailureReason.CLOSED),
    ("browser closed", BrowserFailureReason.CLOSED),
    ("context has been closed", BrowserFailureReason.CLOSED),
    ("context closed", BrowserFailureReason.CLOSED),
    ("page has been closed", BrowserFailureReason.CLOSED),
    ("page closed", BrowserFailureReason.CLOSED),
    ("process closed", BrowserFailureReason.CLOSED),
)


def reason_from_message(message: str) -> BrowserFailureReason:
    """Map a boundary error message onto a failure reason."""
    lowered = message.lower()
    for fragment, reason in CRASH_SIGNATURES:
        if fragment in lowered:
            return reason
    return BrowserFailureReason.OTHER


class BrowserFailure(Exception):
    """A failure raised by the browser boundary, tagged with its reason."""

    def __init__(self, message: str, reason: BrowserFailureReason = BrowserFailureReason.OTHER):
        super().__init__(message)
        self.message = message
        self.reason = reason

    @classmethod
    def from_exception(cls, exc: BaseException) -> "BrowserFailure":
        message = str(exc) or type(exc).__name__
        return cls(message, reason_from_message(message))


class BrowserTimeout(BrowserFailure):
    """A bounded wait on the page expired."""

    def __init__(self, message: str):
        super().__init__(message, BrowserFailureReason.OTHER)


class BrowserContextHandle(ABC):
    """An isolated browsing context with a single page."""

    @abstractmethod
    async def set_viewport(self, width: int, height: int) -> None:
        """Resize the layout viewport."""

    @abstractmethod
    async def load_content(self, markup: str) -> None:
        """Load markup and wait until network activity settles."""

    @abstractmethod
    async def wait_for_selector(self, selector: str, timeout_ms: int) -> None:
        """Wait for ``selector`` to be attached; raise ``BrowserTimeout`` on expiry."""

    @abstractmethod
    async def evaluate(self, expression: str) -> Any:
        """Evaluate a JavaScript expression in the page and return its result."""

    @abstractmethod
    async def screenshot(self) -> bytes:
        """Capture a PNG of the viewport."""

    @abstractmethod
    async def pdf(
        self,
        paper_format: Optional[str] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> bytes:
        """Print to PDF on a named paper size or an explicit pixel page size."""

    @abstractmethod
    async def close(self) -> None:
        """Release the context."""


class BrowserHandle(ABC):
    """A live browser process."""

    @abstractmethod
    def is_connected(self) -> bool:
        """Whether the process is still reachable."""

    @abstractmethod
    def on_disconnect(self, callback: Callable[[], None]) -> None:
        """Register ``callback`` to run when the process disconnects."""

    @abstractmethod
    async def new_context(self) -> BrowserContextHandle:
        """Open an isolated browsing context."""

    @abstractmethod
    async def close(self) -> None:
        """Terminate the process."""


class BrowserLauncher(ABC):
    """Starts browser processes."""

    @abstractmethod
    async def launch(self) -> BrowserHandle:
        """Start a new browser process."""

    async def stop(self) -> None:
        """Release driver resources once no browser is needed any more."""
