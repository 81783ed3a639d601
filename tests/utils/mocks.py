"""
Test Mocks
===========

Fake implementations of the browser capability interface. They record every
operation so tests can assert on call counts without a real browser process.
"""

import asyncio
import io
from typing import Any, Callable, Dict, List, Optional, Tuple

from PIL import Image

from asset_renderer.core.rendering.browser import (
    BrowserContextHandle,
    BrowserFailure,
    BrowserFailureReason,
    BrowserHandle,
    BrowserLauncher,
    BrowserTimeout,
)

DEFAULT_VIEWPORT = (1280, 720)


def crash_error(message: str = "Target page, context or browser has been closed") -> BrowserFailure:
    """A crash-classified boundary failure."""
    return BrowserFailure(message, BrowserFailureReason.CLOSED)


def png_bytes(width: int, height: int) -> bytes:
    """A real, deterministic PNG of the given size."""
    output = io.BytesIO()
    Image.new("RGBA", (width, height), (26, 86, 66, 255)).save(output, format="PNG")
    return output.getvalue()


class FakeRenderContext(BrowserContextHandle):
    """Browsing context that renders nothing but behaves like one."""

    def __init__(
        self,
        browser: "FakeBrowserHandle",
        ready: bool = True,
        failed_image: Optional[str] = None,
        fail_on: Optional[Dict[str, BaseException]] = None,
        close_error: Optional[BaseException] = None,
        load_delay: float = 0.0,
    ):
        self.browser = browser
        self.ready = ready
        self.failed_image = failed_image
        self.fail_on = fail_on or {}
        self.close_error = close_error
        self.load_delay = load_delay
        self.calls: List[str] = []
        self.close_calls = 0
        self.viewport: Tuple[int, int] = DEFAULT_VIEWPORT
        self.viewport_set_before_load: Optional[bool] = None
        self.markup: Optional[str] = None
        self.pdf_options: Dict[str, Any] = {}

    def _step(self, name: str) -> None:
        self.calls.append(name)
        self.browser.operations += 1
        if self.browser.closed:
            raise crash_error()
        if name in self.fail_on:
            raise self.fail_on[name]

    async def set_viewport(self, width: int, height: int) -> None:
        self._step("set_viewport")
        self.viewport = (width, height)

    async def load_content(self, markup: str) -> None:
        if self.load_delay:
            await asyncio.sleep(self.load_delay)
        self._step("load_content")
        self.viewport_set_before_load = "set_viewport" in self.calls
        self.markup = markup

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> None:
        self._step("wait_for_selector")
        if not self.ready:
            raise BrowserTimeout(f"Timeout {timeout_ms}ms exceeded waiting for {selector}")

    async def evaluate(self, expression: str) -> Any:
        if "document.images" in expression:
            self._step("wait_for_images")
            return self.failed_image
        self._step("wait_for_fonts")
        return True

    async def screenshot(self) -> bytes:
        self._step("screenshot")
        return png_bytes(*self.viewport)

    async def pdf(
        self,
        paper_format: Optional[str] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> bytes:
        self._step("pdf")
        self.pdf_options = {"paper_format": paper_format, "width": width, "height": height}
        page = paper_format or f"{width}x{height}"
        return f"%PDF-1.7\n% fake page {page}\n{self.markup}".encode("utf-8")

    async def close(self) -> None:
        self.calls.append("close")
        self.close_calls += 1
        if self.close_error is not None:
            raise self.close_error


class FakeBrowserHandle(BrowserHandle):
    """Browser process stand-in.

    Each ``context_plan`` entry shapes one ``new_context()`` call in order:
    an exception is raised, a dict overrides ``context_kwargs``.
    """

    def __init__(
        self,
        context_kwargs: Optional[Dict[str, Any]] = None,
        new_context_errors: Optional[List[BaseException]] = None,
        context_plan: Optional[List[Any]] = None,
    ):
        self.context_kwargs = context_kwargs or {}
        self.new_context_errors = list(new_context_errors or [])
        self.context_plan = list(context_plan or [])
        self.connected = True
        self.closed = False
        self.contexts: List[FakeRenderContext] = []
        self.operations = 0
        self._disconnect_callbacks: List[Callable[[], None]] = []

    def is_connected(self) -> bool:
        return self.connected and not self.closed

    def on_disconnect(self, callback: Callable[[], None]) -> None:
        self._disconnect_callbacks.append(callback)

    def disconnect(self) -> None:
        """Simulate the process dying."""
        self.connected = False
        for callback in self._disconnect_callbacks:
            callback()

    async def new_context(self) -> BrowserContextHandle:
        self.operations += 1
        if self.new_context_errors:
            raise self.new_context_errors.pop(0)
        kwargs = self.context_kwargs
        if self.context_plan:
            planned = self.context_plan.pop(0)
            if isinstance(planned, BaseException):
                raise planned
            kwargs = {**kwargs, **planned}
        context = FakeRenderContext(self, **kwargs)
        self.contexts.append(context)
        return context

    async def close(self) -> None:
        self.closed = True
        self.connected = False


class FakeBrowserLauncher(BrowserLauncher):
    """Launcher producing ``FakeBrowserHandle`` instances.

    ``launch_errors`` are raised by successive launches before any succeeds;
    ``launch_delay`` keeps a launch in flight long enough to observe coalescing.
    ``new_context_errors`` go to the first launched browser only, unless
    ``repeat_context_errors`` hands a fresh copy to every browser. A
    ``context_plan`` also goes to the first browser only.
    """

    def __init__(
        self,
        launch_errors: Optional[List[BaseException]] = None,
        launch_delay: float = 0.0,
        context_kwargs: Optional[Dict[str, Any]] = None,
        new_context_errors: Optional[List[BaseException]] = None,
        repeat_context_errors: bool = False,
        context_plan: Optional[List[Any]] = None,
    ):
        self.launch_errors = list(launch_errors or [])
        self.launch_delay = launch_delay
        self.context_kwargs = context_kwargs or {}
        self.new_context_errors = list(new_context_errors or [])
        self.repeat_context_errors = repeat_context_errors
        self.context_plan = list(context_plan or [])
        self.launch_calls = 0
        self.stop_calls = 0
        self.handles: List[FakeBrowserHandle] = []

    async def launch(self) -> BrowserHandle:
        self.launch_calls += 1
        if self.launch_delay:
            await asyncio.sleep(self.launch_delay)
        if self.launch_errors:
            raise self.launch_errors.pop(0)
        handle = FakeBrowserHandle(self.context_kwargs, self.new_context_errors, self.context_plan)
        self.context_plan = []
        if not self.repeat_context_errors:
            self.new_context_errors = []
        self.handles.append(handle)
        return handle

    async def stop(self) -> None:
        self.stop_calls += 1

    @property
    def browser_operations(self) -> int:
        """Launches plus every operation performed on launched browsers."""
        return self.launch_calls + sum(handle.operations for handle in self.handles)

    @property
    def contexts(self) -> List[FakeRenderContext]:
        return [context for handle in self.handles for context in handle.contexts]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
