"""
Playwright Adapter
==================

Playwright implementation of the browser capability interface. This is the
single place the boundary library is called; its errors are translated into
tagged ``BrowserFailure`` values on the way out.
"""

from typing import Any, AsyncGenerator, Callable, Optional
from contextlib import asynccontextmanager

from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    Page,
    Playwright,
    Error as PlaywrightError,
    TimeoutError as PlaywrightTimeoutError,
)

from asset_renderer.config.logging import get_logger
from asset_renderer.config.settings import Settings, get_settings
from .browser import (
    BrowserContextHandle,
    BrowserFailure,
    BrowserHandle,
    BrowserLauncher,
    BrowserTimeout,
)

logger = get_logger(__name__)


@asynccontextmanager
async def translate_errors(operation: str) -> AsyncGenerator[None, None]:
    """Translate Playwright errors raised inside the block into ``BrowserFailure``."""
    try:
        yield
    except PlaywrightTimeoutError as e:
        raise BrowserTimeout(f"{operation} timed out: {e}") from e
    except PlaywrightError as e:
        raise BrowserFailure.from_exception(e) from e


class PlaywrightRenderContext(BrowserContextHandle):
    """Browser context plus the single page renders draw into."""

    def __init__(self, context: BrowserContext, page: Page):
        self._context = context
        self._page = page

    async def set_viewport(self, width: int, height: int) -> None:
        async with translate_errors("set viewport"):
            await self._page.set_viewport_size({"width": width, "height": height})

    async def load_content(self, markup: str) -> None:
        async with translate_errors("load content"):
            await self._page.set_content(markup, wait_until="networkidle")

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> None:
        async with translate_errors(f"wait for {selector}"):
            await self._page.wait_for_selector(selector, state="attached", timeout=timeout_ms)

    async def evaluate(self, expression: str) -> Any:
        async with translate_errors("evaluate"):
            return await self._page.evaluate(expression)

    async def screenshot(self) -> bytes:
        async with translate_errors("screenshot"):
            return await self._page.screenshot(type="png")

    async def pdf(
        self,
        paper_format: Optional[str] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> bytes:
        async with translate_errors("print to pdf"):
            if paper_format:
                return await self._page.pdf(format=paper_format, print_background=True)
            return await self._page.pdf(
                width=f"{width}px", height=f"{height}px", print_background=True
            )

    async def close(self) -> None:
        async with translate_errors("close context"):
            await self._context.close()


class PlaywrightBrowserHandle(BrowserHandle):
    """A launched Chromium process."""

    def __init__(self, browser: Browser, settings: Settings):
        self._browser = browser
        self.settings = settings

    def is_connected(self) -> bool:
        return self._browser.is_connected()

    def on_disconnect(self, callback: Callable[[], None]) -> None:
        self._browser.on("disconnected", lambda _browser: callback())

    async def new_context(self) -> BrowserContextHandle:
        async with translate_errors("new context"):
            context = await self._browser.new_context()
            try:
                page = await context.new_page()
            except PlaywrightError:
                await context.close()
                raise
            page.set_default_timeout(self.settings.playwright_timeout)
        return PlaywrightRenderContext(context, page)

    async def close(self) -> None:
        async with translate_errors("close browser"):
            await self._browser.close()


class PlaywrightLauncher(BrowserLauncher):
    """Launches headless Chromium through a lazily started Playwright driver."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._playwright: Optional[Playwright] = None
        self.logger: Any = logger.bind(component="playwright_launcher")

    async def launch(self) -> BrowserHandle:
        async with translate_errors("launch browser"):
            if self._playwright is None:
                self._playwright = await async_playwright().start()
            browser = await self._playwright.chromium.launch(
                headless=self.settings.playwright_headless,
                args=self.settings.browser_launch_args,
            )
        self.logger.info("Browser launched", version=browser.version)
        return PlaywrightBrowserHandle(browser, self.settings)

    async def stop(self) -> None:
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
            self.logger.info("Playwright driver stopped")
