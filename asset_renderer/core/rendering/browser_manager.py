"""
Browser Resource Manager
========================

Owns the single shared headless-browser process: launches it lazily,
coalesces concurrent launch attempts, watches for disconnects and is the only
component that terminates the process.

The browser is kept warm across renders. It is replaced only after a
disconnect, a forced invalidation by the crash policy, or ``shutdown()``.
A replaced browser that still has renders in flight is closed once the last
of them releases it.
"""

from typing import Any, Dict, Optional, Set
import asyncio
import weakref

from asset_renderer.config.logging import get_logger
from asset_renderer.models.schemas import BrowserState
from .browser import BrowserFailure, BrowserHandle, BrowserLauncher

logger = get_logger(__name__)


class BrowserResourceManager:
    """Lazily launched, shared browser process.

    Bound to the event loop it is first used on: Playwright's async objects
    belong to the loop that created them, so a process runs one renderer loop.
    State changes happen between await points, so no lock is held while a
    caller is suspended on a launch.
    """

    def __init__(self, launcher: BrowserLauncher):
        self.launcher = launcher
        self.launch_count = 0
        self._handle: Optional[BrowserHandle] = None
        self._state = BrowserState.ABSENT
        self._launch_task: Optional["asyncio.Future[BrowserHandle]"] = None
        # Renders currently using each browser
        self._holds: Dict[BrowserHandle, int] = {}
        # Replaced browsers waiting for their last render to finish
        self._draining: Set[BrowserHandle] = set()
        # Browsers whose crash has already been reported
        self._reported: "weakref.WeakSet[BrowserHandle]" = weakref.WeakSet()
        self._unreported_launch_failure: Optional[BaseException] = None
        self.logger: Any = logger.bind(component="browser_manager")

    @property
    def state(self) -> BrowserState:
        if self._launch_task is not None:
            return BrowserState.LAUNCHING
        return self._state

    async def acquire(self) -> BrowserHandle:
        """Return the ready browser, launching one if needed.

        Concurrent callers during a launch all await the same in-flight
        attempt and receive its handle or its error.
        """
        handle = self._handle
        if handle is not None and self._state == BrowserState.READY:
            if handle.is_connected():
                return handle
            self._mark_disconnected(handle)

        if self._launch_task is None:
            self._launch_task = asyncio.ensure_future(self._launch())
        # Shielded so one cancelled waiter does not abort the shared launch
        return await asyncio.shield(self._launch_task)

    def hold(self, handle: BrowserHandle) -> None:
        """Mark a render as using ``handle``; pair with ``release()``."""
        self._holds[handle] = self._holds.get(handle, 0) + 1

    async def release(self, handle: BrowserHandle) -> None:
        """End a render's use of ``handle``, closing it if it was replaced meanwhile."""
        remaining = self._holds.get(handle, 0) - 1
        if remaining > 0:
            self._holds[handle] = remaining
            return
        self._holds.pop(handle, None)
        if handle in self._draining:
            self._draining.discard(handle)
            await self._close_quietly(handle)

    def invalidate(self, handle: Optional[BrowserHandle] = None) -> bool:
        """Force the next ``acquire()`` to launch a fresh process.

        With ``handle`` given, only invalidates if it is still the current one,
        so a late report about an already replaced browser is ignored.
        Returns True if the current browser was invalidated by this call.
        """
        if self._handle is None or (handle is not None and handle is not self._handle):
            return False
        if self._state != BrowserState.READY:
            return False
        self._state = BrowserState.DISCONNECTED
        self.logger.warning("Browser invalidated", launch_count=self.launch_count)
        return True

    def report_crash(self, handle: Optional[BrowserHandle], error: BrowserFailure) -> bool:
        """Report a crash of ``handle``, or of the launch when ``handle`` is None.

        Invalidates the browser and returns True for the first report only.
        Every caller that shared the browser or the failed launch sees the
        same failure, but it is one crash.
        """
        if handle is None:
            if error is not self._unreported_launch_failure:
                return False
            self._unreported_launch_failure = None
            return True

        if handle in self._reported:
            return False
        self._reported.add(handle)
        self.invalidate(handle)
        return True

    async def shutdown(self) -> None:
        """Close the browser and stop the driver."""
        task = self._launch_task
        if task is not None:
            try:
                await asyncio.shield(task)
            except Exception as e:
                self.logger.warning("In-flight launch failed during shutdown", error=str(e))

        handle, self._handle = self._handle, None
        self._state = BrowserState.ABSENT
        closing = list(self._draining)
        self._draining.clear()
        if handle is not None:
            closing.append(handle)
        for browser in closing:
            # Renders cut off by shutdown are not browser crashes
            self._reported.add(browser)
            await self._close_quietly(browser)
        await self.launcher.stop()
        self.logger.info("Browser manager shut down")

    async def _launch(self) -> BrowserHandle:
        try:
            stale, self._handle = self._handle, None
            self._state = BrowserState.ABSENT
            if stale is not None:
                await self._retire(stale)

            self.logger.info("Launching browser", launch_count=self.launch_count + 1)
            handle = await self.launcher.launch()
            self.launch_count += 1

            handle.on_disconnect(lambda: self._mark_disconnected(handle))
            self._handle = handle
            self._state = BrowserState.READY
            return handle
        except Exception as e:
            self._unreported_launch_failure = e
            self.logger.error("Browser launch failed", error=str(e))
            raise
        finally:
            self._launch_task = None

    async def _retire(self, handle: BrowserHandle) -> None:
        if self._holds.get(handle):
            self._draining.add(handle)
            self.logger.info("Replaced browser closes after in-flight renders", renders=self._holds[handle])
            return
        await self._close_quietly(handle)

    def _mark_disconnected(self, handle: BrowserHandle) -> None:
        if handle is self._handle and self._state == BrowserState.READY:
            self._state = BrowserState.DISCONNECTED
            self.logger.warning("Browser disconnected", launch_count=self.launch_count)

    async def _close_quietly(self, handle: BrowserHandle) -> None:
        try:
            await handle.close()
        except Exception as e:
            self.logger.warning("Closing browser failed", error=str(e))
