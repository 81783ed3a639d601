"""
Unit Tests for the Browser Resource Manager
===========================================

Lazy launch, launch coalescing, disconnect handling, invalidation and
shutdown of the shared browser process.
"""

import asyncio

import pytest

from asset_renderer.core.rendering.browser import BrowserFailure
from asset_renderer.core.rendering.browser_manager import BrowserResourceManager
from asset_renderer.models.schemas import BrowserState

from tests.utils.mocks import FakeBrowserLauncher, crash_error


class TestBrowserResourceManager:
    """Test shared browser lifecycle."""

    def test_initial_state(self):
        """Test nothing is launched until first use."""
        launcher = FakeBrowserLauncher()
        manager = BrowserResourceManager(launcher)

        assert manager.state == BrowserState.ABSENT
        assert manager.launch_count == 0
        assert launcher.launch_calls == 0

    @pytest.mark.asyncio
    async def test_acquire_launches_lazily(self):
        """Test the first acquire launches and later ones reuse the browser."""
        launcher = FakeBrowserLauncher()
        manager = BrowserResourceManager(launcher)

        first = await manager.acquire()
        second = await manager.acquire()

        assert first is second
        assert launcher.launch_calls == 1
        assert manager.launch_count == 1
        assert manager.state == BrowserState.READY

    @pytest.mark.asyncio
    async def test_concurrent_acquires_share_one_launch(self):
        """Test callers arriving during a launch await the same attempt."""
        launcher = FakeBrowserLauncher(launch_delay=0.05)
        manager = BrowserResourceManager(launcher)

        handles = await asyncio.gather(*(manager.acquire() for _ in range(10)))

        assert launcher.launch_calls == 1
        assert all(handle is handles[0] for handle in handles)

    @pytest.mark.asyncio
    async def test_state_is_launching_while_in_flight(self):
        """Test the state reports LAUNCHING while a launch is pending."""
        launcher = FakeBrowserLauncher(launch_delay=0.05)
        manager = BrowserResourceManager(launcher)

        task = asyncio.ensure_future(manager.acquire())
        await asyncio.sleep(0)
        assert manager.state == BrowserState.LAUNCHING

        await task
        assert manager.state == BrowserState.READY

    @pytest.mark.asyncio
    async def test_concurrent_acquires_share_launch_error(self):
        """Test every waiter receives the error of the shared launch."""
        error = BrowserFailure("Executable doesn't exist")
        launcher = FakeBrowserLauncher(launch_errors=[error], launch_delay=0.05)
        manager = BrowserResourceManager(launcher)

        results = await asyncio.gather(*(manager.acquire() for _ in range(5)), return_exceptions=True)

        assert launcher.launch_calls == 1
        assert all(result is error for result in results)
        assert manager.state == BrowserState.ABSENT

    @pytest.mark.asyncio
    async def test_launch_retried_after_failure(self):
        """Test a failed launch does not poison later acquires."""
        launcher = FakeBrowserLauncher(launch_errors=[BrowserFailure("spawn failed")])
        manager = BrowserResourceManager(launcher)

        with pytest.raises(BrowserFailure):
            await manager.acquire()
        handle = await manager.acquire()

        assert handle.is_connected()
        assert launcher.launch_calls == 2
        assert manager.launch_count == 1

    @pytest.mark.asyncio
    async def test_disconnect_triggers_relaunch(self):
        """Test a disconnected browser is replaced on the next acquire."""
        launcher = FakeBrowserLauncher()
        manager = BrowserResourceManager(launcher)

        first = await manager.acquire()
        first.disconnect()
        assert manager.state == BrowserState.DISCONNECTED

        second = await manager.acquire()

        assert second is not first
        assert launcher.launch_calls == 2
        assert first.closed is True
        assert manager.state == BrowserState.READY

    @pytest.mark.asyncio
    async def test_silent_disconnect_detected_on_acquire(self):
        """Test a handle that lost its connection without an event is replaced."""
        launcher = FakeBrowserLauncher()
        manager = BrowserResourceManager(launcher)

        first = await manager.acquire()
        first.connected = False

        second = await manager.acquire()
        assert second is not first
        assert manager.launch_count == 2

    @pytest.mark.asyncio
    async def test_invalidate_forces_relaunch(self):
        """Test invalidation makes the next acquire launch a fresh process."""
        launcher = FakeBrowserLauncher()
        manager = BrowserResourceManager(launcher)

        first = await manager.acquire()
        manager.invalidate(first)
        assert manager.state == BrowserState.DISCONNECTED

        second = await manager.acquire()
        assert second is not first
        assert first.closed is True

    @pytest.mark.asyncio
    async def test_invalidate_ignores_replaced_handle(self):
        """Test a late report about an old browser leaves the new one alone."""
        launcher = FakeBrowserLauncher()
        manager = BrowserResourceManager(launcher)

        first = await manager.acquire()
        manager.invalidate(first)
        second = await manager.acquire()

        manager.invalidate(first)
        first.disconnect()

        assert manager.state == BrowserState.READY
        assert await manager.acquire() is second

    @pytest.mark.asyncio
    async def test_shutdown_closes_browser(self):
        """Test shutdown closes the browser and stops the driver."""
        launcher = FakeBrowserLauncher()
        manager = BrowserResourceManager(launcher)

        handle = await manager.acquire()
        await manager.shutdown()

        assert handle.closed is True
        assert launcher.stop_calls == 1
        assert manager.state == BrowserState.ABSENT

    @pytest.mark.asyncio
    async def test_shutdown_without_browser(self):
        """Test shutdown before any launch is harmless."""
        launcher = FakeBrowserLauncher()
        manager = BrowserResourceManager(launcher)

        await manager.shutdown()

        assert launcher.launch_calls == 0
        assert launcher.stop_calls == 1

    @pytest.mark.asyncio
    async def test_shutdown_waits_for_in_flight_launch(self):
        """Test a browser launching during shutdown is still closed."""
        launcher = FakeBrowserLauncher(launch_delay=0.05)
        manager = BrowserResourceManager(launcher)

        acquire = asyncio.ensure_future(manager.acquire())
        await asyncio.sleep(0)
        await manager.shutdown()
        handle = await acquire

        assert handle.closed is True
        assert manager.state == BrowserState.ABSENT

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_abort_launch(self):
        """Test cancelling one waiter leaves the shared launch running."""
        launcher = FakeBrowserLauncher(launch_delay=0.05)
        manager = BrowserResourceManager(launcher)

        cancelled = asyncio.ensure_future(manager.acquire())
        survivor = asyncio.ensure_future(manager.acquire())
        await asyncio.sleep(0)
        cancelled.cancel()

        handle = await survivor
        assert handle.is_connected()
        assert launcher.launch_calls == 1


class TestCrashReports:
    """Test each crash is reported once however many renders observe it."""

    @pytest.mark.asyncio
    async def test_browser_crash_reported_once(self):
        """Test the first report invalidates the browser and later ones are ignored."""
        launcher = FakeBrowserLauncher()
        manager = BrowserResourceManager(launcher)

        handle = await manager.acquire()

        assert manager.report_crash(handle, crash_error()) is True
        assert manager.state == BrowserState.DISCONNECTED
        assert manager.report_crash(handle, crash_error()) is False

    @pytest.mark.asyncio
    async def test_shared_launch_failure_reported_once(self):
        """Test waiters on one failed launch share a single report."""
        launcher = FakeBrowserLauncher(
            launch_errors=[crash_error("Browser closed during startup")], launch_delay=0.01
        )
        manager = BrowserResourceManager(launcher)

        errors = await asyncio.gather(manager.acquire(), manager.acquire(), return_exceptions=True)

        assert errors[0] is errors[1]
        assert manager.report_crash(None, errors[0]) is True
        assert manager.report_crash(None, errors[1]) is False
        assert manager.report_crash(None, crash_error()) is False

    @pytest.mark.asyncio
    async def test_closed_by_shutdown_not_reported(self):
        """Test failures on a browser closed by shutdown are not crashes."""
        launcher = FakeBrowserLauncher()
        manager = BrowserResourceManager(launcher)

        handle = await manager.acquire()
        await manager.shutdown()

        assert manager.report_crash(handle, crash_error()) is False


class TestHeldBrowsers:
    """Test replaced browsers stay open for the renders still using them."""

    @pytest.mark.asyncio
    async def test_replaced_browser_closed_on_last_release(self):
        """Test a held browser is closed only when its last holder releases it."""
        launcher = FakeBrowserLauncher()
        manager = BrowserResourceManager(launcher)

        first = await manager.acquire()
        manager.hold(first)
        manager.hold(first)
        manager.invalidate(first)
        second = await manager.acquire()

        assert second is not first
        assert first.closed is False

        await manager.release(first)
        assert first.closed is False

        await manager.release(first)
        assert first.closed is True
        assert second.closed is False

    @pytest.mark.asyncio
    async def test_release_keeps_current_browser(self):
        """Test releasing the current browser leaves it warm."""
        launcher = FakeBrowserLauncher()
        manager = BrowserResourceManager(launcher)

        handle = await manager.acquire()
        manager.hold(handle)
        await manager.release(handle)

        assert handle.closed is False
        assert await manager.acquire() is handle

    @pytest.mark.asyncio
    async def test_shutdown_closes_replaced_browser(self):
        """Test shutdown also closes a replaced browser still held by a render."""
        launcher = FakeBrowserLauncher()
        manager = BrowserResourceManager(launcher)

        first = await manager.acquire()
        manager.hold(first)
        manager.invalidate(first)
        second = await manager.acquire()
        await manager.shutdown()

        assert first.closed is True
        assert second.closed is True

        await manager.release(first)
