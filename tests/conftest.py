"""
Test Configuration
==================

Pytest configuration with fixtures for all test types.
Provides test settings, fake browser launchers and sample payloads.
"""

import os

os.environ.setdefault("ASSET_RENDERER_ENVIRONMENT", "testing")

from typing import Any, AsyncGenerator, Dict

import pytest
import pytest_asyncio
from pydantic_settings import SettingsConfigDict

from asset_renderer.config.settings import Settings
from asset_renderer.core.rendering.crash_policy import CrashCircuitBreaker
from asset_renderer.core.rendering.renderer import AssetRenderer
from asset_renderer.core.templates.registry import TemplateRegistry, get_template_registry

from tests.utils.mocks import FakeBrowserLauncher, FakeClock


class RendererTestSettings(Settings):
    """Test-specific settings."""

    environment: str = "testing"
    log_level: str = "DEBUG"
    readiness_timeout_ms: int = 500
    fatal_exit_grace_seconds: float = 0.0

    model_config = SettingsConfigDict(env_file=".env.test")


@pytest.fixture(scope="session")
def test_settings() -> RendererTestSettings:
    """Test settings fixture."""
    return RendererTestSettings()


@pytest.fixture
def registry() -> TemplateRegistry:
    """Default template registry."""
    return get_template_registry()


@pytest.fixture
def fake_clock() -> FakeClock:
    """Manually advanced clock for the circuit breaker."""
    return FakeClock()


@pytest.fixture
def circuit_breaker(fake_clock: FakeClock) -> CrashCircuitBreaker:
    """Circuit breaker with the default threshold and window on a fake clock."""
    return CrashCircuitBreaker(threshold=3, window_seconds=60.0, clock=fake_clock)


@pytest.fixture
def fake_launcher() -> FakeBrowserLauncher:
    """Launcher producing healthy fake browsers."""
    return FakeBrowserLauncher()


@pytest_asyncio.fixture
async def renderer(
    fake_launcher: FakeBrowserLauncher,
    circuit_breaker: CrashCircuitBreaker,
    test_settings: RendererTestSettings,
) -> AsyncGenerator[AssetRenderer, None]:
    """Renderer wired to the fake launcher."""
    asset_renderer = AssetRenderer(
        launcher=fake_launcher, circuit_breaker=circuit_breaker, settings=test_settings
    )
    yield asset_renderer
    await asset_renderer.shutdown()


@pytest.fixture
def award_payload() -> Dict[str, Any]:
    """Payload shared by the award templates."""
    return {
        "rank": 1,
        "locationName": "Wakefield",
        "clinicName": "Test Veterinary Clinic",
        "datePeriod": "June 2026",
        "websiteDomain": "www.example.com",
        "tier": "GOLD",
    }


@pytest.fixture
def rosette_payload() -> Dict[str, Any]:
    """Payload from the rosette-award example request."""
    return {"rank": 1, "locationName": "Wakefield", "datePeriod": "June 2026"}


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on file paths."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
