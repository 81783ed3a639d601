"""
Renderer Settings
=================

Runtime configuration read from ``ASSET_RENDERER_*`` environment variables or
an optional ``.env`` file. One cached instance per process.
"""

from typing import Annotated, List, Optional, Union
import json
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_ASSETS_PATH = Path(__file__).resolve().parent.parent / "assets"

ENVIRONMENTS = ("development", "testing", "production")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Chromium inside containers runs without a usable sandbox or a large /dev/shm
DEFAULT_LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox", "--disable-dev-shm-usage"]


class Settings(BaseSettings):
    """Asset renderer configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ASSET_RENDERER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Service
    app_name: str = Field(default="Asset Renderer", description="Service name used in logs")
    app_version: str = Field(default="1.0.0", description="Service version")
    environment: str = Field(default="development", description=f"One of: {', '.join(ENVIRONMENTS)}")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Root log level")
    log_path: Path = Field(default=Path("./logs"), description="Directory for production log files")
    assets_path: Path = Field(default=DEFAULT_ASSETS_PATH, description="Template artwork directory")

    # Chromium
    playwright_headless: bool = Field(default=True, description="Launch Chromium headless")
    playwright_timeout: int = Field(
        default=30000, gt=0, description="Default page navigation/action timeout (ms)"
    )
    browser_launch_args: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_LAUNCH_ARGS), description="Extra Chromium switches"
    )

    # Readiness contract between templates and the executor
    readiness_selector: str = Field(
        default='[data-render-ready="1"]', description="Selector present once the page may be captured"
    )
    readiness_timeout_ms: int = Field(default=10000, gt=0, description="Readiness wait timeout (ms)")
    image_source_preview_length: int = Field(
        default=100, gt=0, description="Characters of a failing image source kept in errors"
    )

    # Crash circuit breaker and supervisor
    crash_threshold: int = Field(default=3, gt=0, description="Crashes per window that escalate")
    crash_window_seconds: float = Field(default=60.0, gt=0, description="Crash counting window (s)")
    fatal_exit_grace_seconds: float = Field(
        default=1.0, ge=0, description="Delay before exiting on escalation (s)"
    )
    fatal_exit_code: int = Field(default=1, description="Exit status on escalation")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        if v not in ENVIRONMENTS:
            raise ValueError(f"environment must be one of: {', '.join(ENVIRONMENTS)}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {', '.join(LOG_LEVELS)}")
        return level

    @field_validator("browser_launch_args", mode="before")
    @classmethod
    def parse_launch_args(cls, v: Union[str, List[str]]) -> List[str]:
        """Accept a JSON list or a comma-separated string."""
        if not isinstance(v, str):
            return v
        text = v.strip()
        if text.startswith("["):
            try:
                return json.loads(text)
            except json.JSONDecodeError:
                pass
        return [arg.strip() for arg in text.split(",") if arg.strip()]


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Process-wide settings, created on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Re-read the environment and replace the cached settings."""
    global _settings
    _settings = Settings()
    return _settings
