"""
Logging Configuration
=====================

structlog on top of stdlib logging. Development and testing get readable
console lines; production gets JSON on stdout plus rotating log files.
"""

import logging
import logging.config
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, TYPE_CHECKING

import structlog
from structlog.types import Processor

from .settings import get_settings

if TYPE_CHECKING:
    from .settings import Settings

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

# Third-party loggers that only speak up for warnings
QUIET_LOGGERS = ("asyncio", "playwright")

SHARED_PROCESSORS: List[Processor] = [
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
]


def _is_production(settings: "Settings") -> bool:
    return settings.environment == "production"


def _final_renderer(settings: "Settings") -> Processor:
    if _is_production(settings):
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=settings.environment == "development")


def _rotating_file(path: Path, level: str, formatter: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": formatter,
        "filename": str(path),
        "maxBytes": LOG_FILE_MAX_BYTES,
        "backupCount": LOG_FILE_BACKUPS,
    }


def get_logging_config(settings: "Settings") -> Dict[str, Any]:
    """Build the ``dictConfig`` mapping for ``settings``."""
    production = _is_production(settings)

    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": settings.log_level,
            "formatter": "json" if production else "standard",
            "stream": sys.stdout,
        },
    }
    if production:
        handlers["file"] = _rotating_file(settings.log_path / "renderer.log", settings.log_level, "json")
        handlers["error_file"] = _rotating_file(settings.log_path / "error.log", "ERROR", "detailed")

    loggers: Dict[str, Any] = {
        "": {"level": settings.log_level, "handlers": list(handlers), "propagate": False},
    }
    for name in QUIET_LOGGERS:
        loggers[name] = {"level": "WARNING", "handlers": ["console"], "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            # structlog has already rendered the line
            "standard": {"format": "%(message)s"},
            "detailed": {
                "format": "%(asctime)s %(levelname)-8s %(name)s:%(lineno)d %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S",
            },
            "json": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
            },
        },
        "handlers": handlers,
        "loggers": loggers,
    }


def setup_logging(settings: Optional["Settings"] = None) -> None:
    """Configure structlog and the stdlib handlers behind it."""
    settings = settings or get_settings()
    if _is_production(settings):
        settings.log_path.mkdir(parents=True, exist_ok=True)

    structlog.configure(
        processors=[*SHARED_PROCESSORS, _final_renderer(settings)],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.config.dictConfig(get_logging_config(settings))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Structured logger for ``name``; bind component context on it."""
    return structlog.get_logger(name)


setup_logging()
