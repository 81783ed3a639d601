"""
Pydantic Models and Schemas
===========================

Value objects exchanged between the renderer core and its collaborators:
render requests, render results and renderer health snapshots.
"""

from typing import Optional, Dict, Any
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# Enums
class RenderFormat(str, Enum):
    """Supported output formats."""
    PNG = "PNG"
    PDF = "PDF"


class BrowserState(str, Enum):
    """Lifecycle states of the shared browser process."""
    ABSENT = "absent"
    LAUNCHING = "launching"
    READY = "ready"
    DISCONNECTED = "disconnected"


MIME_TYPES: Dict[RenderFormat, str] = {
    RenderFormat.PNG: "image/png",
    RenderFormat.PDF: "application/pdf",
}


class RenderRequest(BaseModel):
    """A single render request.

    ``format`` is kept as the raw string so that an unsupported value reaches
    the validator and is reported as ``InvalidFormat`` rather than failing
    construction.
    """
    template_key: str = Field(..., alias="templateKey", description="Template identifier")
    template_version: int = Field(..., alias="templateVersion", gt=0, description="Template version")
    format: str = Field(..., description="Output format: PNG or PDF")
    variant: str = Field(..., description="WIDTHxHEIGHT or a named paper size")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Template payload")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @property
    def render_format(self) -> RenderFormat:
        return RenderFormat(self.format)

    def log_context(self) -> Dict[str, Any]:
        """Fields identifying this request in log lines and errors."""
        return {
            "template_key": self.template_key,
            "template_version": self.template_version,
            "format": self.format,
            "variant": self.variant,
        }


class RenderResult(BaseModel):
    """Result of a successful render. Ownership passes to the caller."""
    buffer: bytes = Field(..., description="Rendered PNG or PDF bytes", exclude=True)
    content_hash: str = Field(..., description="SHA-256 of buffer, hex encoded")
    mime_type: str = Field(..., description="MIME type of buffer")
    width: Optional[int] = Field(None, description="Pixel width for pixel-dimensioned output")
    height: Optional[int] = Field(None, description="Pixel height for pixel-dimensioned output")

    model_config = ConfigDict(frozen=True)

    @property
    def byte_size(self) -> int:
        return len(self.buffer)


class CrashCounterSnapshot(BaseModel):
    """Point-in-time view of the circuit breaker."""
    count: int = Field(0, ge=0, description="Crashes in the current window")
    window_started_at: Optional[float] = Field(None, description="Monotonic time of first crash in window")
    total_crashes: int = Field(0, ge=0, description="Crashes recorded since start")


class RendererStats(BaseModel):
    """Renderer health snapshot for collaborators."""
    browser_state: BrowserState
    launch_count: int = Field(0, ge=0, description="Browser processes launched since start")
    crashes: CrashCounterSnapshot
