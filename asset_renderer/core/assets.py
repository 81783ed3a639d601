"""
Asset Loading
=============

Static template assets (SVG artwork) embedded as base64 ``data:`` URIs so that
rendered markup never depends on the network or the filesystem layout of the
browser process.
"""

from typing import Dict
from functools import lru_cache
from pathlib import Path
import base64

from asset_renderer.config.logging import get_logger
from asset_renderer.config.settings import get_settings

logger = get_logger(__name__)


MIME_TYPES: Dict[str, str] = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".svg": "image/svg+xml",
    ".woff2": "font/woff2",
    ".woff": "font/woff",
    ".ttf": "font/ttf",
}

# Logical asset name -> path relative to the assets directory
ASSET_FILES: Dict[str, str] = {
    "gold_rosette": "shared/gold-rosette-award.svg",
    "silver_rosette": "shared/silver-rosette-award.svg",
    "bronze_rosette": "shared/bronze-rosette-award.svg",
    "green_rosette": "shared/green-rosette-award.svg",
    "logo": "shared/logo.svg",
    "golden_banner": "shared/golden-banner.svg",
    "certificate_divider": "certificate/divider.svg",
    "certificate_watermark": "certificate/watermark-overlay.svg",
    "congratulations_ribbon": "social-post/congratulations-ribbon.svg",
    "social_watermark": "social-post/watermark.svg",
}


def to_data_uri(file_path: Path) -> str:
    """Convert a file to a data URI."""
    mime = MIME_TYPES.get(file_path.suffix.lower(), "application/octet-stream")
    data = base64.b64encode(file_path.read_bytes()).decode("ascii")
    return f"data:{mime};base64,{data}"


@lru_cache(maxsize=None)
def load_asset(name: str) -> str:
    """Load a named asset as a data URI; empty string if it is missing."""
    relative = ASSET_FILES.get(name)
    if relative is None:
        raise KeyError(f"Unknown asset: {name}")

    asset_path = get_settings().assets_path / relative
    if not asset_path.exists():
        logger.warning("Asset not found", asset=name, path=str(asset_path))
        return ""
    return to_data_uri(asset_path)


def get_assets() -> Dict[str, str]:
    """All named assets as data URIs."""
    return {name: load_asset(name) for name in ASSET_FILES}
