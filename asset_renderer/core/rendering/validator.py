"""
Request Validator
=================

Checks a render request against the template registry and the permitted
formats and variants. Runs before any browser resource is touched.
"""

from typing import Optional, Tuple
import re

from asset_renderer.core.templates.registry import ResolvedTemplate, TemplateRegistry
from asset_renderer.models.schemas import RenderFormat, RenderRequest
from .errors import InvalidFormat, InvalidVariant, UnknownTemplate, UnsupportedVersion

# Common presets for reference; any WIDTHxHEIGHT within bounds is accepted
PNG_VARIANT_PRESETS = ("1080x1080", "1080x1350", "1080x1920", "1920x1080", "800x800", "1200x630", "500x500")
VALID_PDF_VARIANTS = ("A4", "A5")

MIN_DIMENSION = 10
MAX_DIMENSION = 10000

_DIMENSIONS = re.compile(r"^(\d+)x(\d+)$")


def parse_dimensions(variant: str) -> Optional[Tuple[int, int]]:
    """Parse ``WIDTHxHEIGHT``; None if the variant is not in that form or out of bounds."""
    match = _DIMENSIONS.match(variant)
    if not match:
        return None
    width, height = int(match.group(1)), int(match.group(2))
    if not (MIN_DIMENSION <= width <= MAX_DIMENSION and MIN_DIMENSION <= height <= MAX_DIMENSION):
        return None
    return width, height


def named_paper_size(variant: str) -> Optional[str]:
    """Return the canonical paper size name for ``variant`` if it is one."""
    upper = variant.upper()
    return upper if upper in VALID_PDF_VARIANTS else None


class RequestValidator:
    """Validates render requests against a template registry."""

    def __init__(self, registry: TemplateRegistry):
        self.registry = registry

    def validate(self, request: RenderRequest) -> ResolvedTemplate:
        """Return the template for ``request`` or raise a ``RenderValidationError`` subclass."""
        if not self.registry.has_key(request.template_key):
            raise UnknownTemplate(request.template_key, self.registry.keys()).with_context(
                request.log_context()
            )

        template = self.registry.resolve(request.template_key, request.template_version)
        if template is None:
            raise UnsupportedVersion(
                request.template_key,
                request.template_version,
                self.registry.versions_for(request.template_key),
            ).with_context(request.log_context())

        if request.format not in (RenderFormat.PNG.value, RenderFormat.PDF.value):
            raise InvalidFormat(request.format).with_context(request.log_context())

        if request.format == RenderFormat.PNG.value:
            if parse_dimensions(request.variant) is None:
                raise InvalidVariant(
                    request.variant,
                    request.format,
                    f"WIDTHxHEIGHT with both dimensions between {MIN_DIMENSION} and {MAX_DIMENSION} "
                    f"(e.g. {', '.join(PNG_VARIANT_PRESETS)})",
                ).with_context(request.log_context())
        elif named_paper_size(request.variant) is None and parse_dimensions(request.variant) is None:
            raise InvalidVariant(
                request.variant,
                request.format,
                f"one of {', '.join(VALID_PDF_VARIANTS)} or WIDTHxHEIGHT "
                f"with both dimensions between {MIN_DIMENSION} and {MAX_DIMENSION}",
            ).with_context(request.log_context())

        return template
