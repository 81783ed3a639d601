"""
Markup Producer
===============

Invokes a resolved template with the request payload. Pure and stateless.
"""

from typing import Any, Mapping

import jinja2

from asset_renderer.core.templates.registry import ResolvedTemplate
from .errors import RenderFailed


def produce_markup(template: ResolvedTemplate, payload: Mapping[str, Any]) -> str:
    """Render ``template`` against ``payload``.

    Raises:
        RenderFailed: If the template rejects the payload
    """
    try:
        return template(payload)
    except (jinja2.TemplateError, TypeError, ValueError, KeyError) as e:
        raise RenderFailed(
            f"Template {template.key} v{template.version} failed to produce markup: {e}",
            template_key=template.key,
            template_version=template.version,
        ) from e
