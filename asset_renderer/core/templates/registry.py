"""
Template Registry
=================

Maps ``(template_key, version)`` to a pure template function. Built once from
a fixed table and never mutated afterwards.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional
from dataclasses import dataclass
from functools import partial
from types import MappingProxyType

from . import award

TemplateFunction = Callable[[Mapping[str, Any]], str]


@dataclass(frozen=True)
class ResolvedTemplate:
    """A template function addressed by key and version."""
    key: str
    version: int
    render: TemplateFunction

    def __call__(self, payload: Mapping[str, Any]) -> str:
        return self.render(payload)


class TemplateRegistry:
    """Read-only lookup over a template table."""

    def __init__(self, table: Mapping[str, Mapping[int, TemplateFunction]]):
        self._table = MappingProxyType(
            {key: MappingProxyType(dict(versions)) for key, versions in table.items()}
        )

    def resolve(self, template_key: str, version: int) -> Optional[ResolvedTemplate]:
        versions = self._table.get(template_key)
        if versions is None or version not in versions:
            return None
        return ResolvedTemplate(template_key, version, versions[version])

    def has_key(self, template_key: str) -> bool:
        return template_key in self._table

    def versions_for(self, template_key: str) -> List[int]:
        return sorted(self._table.get(template_key, {}))

    def keys(self) -> List[str]:
        return sorted(self._table)


DEFAULT_TEMPLATES: Dict[str, Dict[int, TemplateFunction]] = {
    "certificate-a4": {1: award.certificate_a4},
    "certificate-a4-no-watermark": {1: partial(award.certificate_a4, watermark=False)},
    "social-square": {1: award.social_square},
    "social-square-no-watermark": {1: partial(award.social_square, watermark=False)},
    "social-post": {1: award.social_post},
    "social-post-no-watermark": {1: partial(award.social_post, watermark=False)},
    "social-story": {1: award.social_story},
    "display-16x9": {1: award.display_16x9},
    "display-16x9-no-watermark": {1: partial(award.display_16x9, watermark=False)},
    "rosette-award": {1: award.rosette_award},
    "rosette-award-no-watermark": {1: partial(award.rosette_award, watermark=False)},
}


# Global registry instance
_default_registry: Optional[TemplateRegistry] = None


def get_template_registry() -> TemplateRegistry:
    """Get the registry built from the default template table."""
    global _default_registry
    if _default_registry is None:
        _default_registry = TemplateRegistry(DEFAULT_TEMPLATES)
    return _default_registry
