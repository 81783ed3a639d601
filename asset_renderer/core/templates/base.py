"""
Template Environment
====================

Jinja2 environment shared by all template functions, plus the payload helpers
the award templates have in common.
"""

from typing import Any, Dict, Mapping, Optional

import jinja2

from asset_renderer.core.assets import get_assets

TIER_ASSETS: Dict[str, str] = {
    "GOLD": "gold_rosette",
    "SILVER": "silver_rosette",
    "BRONZE": "bronze_rosette",
    "GREEN": "green_rosette",
}

RANK_ASSETS: Dict[int, str] = {
    1: "gold_rosette",
    2: "silver_rosette",
    3: "bronze_rosette",
}

env = jinja2.Environment(
    loader=jinja2.PackageLoader("asset_renderer.core.templates", "html"),
    autoescape=jinja2.select_autoescape(["html", "xml"]),
    undefined=jinja2.StrictUndefined,
    trim_blocks=True,
    lstrip_blocks=True,
)


def render_markup(template_name: str, **context: Any) -> str:
    """Render a template file with the shared asset table in scope."""
    template = env.get_template(template_name)
    return template.render(assets=get_assets(), **context)


def rosette_asset(rank: int, tier: Optional[str] = None) -> str:
    """Pick the rosette artwork by tier when given, otherwise by rank."""
    if tier:
        return TIER_ASSETS.get(str(tier).upper(), "gold_rosette")
    return RANK_ASSETS.get(rank, "green_rosette")


def award_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Payload vocabulary shared by the award templates, with defaults."""
    rank = int(payload.get("rank", 1))
    location_name = str(payload.get("locationName", "Location"))
    category_label = payload.get("categoryLabel")
    tier = payload.get("tier")

    title_prefix = f"{category_label} " if category_label else ""
    return {
        "rank": rank,
        "location_name": location_name,
        "clinic_name": str(payload.get("clinicName", "Clinic Name")),
        "date_period": str(payload.get("datePeriod", "2026")),
        "website_domain": str(payload.get("websiteDomain", "www.vetsinengland.com")),
        "category_label": category_label,
        "tier": tier,
        "title": f"{title_prefix}Vet in {location_name}",
        "rosette": rosette_asset(rank, tier),
    }
