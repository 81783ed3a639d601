"""
Award Templates
===============

Pure template functions: payload in, static HTML markup out. Layout lives in
the Jinja2 files under ``html/``.
"""

from typing import Any, Mapping

from .base import award_fields, render_markup


def certificate_a4(payload: Mapping[str, Any], watermark: bool = True) -> str:
    """A4 print certificate."""
    fields = award_fields(payload)
    location_name = fields["location_name"]
    return render_markup(
        "certificate_a4.html",
        watermark=watermark,
        signature_name=str(payload.get("signatureName", "E. Holmes")),
        signature_title=str(payload.get("signatureTitle", "Signed Eddie Holmes")),
        brand_name=str(payload.get("brandName", "Vets in England")),
        long_location=len(location_name) > 10,
        long_clinic=len(fields["clinic_name"]) > 50,
        **fields,
    )


def social_square(payload: Mapping[str, Any], watermark: bool = True) -> str:
    """1080x1080 post for Instagram and Facebook."""
    return render_markup("social_square.html", watermark=watermark, **award_fields(payload))


def social_post(payload: Mapping[str, Any], watermark: bool = True) -> str:
    """1080x1350 portrait post."""
    fields = award_fields(payload)
    return render_markup(
        "social_post.html",
        watermark=watermark,
        long_location=len(fields["location_name"]) > 10,
        long_clinic=len(fields["clinic_name"]) > 50,
        **fields,
    )


def social_story(payload: Mapping[str, Any]) -> str:
    """1080x1920 story."""
    return render_markup("social_story.html", **award_fields(payload))


def display_16x9(payload: Mapping[str, Any], watermark: bool = True) -> str:
    """1920x1080 banner for websites and screens."""
    return render_markup("display_16x9.html", watermark=watermark, **award_fields(payload))


def rosette_award(payload: Mapping[str, Any], watermark: bool = True) -> str:
    """800x800 standalone rosette badge."""
    fields = award_fields(payload)
    # The rosette badge titles itself with the location only
    fields["title"] = f"Vet in {fields['location_name']}"
    return render_markup(
        "rosette_award.html",
        watermark=watermark,
        long_location=len(fields["location_name"]) > 12,
        **fields,
    )
