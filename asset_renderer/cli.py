#!/usr/bin/env python3
"""
Asset Renderer CLI
==================

Preview templates locally without the HTTP or queue layers.

Usage:
    asset-renderer templates
    asset-renderer preview rosette-award --variant 800x800 \\
        --payload '{"rank": 4, "locationName": "Wakefield", "datePeriod": "June 2026"}'
"""

from typing import Any, Dict, List, Optional
import argparse
import asyncio
import json
import sys
from pathlib import Path

from asset_renderer.core.rendering.errors import RenderError
from asset_renderer.core.rendering.renderer import AssetRenderer
from asset_renderer.core.templates.registry import get_template_registry
from asset_renderer.models.schemas import RenderFormat, RenderResult
from asset_renderer.supervisor import run_supervised


def load_payload(args: argparse.Namespace) -> Dict[str, Any]:
    """Read the payload from --payload-file or --payload."""
    if args.payload_file:
        raw = Path(args.payload_file).read_text(encoding="utf-8")
    else:
        raw = args.payload or "{}"
    payload = json.loads(raw)
    if not isinstance(payload, dict):
        raise ValueError("Payload must be a JSON object")
    return payload


def default_output(args: argparse.Namespace) -> Path:
    suffix = "pdf" if args.format == RenderFormat.PDF.value else "png"
    return Path(f"{args.template}-preview.{suffix}")


async def preview(args: argparse.Namespace) -> int:
    """Render one template to a file."""
    payload = load_payload(args)
    output = Path(args.output) if args.output else default_output(args)
    renderer = AssetRenderer()

    async def work() -> RenderResult:
        return await renderer.render(args.template, args.version, args.format, args.variant, payload)

    print(f"Generating {args.template} preview ({args.variant})...\n")
    try:
        result = await run_supervised(work, renderer)
    except RenderError as e:
        print(f"✗ {e.category.value}: {e.message}", file=sys.stderr)
        return 1
    finally:
        await renderer.shutdown()

    output.write_bytes(result.buffer)
    print("✓ Preview generated")
    print(f"  File: {output}")
    print(f"  Size: {result.byte_size} bytes")
    print(f"  Hash: {result.content_hash[:16]}...")
    print(f"  MIME: {result.mime_type}")
    if result.width and result.height:
        print(f"  Dimensions: {result.width}x{result.height}")
    return 0


def list_templates(_args: argparse.Namespace) -> int:
    registry = get_template_registry()
    for key in registry.keys():
        versions = ", ".join(str(v) for v in registry.versions_for(key))
        print(f"{key}  (versions: {versions})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="asset-renderer", description="Render award asset templates")
    subparsers = parser.add_subparsers(dest="command", required=True)

    templates_parser = subparsers.add_parser("templates", help="List registered templates")
    templates_parser.set_defaults(handler=list_templates)

    preview_parser = subparsers.add_parser("preview", help="Render a template to a file")
    preview_parser.add_argument("template", help="Template key, e.g. rosette-award")
    preview_parser.add_argument("--version", type=int, default=1, help="Template version")
    preview_parser.add_argument(
        "--format", default=RenderFormat.PNG.value, choices=[f.value for f in RenderFormat]
    )
    preview_parser.add_argument("--variant", required=True, help="WIDTHxHEIGHT or A4/A5 for PDF")
    payload_group = preview_parser.add_mutually_exclusive_group()
    payload_group.add_argument("--payload", help="Payload as a JSON object")
    payload_group.add_argument("--payload-file", help="Path to a JSON payload file")
    preview_parser.add_argument("--output", "-o", help="Output file path")
    preview_parser.set_defaults(handler=lambda args: asyncio.run(preview(args)))

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
