"""
Test Suite
==========

Mirrors the asset_renderer/ package layout.

Test Categories:
- unit: Components in isolation, browsers replaced by fakes
- integration: Full renders through a real headless Chromium
"""
