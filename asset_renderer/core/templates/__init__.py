"""
Templates Module
================

Visual templates and the registry that addresses them.

Components:
- registry: Template lookup by key and version
- award: Award template functions (certificate, social graphics, rosette)
- base: Shared Jinja2 environment and payload helpers
- html/: Jinja2 markup files
"""
