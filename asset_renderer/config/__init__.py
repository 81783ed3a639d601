"""
Configuration
=============

Components:
- settings: ASSET_RENDERER_* environment settings (pydantic-settings)
- logging: structlog setup, console in development and JSON in production
"""
