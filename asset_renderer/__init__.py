"""
Asset Renderer
==============

Renders parameterized visual templates (certificates, social graphics, award
badges) to PNG/PDF by driving a headless browser.

Packages:
- config: Settings and structured logging
- models: Request/result value objects
- core: Template registry, validation, browser lifecycle and rendering
"""

__version__ = "1.0.0"
