"""
Rendering Module
===============

Headless-browser rendering pipeline.

Components:
- validator: Request validation against the template registry
- markup: Template invocation
- browser / playwright_adapter: Browser capability interface and its Playwright implementation
- browser_manager: Shared browser process lifecycle
- crash_policy: Crash classification and circuit breaker
- executor: Single render, from context open to content hash
- renderer: Facade exposing render() and shutdown()
"""
