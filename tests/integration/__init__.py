"""Integration tests driving a real headless Chromium."""
