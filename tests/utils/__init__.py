"""
Test Utilities
==============

Fake browser implementations and shared assertions.
"""
