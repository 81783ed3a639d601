"""
Data Models
===========

Pydantic value objects for render requests, render results and renderer state.
"""
