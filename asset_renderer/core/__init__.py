"""
Core Module
===========

Template registry, markup production, browser lifecycle and render execution.
"""
