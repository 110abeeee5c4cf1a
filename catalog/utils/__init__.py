"""
Utility functions for the catalog application.

- measurement.py: metric <-> imperial rewriting of free-text recipe lines
"""

from .measurement import convert, convert_lines, convert_ranges

__all__ = [
    "convert",
    "convert_lines",
    "convert_ranges",
]
