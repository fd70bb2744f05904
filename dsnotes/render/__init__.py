"""
dsnotes rendering helpers.

Exports:
- render_all : write every image the posts link to
"""

from .figures import render_all

__all__ = ["render_all"]
