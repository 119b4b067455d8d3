"""
CLI Interface - Command-line tools for AcademiQ.

Provides commands for:
- CV extraction with live stage output
- Browsing and deleting stored researchers
- Database setup and the API server
"""

from .main import app, main

__all__ = ["app", "main"]
