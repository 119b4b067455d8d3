"""
SQLite Adapter - Researcher and processing-log storage.
"""

from .repository import CVRepository, normalize_email

__all__ = ["CVRepository", "normalize_email"]
