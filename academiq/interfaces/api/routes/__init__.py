"""
API Routes.
"""

from . import extraction, health, researchers

__all__ = ["health", "extraction", "researchers"]
