"""
Interfaces - User-facing applications.

- api: FastAPI REST API with server-sent extraction events
- cli: Command-line interface
"""

__all__ = ["api", "cli"]
