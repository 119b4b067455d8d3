"""
API Interface - FastAPI REST API.

Serves the extraction pipeline as a server-sent event stream and the
stored researcher records.
"""

from .main import app, create_app

__all__ = ["app", "create_app"]
