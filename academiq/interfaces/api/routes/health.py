"""
Health Routes - System health and status endpoints.
"""

from typing import Any

from fastapi import APIRouter

from academiq import __version__
from academiq.domains.extraction import KNOWN_MODELS

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": "academiq"}


@router.get("/api")
async def api_info() -> dict[str, Any]:
    """API info endpoint."""
    return {
        "name": "AcademiQ API",
        "version": __version__,
        "description": "Academic CV extraction and researcher records",
        "docs": "/docs",
        "models": [m.model_dump() for m in KNOWN_MODELS.values()],
    }
