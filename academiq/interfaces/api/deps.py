"""
API Dependencies - Dependency injection for FastAPI routes.

Provides singleton instances of database and service objects.
"""

from __future__ import annotations

from functools import lru_cache

from academiq.adapters.llm import OpenAIClient
from academiq.adapters.pdf import PdfPlumberReader
from academiq.adapters.sqlite.repository import CVRepository
from academiq.config import Settings, get_settings
from academiq.domains.extraction import LayoutTextExtractor, LLMExtractor
from academiq.domains.orchestration import BoundedExecutor, ExtractionPipeline, NameIdentifier


@lru_cache
def get_repository() -> CVRepository:
    """Get CV repository singleton."""
    settings = get_settings()
    return CVRepository(settings.db_path)


def build_pipeline(settings: Settings) -> ExtractionPipeline:
    """Wire the extraction pipeline from settings."""
    extractor = LLMExtractor(
        OpenAIClient(),
        BoundedExecutor.from_settings(settings),
        temperature=settings.llm_temperature,
    )
    return ExtractionPipeline(LayoutTextExtractor(PdfPlumberReader()), extractor, settings)


def build_name_identifier(settings: Settings) -> NameIdentifier:
    """Wire the first-page name lookup from settings."""
    return NameIdentifier(
        LayoutTextExtractor(PdfPlumberReader()),
        OpenAIClient(),
        BoundedExecutor.from_settings(settings),
        model=settings.llm_model,
        temperature=settings.llm_temperature,
    )


@lru_cache
def get_pipeline() -> ExtractionPipeline:
    """Get extraction pipeline singleton (stateless between runs)."""
    return build_pipeline(get_settings())


@lru_cache
def get_name_identifier() -> NameIdentifier:
    """Get name identifier singleton."""
    return build_name_identifier(get_settings())


async def init_services() -> None:
    """
    Initialize services on startup.

    This should be called from the FastAPI lifespan handler.
    """
    repo = get_repository()
    await repo.initialize()


async def cleanup_services() -> None:
    """Cleanup services on shutdown."""
    repo = get_repository()
    await repo.close()
