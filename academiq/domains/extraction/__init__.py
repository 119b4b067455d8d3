"""
Extraction Domain - PDF CV to structured record extraction.

This domain handles:
- Layout-aware text reconstruction
- Sensitive-data redaction
- Section detection and chunking
- Model prompt and output contract
- Response validation, merging and normalization
"""

from .contracts import LLMClient, PageReader
from .extractor import LLMExtractor, parse_response
from .layout import LayoutTextExtractor, reconstruct_lines
from .merge import merge_results
from .models import (
    Award,
    Chunk,
    ChunkResult,
    Education,
    Experience,
    ExtractedText,
    ExtractionRequest,
    Grant,
    LLMResponse,
    Membership,
    PageLayout,
    PersonalInfo,
    PositionedFragment,
    Publication,
    RawDocument,
    StructuredCV,
    Supervision,
    Teaching,
)
from .normalization import normalize_cv, normalize_date, normalize_name
from .prompts import KNOWN_MODELS, ModelInfo, build_request, model_info, resolve_model, select_model
from .redaction import count_redactions, redact
from .sections import detect_section_headers, split_into_chunks

__all__ = [
    # Contracts
    "LLMClient",
    "PageReader",
    # Models
    "RawDocument",
    "PositionedFragment",
    "PageLayout",
    "ExtractedText",
    "ExtractionRequest",
    "LLMResponse",
    "Chunk",
    "ChunkResult",
    "StructuredCV",
    "PersonalInfo",
    "Education",
    "Publication",
    "Experience",
    "Grant",
    "Teaching",
    "Supervision",
    "Membership",
    "Award",
    # Functions
    "reconstruct_lines",
    "redact",
    "count_redactions",
    "detect_section_headers",
    "split_into_chunks",
    "build_request",
    "resolve_model",
    "select_model",
    "model_info",
    "parse_response",
    "merge_results",
    "normalize_cv",
    "normalize_name",
    "normalize_date",
    "KNOWN_MODELS",
    "ModelInfo",
    # Implementations
    "LayoutTextExtractor",
    "LLMExtractor",
]
