"""
AcademiQ - Academic CV extraction and researcher records.

Example:
    >>> from academiq.interfaces.api.deps import build_pipeline
    >>> pipeline = build_pipeline(get_settings())
    >>> run = pipeline.start(RawDocument(filename="cv.pdf", content=data))
"""

__version__ = "2.0.0"
__all__ = ["__version__"]
