"""
errors.py

Exception taxonomy for the extraction pipeline.

Pipeline errors carry a ``stage`` attribute naming the stage that
failed. None of them are retried inside the package; callers decide
whether to re-run the whole pipeline.
"""

from typing import Optional


class ExtractionError(Exception):
    """Base class for failures of a pipeline run."""

    stage = "pipeline"


class RasterizationError(ExtractionError):
    """Raised when a document cannot be opened or a page cannot be rendered."""

    stage = "rasterize"

    def __init__(self, message: str, page_index: Optional[int] = None):
        super().__init__(message)
        self.page_index = page_index


class RecognitionError(ExtractionError):
    """Raised when the recognition engine fails on a page."""

    stage = "recognize"

    def __init__(self, message: str, page_index: int):
        super().__init__(message)
        self.page_index = page_index


class EmptyDocumentError(ExtractionError):
    """Raised when aggregation produces no usable text."""

    stage = "aggregate"


class DocumentFileError(Exception):
    """Raised when local file validation fails."""

    pass


class DocumentSecurityError(Exception):
    """Raised when a security check fails (e.g., path traversal)."""

    pass
