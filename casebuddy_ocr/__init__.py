"""
CaseBuddy OCR

Turns a PDF or image into a structured intelligence record: full-text
transcription, a confidence score, an extractive summary, and dates,
names and case numbers mined by pattern rules.

Public API:
    extract_document  - Run the pipeline over raw bytes and a media type
    process_document  - Run the pipeline over a local file
    process_batch     - Process multiple files concurrently
    RecognitionEngine - Interface for page recognition engines
    ExtractedData     - Final result record
"""

from .engine import RecognitionEngine, SuryaOCREngine
from .errors import (
    EmptyDocumentError,
    ExtractionError,
    RasterizationError,
    RecognitionError,
)
from .ocr_pipeline import extract_document, process_batch, process_document
from .schemas import DocumentOutcome, ExtractedData, ExtractedEntities, PageResult

__all__ = [
    "extract_document",
    "process_document",
    "process_batch",
    "RecognitionEngine",
    "SuryaOCREngine",
    "ExtractedData",
    "ExtractedEntities",
    "PageResult",
    "DocumentOutcome",
    "ExtractionError",
    "RasterizationError",
    "RecognitionError",
    "EmptyDocumentError",
]
