"""
ocr_pipeline.py

Main orchestrator for the extraction module.

Coordinates the full pipeline: rasterize -> recognize -> aggregate ->
entities + summary. Supports raw bytes, single local files, and batches
of files processed concurrently.

A run either returns a complete ExtractedData record or raises; no
partial result is ever produced.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from . import config
from .aggregator import aggregate_pages
from .engine import RecognitionEngine, get_engine
from .entities import extract_entities
from .errors import ExtractionError
from .rasterizer import rasterize
from .recognizer import ProgressCallback, recognize_pages
from .schemas import DocumentOutcome, ExtractedData
from .summarizer import generate_summary
from .utils import load_document

logger = logging.getLogger(__name__)


def extract_document(
    file_bytes: bytes,
    media_type: str,
    engine: Optional[RecognitionEngine] = None,
    max_workers: Optional[int] = None,
    progress: Optional[ProgressCallback] = None,
    scale: Optional[float] = None,
) -> ExtractedData:
    """
    Run the full extraction pipeline over raw document bytes.

    Args:
        file_bytes: Raw contents of a PDF or image file.
        media_type: Declared media type of file_bytes.
        engine: Recognition engine. Defaults to the local Surya engine.
        max_workers: Pages recognized concurrently.
            Override config RECOGNITION_WORKERS.
        progress: Optional (page_index, fraction) callback.
        scale: PDF render scale. Override config RASTER_SCALE.

    Returns:
        ExtractedData record.

    Raises:
        RasterizationError, RecognitionError, EmptyDocumentError:
            Propagated unchanged from the failing stage.
    """
    if engine is None:
        engine = get_engine()

    try:
        document = rasterize(file_bytes, media_type, scale=scale)
        logger.info("Recognizing %d page(s) with engine '%s'", len(document), engine.name)

        page_results = recognize_pages(
            document,
            engine,
            total_pages=len(document),
            max_workers=max_workers,
            progress=progress,
        )
        aggregated = aggregate_pages(page_results)
    except ExtractionError as e:
        logger.error("Extraction failed at stage '%s': %s", e.stage, e)
        raise

    result = build_record(aggregated.raw_text, aggregated.confidence_score)

    logger.info(
        "Document processed: %d pages, confidence=%d, dates=%d, names=%d, cases=%d",
        aggregated.page_count,
        result.confidence_score,
        len(result.entities.dates),
        len(result.entities.names),
        len(result.entities.case_numbers),
    )
    return result


def build_record(raw_text: str, confidence_score: int) -> ExtractedData:
    """Attach entities and a summary to aggregated text."""
    return ExtractedData(
        raw_text=raw_text,
        summary=generate_summary(raw_text),
        entities=extract_entities(raw_text),
        confidence_score=confidence_score,
    )


def analyze_document(
    file_bytes: bytes,
    media_type: str,
    analyzer=None,
    scale: Optional[float] = None,
) -> ExtractedData:
    """
    Extract a record with a single cloud model call.

    Pages are rasterized locally and sent together to a
    GroqDocumentAnalyzer, which returns the whole record.
    """
    if analyzer is None:
        from .cloud_engine import GroqDocumentAnalyzer

        analyzer = GroqDocumentAnalyzer()

    try:
        document = rasterize(file_bytes, media_type, scale=scale)
        result = analyzer.analyze(document)
    except ExtractionError as e:
        logger.error("Analysis failed at stage '%s': %s", e.stage, e)
        raise

    logger.info("Document analyzed: confidence=%d", result.confidence_score)
    return result


def process_document(
    file_path: str,
    engine: Optional[RecognitionEngine] = None,
    max_workers: Optional[int] = None,
    progress: Optional[ProgressCallback] = None,
) -> ExtractedData:
    """
    Load a local file and run it through the pipeline.

    Raises:
        DocumentFileError, DocumentSecurityError: If the file is rejected.
        ExtractionError: From any pipeline stage.
    """
    logger.info("Processing document: %s", file_path)
    file_bytes, media_type = load_document(file_path)
    return extract_document(
        file_bytes,
        media_type,
        engine=engine,
        max_workers=max_workers,
        progress=progress,
    )


def process_batch(
    file_paths: Sequence[str],
    max_workers: Optional[int] = None,
    engine: Optional[RecognitionEngine] = None,
) -> List[DocumentOutcome]:
    """
    Process multiple documents independently.

    Args:
        file_paths: List of file paths to process.
        max_workers: Number of concurrent documents. Defaults to config.BATCH_WORKERS.
        engine: Engine shared by every document.

    Returns:
        One DocumentOutcome per input path, in input order. A failing
        document is reported in its outcome and does not affect others.
    """
    if max_workers is None:
        max_workers = config.BATCH_WORKERS
    if engine is None:
        engine = get_engine()

    def _run(file_path: str) -> DocumentOutcome:
        try:
            data = process_document(file_path, engine=engine)
        except Exception as e:
            logger.error("Failed to process %s: %s", file_path, e)
            return DocumentOutcome(
                file_path=str(file_path),
                error=str(e) or type(e).__name__,
                error_kind=type(e).__name__,
            )
        return DocumentOutcome(file_path=str(file_path), data=data)

    # For single file or small batches, process sequentially
    if len(file_paths) <= 1 or max_workers <= 1:
        return [_run(fp) for fp in file_paths]

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(_run, file_paths))
