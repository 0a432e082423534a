"""
recognizer.py

Drives a RecognitionEngine over the pages of a document.

Pages are recognized one at a time by default. With max_workers > 1
they are dispatched to a thread pool with at most max_workers pages in
flight; results are always returned in ascending page order.

The first failing page aborts the run: nothing further is submitted,
queued pages are cancelled and RecognitionError is raised.
"""

import logging
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from typing import Callable, Iterable, List, Optional

from . import config
from .engine import RecognitionEngine
from .errors import RecognitionError
from .schemas import PageRecognition, PageResult, RasterPage

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, float], None]


class _ProgressReporter:
    """Counts completed pages and forwards (page_index, fraction) to a callback."""

    def __init__(self, total_pages: int, callback: Optional[ProgressCallback]):
        self.total_pages = total_pages
        self.completed = 0
        self._callback = callback

    def page_done(self, page_index: int) -> None:
        self.completed += 1
        if self._callback is None:
            return
        fraction = min(self.completed / self.total_pages, 1.0) if self.total_pages else 1.0
        try:
            self._callback(page_index, fraction)
        except Exception as e:
            logger.warning("Progress callback failed on page %d: %s", page_index, e)


def recognize_pages(
    pages: Iterable[RasterPage],
    engine: RecognitionEngine,
    total_pages: Optional[int] = None,
    max_workers: Optional[int] = None,
    progress: Optional[ProgressCallback] = None,
) -> List[PageResult]:
    """
    Recognize every page and collect the results in page order.

    Args:
        pages: Raster pages in document order. May be lazy.
        engine: Engine used for every page.
        total_pages: Page count for progress fractions. Defaults to
            len(pages); a sequence without a length is materialized.
        max_workers: Pages recognized concurrently.
            Override config RECOGNITION_WORKERS.
        progress: Optional callback receiving (page_index, fraction)
            after each page completes.

    Returns:
        List of PageResult sorted by page_index.

    Raises:
        RecognitionError: If the engine fails on any page.
        RasterizationError: If a page cannot be rendered while iterating.
    """
    if max_workers is None:
        max_workers = config.RECOGNITION_WORKERS

    if total_pages is None:
        if not hasattr(pages, "__len__"):
            pages = list(pages)
        total_pages = len(pages)

    reporter = _ProgressReporter(total_pages, progress)

    if max_workers <= 1:
        results = _recognize_sequential(pages, engine, reporter)
    else:
        results = _recognize_concurrent(pages, engine, max_workers, reporter)

    return sorted(results, key=lambda result: result.page_index)


def recognize_page(engine: RecognitionEngine, page: RasterPage) -> PageResult:
    """Run the engine on one page, converting any failure to RecognitionError."""
    try:
        recognition = engine.recognize(page.image)
        if not isinstance(recognition, PageRecognition):
            recognition = PageRecognition.model_validate(recognition)
    except Exception as e:
        raise RecognitionError(
            f"Recognition failed on page {page.page_index}: {e}",
            page_index=page.page_index,
        ) from e

    return PageResult(
        page_index=page.page_index,
        text=recognition.text,
        confidence=recognition.confidence,
    )


def _recognize_sequential(
    pages: Iterable[RasterPage],
    engine: RecognitionEngine,
    reporter: _ProgressReporter,
) -> List[PageResult]:
    results: List[PageResult] = []

    for page in pages:
        logger.info("Processing page %d/%d", page.page_index, reporter.total_pages)
        results.append(recognize_page(engine, page))
        reporter.page_done(page.page_index)

    return results


def _recognize_concurrent(
    pages: Iterable[RasterPage],
    engine: RecognitionEngine,
    max_workers: int,
    reporter: _ProgressReporter,
) -> List[PageResult]:
    results: List[PageResult] = []
    pending = {}
    page_iter = iter(pages)
    exhausted = False

    executor = ThreadPoolExecutor(max_workers=max_workers)
    try:
        while True:
            # Top up the pool; pages are rendered only as slots free up
            while not exhausted and len(pending) < max_workers:
                try:
                    page = next(page_iter)
                except StopIteration:
                    exhausted = True
                    break
                logger.info("Processing page %d/%d", page.page_index, reporter.total_pages)
                pending[executor.submit(recognize_page, engine, page)] = page.page_index

            if not pending:
                break

            done, _ = wait(pending, return_when=FIRST_COMPLETED)
            for future in sorted(done, key=lambda f: pending[f]):
                page_index = pending.pop(future)
                results.append(future.result())
                reporter.page_done(page_index)
    finally:
        executor.shutdown(wait=True, cancel_futures=True)

    return results
