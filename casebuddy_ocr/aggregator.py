"""
aggregator.py

Merges per-page results into document text and a document confidence.
"""

import math
from typing import List, NamedTuple, Sequence

from .errors import EmptyDocumentError
from .schemas import PageResult

PAGE_SEPARATOR = "\n\n"


class AggregatedText(NamedTuple):
    raw_text: str
    confidence_score: int
    page_count: int


def aggregate_pages(results: Sequence[PageResult]) -> AggregatedText:
    """
    Join page texts in page order and average their confidences.

    Pages are separated by one blank line and the combined text is
    stripped. The confidence score is the mean page confidence rounded
    half up.

    Raises:
        EmptyDocumentError: If there are no pages or no page has text.
    """
    if not results:
        raise EmptyDocumentError("No pages were recognized in the document.")

    ordered: List[PageResult] = sorted(results, key=lambda result: result.page_index)

    raw_text = PAGE_SEPARATOR.join(result.text for result in ordered).strip()
    if not raw_text:
        raise EmptyDocumentError("No text could be extracted from the document.")

    mean_confidence = sum(result.confidence for result in ordered) / len(ordered)

    return AggregatedText(
        raw_text=raw_text,
        confidence_score=round_half_up(mean_confidence),
        page_count=len(ordered),
    )


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with .5 going up (84.5 -> 85)."""
    return int(math.floor(value + 0.5))
