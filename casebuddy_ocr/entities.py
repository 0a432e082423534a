"""
entities.py

Rule-based entity mining over transcribed document text.

Each entity kind is an ordered list of independent regex pattern
families. Matches from every family are unioned and deduplicated in
first-seen order: family order first, then position in the text.
Nothing here validates that a date exists or that an identifier is
registered; matching is purely syntactic.

All patterns use re.ASCII so digits, word boundaries and letter
classes behave the same regardless of the scripts present in the text.
"""

import logging
import re
from typing import Iterable, List, Optional, Sequence

from . import config
from .schemas import ExtractedEntities

logger = logging.getLogger(__name__)

_MONTH_ABBREVIATIONS = r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)"
_MONTH_NAMES = (
    r"(?:January|February|March|April|May|June|July|August"
    r"|September|October|November|December)"
)
_YEAR = r"(?:\d{4}|\d{2})"

DATE_PATTERNS: Sequence[re.Pattern] = (
    # 3/14/2024, 03/14/24
    re.compile(r"\b\d{1,2}/\d{1,2}/" + _YEAR + r"\b", re.ASCII),
    # 3-14-2024
    re.compile(r"\b\d{1,2}-\d{1,2}-" + _YEAR + r"\b", re.ASCII),
    # Mar 14, 2024 / Sept. 3 2024
    re.compile(
        r"\b" + _MONTH_ABBREVIATIONS + r"[a-z]*\.?\s+\d{1,2},?\s+\d{4}\b",
        re.ASCII | re.IGNORECASE,
    ),
    # 14 Mar 2024
    re.compile(
        r"\b\d{1,2}\s+" + _MONTH_ABBREVIATIONS + r"[a-z]*\.?\s+\d{4}\b",
        re.ASCII | re.IGNORECASE,
    ),
    # March 14, 2024
    re.compile(
        r"\b" + _MONTH_NAMES + r"\s+\d{1,2},?\s+\d{4}\b",
        re.ASCII | re.IGNORECASE,
    ),
)

NAME_PATTERN: re.Pattern = re.compile(
    r"\b[A-Z][a-z]+\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+)?\b", re.ASCII
)

_CASE_QUALIFIER = r"\s*(?:No\.?|Number|#)?\s*[:\s]?\s*[A-Z0-9\-/]+\b"

CASE_NUMBER_PATTERNS: Sequence[re.Pattern] = (
    # Case No. 12-345, Case #CV-2024-001
    re.compile(r"\bCase" + _CASE_QUALIFIER, re.ASCII | re.IGNORECASE),
    # Docket Number: 24-1187
    re.compile(r"\bDocket" + _CASE_QUALIFIER, re.ASCII | re.IGNORECASE),
    # CV-2024-00123, CRIM 24 55
    re.compile(
        r"\b(?:CV|CR|CIV|CRIM|ADM)\s*[-\s]?\s*\d{2,4}[-\s]?\d{1,5}\b",
        re.ASCII | re.IGNORECASE,
    ),
    # 1234-5678-9012-3456
    re.compile(r"\b\d{4}[-\s]?\d{4}[-\s]?\d{4}[-\s]?\d{4}\b", re.ASCII),
)


def unique_in_order(items: Iterable[str]) -> List[str]:
    """Drop exact duplicates, keeping the first occurrence of each item."""
    seen = set()
    unique = []
    for item in items:
        if item not in seen:
            seen.add(item)
            unique.append(item)
    return unique


def _find_all(patterns: Iterable[re.Pattern], text: str) -> Iterable[str]:
    for pattern in patterns:
        for match in pattern.finditer(text):
            yield match.group(0)


def extract_dates(text: str) -> List[str]:
    return unique_in_order(_find_all(DATE_PATTERNS, text))


def extract_names(
    text: str,
    max_names: Optional[int] = None,
    stop_words: Optional[Iterable[str]] = None,
) -> List[str]:
    """
    Find two- or three-word capitalized sequences that look like names.

    Matches whose first word is a salutation or closing ("Dear",
    "Sincerely", ...) are dropped. At most max_names are returned.
    """
    if max_names is None:
        max_names = config.MAX_NAMES
    if stop_words is None:
        stop_words = config.NAME_STOP_WORDS
    stop_words = frozenset(stop_words)

    candidates = unique_in_order(_find_all([NAME_PATTERN], text))
    names = [name for name in candidates if name.split()[0] not in stop_words]
    return names[:max_names]


def extract_case_numbers(text: str) -> List[str]:
    matches = (match.strip() for match in _find_all(CASE_NUMBER_PATTERNS, text))
    return unique_in_order(match for match in matches if match)


def extract_entities(text: str) -> ExtractedEntities:
    """Mine dates, names and case numbers from text. Never fails on no matches."""
    entities = ExtractedEntities(
        dates=tuple(extract_dates(text)),
        names=tuple(extract_names(text)),
        case_numbers=tuple(extract_case_numbers(text)),
    )
    logger.debug(
        "Extracted %d date(s), %d name(s), %d case number(s)",
        len(entities.dates),
        len(entities.names),
        len(entities.case_numbers),
    )
    return entities
