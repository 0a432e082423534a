"""
summarizer.py

Extractive summary: the first few substantial sentences of the text.
"""

import re
from typing import Optional

from . import config

_SENTENCE_BREAK = re.compile(r"[.!?]+")


def generate_summary(
    text: str,
    max_sentences: Optional[int] = None,
    min_sentence_chars: Optional[int] = None,
    max_chars: Optional[int] = None,
) -> str:
    """
    Build a short synopsis from the leading sentences of text.

    Sentences are split on runs of '.', '!' and '?'. Only fragments
    longer than min_sentence_chars (after stripping) count. The first
    max_sentences of them are joined with ". "; if the result exceeds
    max_chars it is cut and an ellipsis appended, otherwise a period.

    Args:
        text: Document text.
        max_sentences: Override config SUMMARY_MAX_SENTENCES.
        min_sentence_chars: Override config SUMMARY_MIN_SENTENCE_CHARS.
        max_chars: Override config SUMMARY_MAX_CHARS.

    Returns:
        The summary, or config.SUMMARY_FALLBACK if no sentence qualifies.
    """
    if max_sentences is None:
        max_sentences = config.SUMMARY_MAX_SENTENCES
    if min_sentence_chars is None:
        min_sentence_chars = config.SUMMARY_MIN_SENTENCE_CHARS
    if max_chars is None:
        max_chars = config.SUMMARY_MAX_CHARS

    sentences = [
        fragment.strip()
        for fragment in _SENTENCE_BREAK.split(text)
        if len(fragment.strip()) > min_sentence_chars
    ]
    if not sentences:
        return config.SUMMARY_FALLBACK

    summary = ". ".join(sentences[:max_sentences])
    if len(summary) > max_chars:
        return summary[:max_chars] + config.SUMMARY_ELLIPSIS
    return summary + "."
