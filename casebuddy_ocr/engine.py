"""
engine.py

Recognition engine interface and the local Surya OCR engine.

A recognition engine turns one page image into transcribed text plus
a confidence score in [0, 100]. The pipeline is written against
RecognitionEngine only; the local Surya engine here and the cloud
engine in cloud_engine.py are interchangeable.

Surya runs a two-stage pipeline:
1. Text detection finds text line boxes in reading order
2. Text recognition transcribes each line with a confidence
"""

import logging
import threading
import unicodedata
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from PIL import Image

from . import config
from .schemas import PageRecognition

logger = logging.getLogger(__name__)

_INVISIBLE_CHARS = (
    "\u200b",  # Zero-width space
    "\u200c",  # Zero-width non-joiner
    "\u200d",  # Zero-width joiner
    "\u200e",  # Left-to-right mark
    "\u200f",  # Right-to-left mark
    "\ufeff",  # BOM
)


class RecognitionEngine(ABC):
    """
    Interface for page recognition engines.

    Implementations must be safe to call from several threads at once
    and must raise on failure rather than return a partial result.
    """

    name = "engine"

    @abstractmethod
    def recognize(self, image: Image.Image) -> PageRecognition:
        """Transcribe a single page image."""
        raise NotImplementedError


class SuryaOCREngine(RecognitionEngine):
    """
    Wrapper around Surya's detection and recognition predictors.

    Models are loaded lazily on first use and cached for reuse.
    GPU is auto-detected with fallback to CPU.
    """

    name = "surya"

    def __init__(self, use_gpu: Optional[bool] = None):
        self._use_gpu = config.USE_GPU if use_gpu is None else use_gpu
        self._det_predictor = None
        self._rec_predictor = None
        self._models_loaded = False
        self._load_lock = threading.Lock()

    def _load_models(self) -> None:
        """
        Lazy-load Surya predictors.

        Called automatically on first inference. Predictors are cached
        for all subsequent calls. Concurrent first calls load them once.
        """
        if self._models_loaded:
            return

        with self._load_lock:
            if not self._models_loaded:
                self._build_predictors()

    def _build_predictors(self) -> None:
        try:
            from surya.detection import DetectionPredictor
            from surya.foundation import FoundationPredictor
            from surya.recognition import RecognitionPredictor
        except ImportError as e:
            raise ImportError(
                "surya-ocr is required for local recognition. "
                "Install it with: pip install 'casebuddy-ocr[surya]'"
            ) from e

        device = "cuda" if self._use_gpu and _cuda_available() else "cpu"
        logger.info("Loading Surya models (device=%s)...", device)

        foundation = FoundationPredictor(device=device)
        self._rec_predictor = RecognitionPredictor(foundation)
        self._det_predictor = DetectionPredictor(device=device)

        self._models_loaded = True
        logger.info("Surya models loaded successfully")

    def recognize(self, image: Image.Image) -> PageRecognition:
        self._load_models()

        predictions = self._rec_predictor(
            [image.convert("RGB")], det_predictor=self._det_predictor
        )
        if not predictions:
            return PageRecognition(text="", confidence=0.0)

        lines = _parse_text_lines(predictions[0].text_lines)
        if not lines:
            logger.debug("No text detected on page")
            return PageRecognition(text="", confidence=0.0)

        text = "\n".join(line_text for line_text, _ in lines)
        return PageRecognition(text=text, confidence=_compute_page_confidence(lines))

    def reset(self) -> None:
        """Release models and free memory."""
        with self._load_lock:
            self._det_predictor = None
            self._rec_predictor = None
            self._models_loaded = False
        logger.info("Surya models released")


def _cuda_available() -> bool:
    try:
        import torch
    except ImportError:
        logger.info("PyTorch not found, using CPU mode")
        return False

    if not torch.cuda.is_available():
        logger.info("CUDA not available, falling back to CPU")
        return False
    return True


def _parse_text_lines(text_lines) -> List[Tuple[str, float]]:
    """Convert Surya text lines to (normalized text, confidence) pairs."""
    lines = []
    for text_line in text_lines:
        text = normalize_text(text_line.text or "").strip()
        if not text:
            continue
        confidence = float(getattr(text_line, "confidence", None) or 0.0)
        lines.append((text, confidence))
    return lines


def normalize_text(text: str) -> str:
    """Remove zero-width and directional marks, then apply NFC normalization."""
    if not text:
        return text
    for char in _INVISIBLE_CHARS:
        text = text.replace(char, "")
    return unicodedata.normalize("NFC", text)


def _compute_page_confidence(lines: List[Tuple[str, float]]) -> float:
    """
    Compute page-level confidence on a 0-100 scale.

    Line confidences (0-1) are averaged with weights proportional to
    the number of characters in each line.
    """
    if not lines:
        return 0.0

    total_chars = sum(len(text) for text, _ in lines)
    if total_chars == 0:
        return 0.0

    weighted_sum = sum(confidence * len(text) for text, confidence in lines)
    score = weighted_sum / total_chars * 100.0
    return min(max(score, 0.0), 100.0)


# Module-level singleton engine
_engine: Optional[SuryaOCREngine] = None


def get_engine() -> SuryaOCREngine:
    """Get or create the singleton Surya OCR engine."""
    global _engine
    if _engine is None:
        _engine = SuryaOCREngine()
    return _engine


def reset_engine() -> None:
    """Reset the singleton engine (useful for testing)."""
    global _engine
    if _engine is not None:
        _engine.reset()
    _engine = None
