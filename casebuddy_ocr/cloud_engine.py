"""
cloud_engine.py

Cloud-hosted recognition through a Groq vision model.

Two entry points:
- GroqVisionEngine: a drop-in RecognitionEngine that transcribes one
  page image per call and returns {text, confidence}.
- GroqDocumentAnalyzer: sends every page of a document in one request
  and asks the model for the complete record (text, summary, entities,
  confidence). Its output is normalized so it satisfies the same
  invariants as the local pipeline.

The API key is read from the GROQ_API_KEY environment variable; a
.env file in the working directory is loaded first.
"""

import base64
import io
import logging
import os
import threading
from typing import Iterable, List, Optional

from dotenv import load_dotenv
from langchain_core.messages import HumanMessage
from langchain_groq import ChatGroq
from PIL import Image
from pydantic import BaseModel, Field

from . import config
from .aggregator import round_half_up
from .engine import RecognitionEngine
from .entities import unique_in_order
from .errors import EmptyDocumentError, RecognitionError
from .schemas import ExtractedData, ExtractedEntities, PageRecognition, RasterPage
from .summarizer import generate_summary

logger = logging.getLogger(__name__)

PAGE_PROMPT = """
You are an expert legal OCR analyst. Your goal is 100% character accuracy.

Transcribe the text of this page exactly as it appears, preserving line
breaks. Handle multi-column layouts, footnotes and headers in reading order.
If the page is handwritten, transcribe it as legibly as you can.
Do not add anything that is not on the page.

Also give a confidence score from 0 to 100 reflecting how legible the page is.
"""

DOCUMENT_PROMPT = """
You are an expert legal OCR analyst. Your goal is 100% character accuracy.
The images are the pages of one document, in order.

1. Transcribe the document text exactly as it appears, separating pages
   with a blank line.
2. Write a professional executive summary of the document (2-3 sentences).
3. List every distinct date, every full name of a person or organization,
   and every case, docket or reference number.
4. Give a confidence score from 0 to 100 reflecting the document's legibility.

Verify case numbers and dates against the context.
Do not hallucinate information not present in the text.
"""


class PageTranscription(BaseModel):
    text: str = Field(description="Verbatim text of the page, with newlines.")
    confidence: float = Field(
        allow_inf_nan=False, description="Legibility confidence from 0 to 100."
    )


class DocumentAnalysis(BaseModel):
    raw_text: str = Field(description="Full verbatim text of the document.")
    summary: str = Field(description="Executive summary, 2-3 sentences.")
    dates: List[str] = Field(default_factory=list, description="Distinct dates.")
    names: List[str] = Field(
        default_factory=list, description="Names of people and organizations."
    )
    case_numbers: List[str] = Field(
        default_factory=list, description="Case, docket or reference numbers."
    )
    confidence_score: float = Field(
        allow_inf_nan=False, description="Confidence from 0 to 100."
    )


class _GroqClient:
    """Lazily builds one ChatGroq instance shared by all calls."""

    def __init__(
        self,
        llm: Optional[ChatGroq] = None,
        model_name: Optional[str] = None,
        temperature: Optional[float] = None,
    ):
        self._llm = llm
        self._model_name = model_name or config.GROQ_VISION_MODEL
        self._temperature = (
            config.GROQ_TEMPERATURE if temperature is None else temperature
        )
        self._lock = threading.Lock()

    def get(self) -> ChatGroq:
        with self._lock:
            if self._llm is None:
                self._llm = _build_llm(self._model_name, self._temperature)
            return self._llm


def _build_llm(model_name: str, temperature: float) -> ChatGroq:
    load_dotenv()
    if not os.getenv(config.GROQ_API_KEY_ENV):
        logger.warning(
            "%s not found in environment variables; "
            "set it or add it to a .env file",
            config.GROQ_API_KEY_ENV,
        )
    logger.info("Initializing Groq model %s", model_name)
    return ChatGroq(model_name=model_name, temperature=temperature)


def encode_image(image: Image.Image) -> dict:
    """Encode an image as a base64 PNG data-URL message part."""
    buffer = io.BytesIO()
    image.convert("RGB").save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return {"type": "image_url", "image_url": {"url": f"data:image/png;base64,{encoded}"}}


def _clamp_score(value: float) -> float:
    return min(max(float(value), 0.0), 100.0)


class GroqVisionEngine(RecognitionEngine):
    """Page-level recognition engine backed by a Groq vision model."""

    name = "groq"

    def __init__(
        self,
        llm: Optional[ChatGroq] = None,
        model_name: Optional[str] = None,
        temperature: Optional[float] = None,
    ):
        self._client = _GroqClient(llm, model_name, temperature)

    def recognize(self, image: Image.Image) -> PageRecognition:
        structured = self._client.get().with_structured_output(PageTranscription)
        message = HumanMessage(
            content=[{"type": "text", "text": PAGE_PROMPT}, encode_image(image)]
        )
        transcription = structured.invoke([message])
        if transcription is None:
            raise ValueError("Model returned no structured transcription")

        return PageRecognition(
            text=transcription.text or "",
            confidence=_clamp_score(transcription.confidence),
        )


class GroqDocumentAnalyzer:
    """
    Whole-document extraction in a single model call.

    Groq accepts a limited number of images per request, so documents
    longer than max_pages are rejected with RecognitionError.
    """

    def __init__(
        self,
        llm: Optional[ChatGroq] = None,
        model_name: Optional[str] = None,
        temperature: Optional[float] = None,
        max_pages: Optional[int] = None,
    ):
        self._client = _GroqClient(llm, model_name, temperature)
        self.max_pages = config.GROQ_MAX_IMAGES_PER_REQUEST if max_pages is None else max_pages

    def analyze(self, pages: Iterable[RasterPage]) -> ExtractedData:
        """
        Send all pages to the model and normalize its answer.

        Raises:
            RecognitionError: If the document is too long or the call
                fails. page_index 0 refers to the whole document.
            EmptyDocumentError: If the model returns no text.
        """
        if hasattr(pages, "__len__") and len(pages) > self.max_pages:
            raise RecognitionError(
                f"Document exceeds {self.max_pages} pages for single-call analysis",
                page_index=self.max_pages + 1,
            )

        parts = [{"type": "text", "text": DOCUMENT_PROMPT}]
        for page in pages:
            if page.page_index > self.max_pages:
                raise RecognitionError(
                    f"Document exceeds {self.max_pages} pages for single-call analysis",
                    page_index=page.page_index,
                )
            parts.append(encode_image(page.image))

        logger.info("Analyzing %d page(s) in one request", len(parts) - 1)
        try:
            structured = self._client.get().with_structured_output(DocumentAnalysis)
            analysis = structured.invoke([HumanMessage(content=parts)])
        except Exception as e:
            raise RecognitionError(f"Document analysis failed: {e}", page_index=0) from e
        if analysis is None:
            raise RecognitionError(
                "Document analysis returned no structured answer", page_index=0
            )

        return normalize_analysis(analysis)


def normalize_analysis(analysis: DocumentAnalysis) -> ExtractedData:
    """
    Coerce a model answer into a valid ExtractedData record.

    Entity lists are stripped and deduplicated, names are capped,
    the score is rounded and clamped, and a blank summary is replaced
    with the extractive one.
    """
    raw_text = (analysis.raw_text or "").strip()
    if not raw_text:
        raise EmptyDocumentError("No text could be extracted from the document.")

    def _clean(values: List[str]) -> List[str]:
        return unique_in_order(v.strip() for v in values if v and v.strip())

    summary = (analysis.summary or "").strip() or generate_summary(raw_text)

    return ExtractedData(
        raw_text=raw_text,
        summary=summary,
        entities=ExtractedEntities(
            dates=tuple(_clean(analysis.dates)),
            names=tuple(_clean(analysis.names)[: config.MAX_NAMES]),
            case_numbers=tuple(_clean(analysis.case_numbers)),
        ),
        confidence_score=round_half_up(_clamp_score(analysis.confidence_score)),
    )
