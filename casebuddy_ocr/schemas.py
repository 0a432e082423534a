"""
schemas.py

Pydantic models passed between the pipeline stages.

RasterPage -> PageRecognition (engine output) -> PageResult
-> ExtractedData (the only record handed to collaborators).
"""

from typing import Optional, Tuple

from PIL import Image
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from . import config


class RasterPage(BaseModel):
    """A decoded page image and its 1-based position in the document."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    page_index: int = Field(ge=1)
    image: Image.Image


class PageRecognition(BaseModel):
    """Transcription of one page as returned by a recognition engine."""

    model_config = ConfigDict(frozen=True)

    text: str
    confidence: float = Field(ge=0.0, le=100.0)


class PageResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    page_index: int = Field(ge=1)
    text: str
    confidence: float = Field(ge=0.0, le=100.0)


class ExtractedEntities(BaseModel):
    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    dates: Tuple[str, ...] = ()
    names: Tuple[str, ...] = ()
    case_numbers: Tuple[str, ...] = ()

    @field_validator("dates", "names", "case_numbers")
    @classmethod
    def _no_duplicates(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        if len(set(value)) != len(value):
            raise ValueError("entity lists must not contain duplicates")
        return value

    @field_validator("names")
    @classmethod
    def _cap_names(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        if len(value) > config.MAX_NAMES:
            raise ValueError(f"at most {config.MAX_NAMES} names are allowed")
        return value


class ExtractedData(BaseModel):
    """
    Final intelligence record for one document.

    Serialize with ``model_dump(by_alias=True)`` to get the camelCase
    wire schema (rawText, summary, entities, confidenceScore).
    """

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    raw_text: str
    summary: str
    entities: ExtractedEntities
    confidence_score: int = Field(ge=0, le=100)

    @field_validator("raw_text")
    @classmethod
    def _non_empty_text(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("raw_text must not be empty")
        return value


class DocumentOutcome(BaseModel):
    """Per-file result of batch processing: either data or an error."""

    file_path: str
    data: Optional[ExtractedData] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "DocumentOutcome":
        if (self.data is None) == (self.error is None):
            raise ValueError("exactly one of data and error must be set")
        return self

    @property
    def ok(self) -> bool:
        return self.data is not None
