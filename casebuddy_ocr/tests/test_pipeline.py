"""
End-to-end tests for the extraction pipeline.

The recognition engine is a fake keyed on image width, and PDF
rendering is mocked at the pdf2image boundary.
"""

import io
import json
import threading
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image
from pydantic import ValidationError

from casebuddy_ocr import config
from casebuddy_ocr.engine import RecognitionEngine
from casebuddy_ocr.errors import (
    DocumentFileError,
    DocumentSecurityError,
    EmptyDocumentError,
    RasterizationError,
    RecognitionError,
)
from casebuddy_ocr.ocr_pipeline import (
    analyze_document,
    extract_document,
    process_batch,
    process_document,
)
from casebuddy_ocr.schemas import ExtractedData, PageRecognition


class WidthEngine(RecognitionEngine):
    """Returns a scripted (text, confidence) per page, keyed on image width."""

    name = "fake"

    def __init__(self, script, fail_on=None):
        self.script = script
        self.fail_on = fail_on

    def recognize(self, image):
        if image.width == self.fail_on:
            raise RuntimeError("engine failure")
        text, confidence = self.script[image.width]
        return PageRecognition(text=text, confidence=confidence)


def _fake_convert(file_bytes, dpi, first_page, last_page):
    return [Image.new("RGB", (first_page, 2))]


def _png_bytes(width=3, height=3):
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), "white").save(buffer, format="PNG")
    return buffer.getvalue()


TWO_PAGES = {1: ("Hello world.", 70), 2: ("Case No. 99-001.", 90)}


@pytest.fixture
def two_page_pdf():
    with patch("pdf2image.pdfinfo_from_bytes", return_value={"Pages": 2}), patch(
        "pdf2image.convert_from_bytes", side_effect=_fake_convert
    ):
        yield b"%PDF-1.4"


class TestExtractDocument:
    def test_two_page_document(self, two_page_pdf):
        result = extract_document(two_page_pdf, "application/pdf", engine=WidthEngine(TWO_PAGES))

        assert result.raw_text == "Hello world.\n\nCase No. 99-001."
        assert result.confidence_score == 80
        assert any("99-001" in case for case in result.entities.case_numbers)
        assert result.summary == config.SUMMARY_FALLBACK

    def test_concurrent_matches_sequential(self, two_page_pdf):
        engine = WidthEngine(TWO_PAGES)
        sequential = extract_document(two_page_pdf, "application/pdf", engine=engine, max_workers=1)
        concurrent = extract_document(two_page_pdf, "application/pdf", engine=engine, max_workers=2)
        assert concurrent == sequential

    def test_progress_side_channel(self, two_page_pdf):
        events = []
        extract_document(
            two_page_pdf,
            "application/pdf",
            engine=WidthEngine(TWO_PAGES),
            progress=lambda index, fraction: events.append((index, fraction)),
        )
        assert events == [(1, 0.5), (2, 1.0)]

    def test_single_image(self):
        engine = WidthEngine({5: ("Docket No. 24-77 was filed on 4/2/2024 by Ann Lee.", 91.6)})
        result = extract_document(_png_bytes(5, 5), "image/png", engine=engine)

        assert result.confidence_score == 92
        assert result.entities.dates == ("4/2/2024",)
        assert result.entities.names == ("Docket No", "Ann Lee")
        assert result.entities.case_numbers == ("Docket No. 24-77",)
        assert result.summary == "24-77 was filed on 4/2/2024 by Ann Lee."

    def test_recognition_error_propagates(self, two_page_pdf):
        with pytest.raises(RecognitionError) as excinfo:
            extract_document(
                two_page_pdf, "application/pdf", engine=WidthEngine(TWO_PAGES, fail_on=2)
            )
        assert excinfo.value.page_index == 2

    def test_empty_transcription_is_failure(self, two_page_pdf):
        engine = WidthEngine({1: ("  ", 40), 2: ("\n", 60)})
        with pytest.raises(EmptyDocumentError):
            extract_document(two_page_pdf, "application/pdf", engine=engine)

    def test_rasterization_error_propagates(self):
        with pytest.raises(RasterizationError):
            extract_document(b"junk", "image/png", engine=WidthEngine({}))

    @patch("casebuddy_ocr.ocr_pipeline.get_engine")
    def test_default_engine_is_local_singleton(self, mock_get_engine):
        mock_get_engine.return_value = WidthEngine({3: ("Some text on the page here.", 50)})
        result = extract_document(_png_bytes(), "image/png")
        assert result.raw_text == "Some text on the page here."
        mock_get_engine.assert_called_once()


class TestExtractedDataRecord:
    def test_camel_case_wire_schema(self, two_page_pdf):
        result = extract_document(two_page_pdf, "application/pdf", engine=WidthEngine(TWO_PAGES))
        payload = json.loads(result.model_dump_json(by_alias=True))

        assert set(payload) == {"rawText", "summary", "entities", "confidenceScore"}
        assert set(payload["entities"]) == {"dates", "names", "caseNumbers"}
        assert payload["confidenceScore"] == 80

    def test_record_is_immutable(self, two_page_pdf):
        result = extract_document(two_page_pdf, "application/pdf", engine=WidthEngine(TWO_PAGES))
        with pytest.raises(ValidationError):
            result.raw_text = "changed"

    def test_rejects_empty_text(self):
        with pytest.raises(ValidationError):
            ExtractedData(raw_text=" ", summary="", entities={}, confidence_score=1)

    def test_rejects_duplicate_entities(self):
        with pytest.raises(ValidationError):
            ExtractedData(
                raw_text="x",
                summary="",
                entities={"dates": ["1/1/2024", "1/1/2024"]},
                confidence_score=1,
            )


class TestProcessDocument:
    def test_local_png(self, tmp_path):
        path = tmp_path / "scan.png"
        path.write_bytes(_png_bytes())
        engine = WidthEngine({3: ("Notice to quit served on the tenant.", 75)})

        result = process_document(str(path), engine=engine)
        assert result.raw_text == "Notice to quit served on the tenant."
        assert result.confidence_score == 75

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hello")
        with pytest.raises(DocumentFileError):
            process_document(str(path), engine=WidthEngine({}))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.pdf"
        path.write_bytes(b"")
        with pytest.raises(DocumentFileError):
            process_document(str(path), engine=WidthEngine({}))

    def test_missing_file(self, tmp_path):
        with pytest.raises(DocumentFileError):
            process_document(str(tmp_path / "absent.png"), engine=WidthEngine({}))

    def test_path_traversal_rejected(self, tmp_path):
        with pytest.raises(DocumentSecurityError):
            process_document(str(tmp_path / ".." / "scan.png"), engine=WidthEngine({}))


class TestProcessBatch:
    def test_outcomes_in_input_order_with_isolated_failures(self, tmp_path):
        good = tmp_path / "good.png"
        good.write_bytes(_png_bytes())
        bad = tmp_path / "bad.png"
        bad.write_bytes(b"not a png")
        engine = WidthEngine({3: ("Lease agreement signed by both parties.", 88)})

        outcomes = process_batch(
            [str(good), str(bad), str(tmp_path / "missing.png")],
            max_workers=2,
            engine=engine,
        )

        assert [o.file_path for o in outcomes] == [str(good), str(bad), str(tmp_path / "missing.png")]
        assert outcomes[0].ok
        assert outcomes[0].data.confidence_score == 88
        assert outcomes[1].error_kind == "RasterizationError"
        assert outcomes[2].error_kind == "DocumentFileError"

    def test_documents_processed_in_parallel(self, tmp_path):
        paths = []
        for name in ("a.png", "b.png"):
            path = tmp_path / name
            path.write_bytes(_png_bytes())
            paths.append(str(path))

        barrier = threading.Barrier(2, timeout=5)

        class BarrierEngine(RecognitionEngine):
            def recognize(self, image):
                barrier.wait()
                return PageRecognition(text="Both documents were read together.", confidence=60)

        outcomes = process_batch(paths, max_workers=2, engine=BarrierEngine())
        assert all(o.ok for o in outcomes)

    def test_sequential_when_single_worker(self, tmp_path):
        path = tmp_path / "one.png"
        path.write_bytes(_png_bytes())
        engine = WidthEngine({3: ("Only one document in this batch.", 10)})

        outcomes = process_batch([str(path)], max_workers=1, engine=engine)
        assert len(outcomes) == 1
        assert outcomes[0].ok


class TestAnalyzeDocument:
    def test_delegates_to_analyzer(self):
        expected = ExtractedData(
            raw_text="Full text",
            summary="Summary.",
            entities={},
            confidence_score=77,
        )
        analyzer = MagicMock()
        analyzer.analyze.return_value = expected

        result = analyze_document(_png_bytes(), "image/png", analyzer=analyzer)

        assert result is expected
        pages = list(analyzer.analyze.call_args.args[0])
        assert [p.page_index for p in pages] == [1]

    def test_rasterization_error_propagates(self):
        with pytest.raises(RasterizationError):
            analyze_document(b"junk", "image/png", analyzer=MagicMock())
