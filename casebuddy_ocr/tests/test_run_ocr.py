"""
Tests for the command-line entry point.
"""

import json
from unittest.mock import patch

import pytest

from casebuddy_ocr.errors import EmptyDocumentError
from casebuddy_ocr.run_ocr import main
from casebuddy_ocr.schemas import ExtractedData

RECORD = ExtractedData(
    raw_text="Case No. 7-1\nJohn Smith",
    summary="No readable content extracted from the document.",
    entities={"names": ["John Smith"], "case_numbers": ["Case No. 7-1"]},
    confidence_score=64,
)


@pytest.fixture
def scan(tmp_path):
    path = tmp_path / "scan.png"
    path.write_bytes(b"placeholder")
    return str(path)


class TestMain:
    @patch("casebuddy_ocr.run_ocr.process_document", return_value=RECORD)
    def test_json_output(self, mock_process, scan, capsys):
        assert main([scan, "--json"]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["rawText"] == RECORD.raw_text
        assert payload["entities"]["caseNumbers"] == ["Case No. 7-1"]
        assert payload["confidenceScore"] == 64

    @patch("casebuddy_ocr.run_ocr.process_document", return_value=RECORD)
    def test_text_report(self, mock_process, scan, capsys):
        assert main([scan]) == 0
        out = capsys.readouterr().out
        assert "Confidence: 64%" in out
        assert "Names: John Smith" in out
        assert "Dates: -" in out

    @patch("casebuddy_ocr.run_ocr.process_document", return_value=RECORD)
    def test_workers_forwarded(self, mock_process, scan):
        main([scan, "--workers", "3"])
        assert mock_process.call_args.kwargs["max_workers"] == 3
        assert mock_process.call_args.kwargs["engine"] is None

    @patch("casebuddy_ocr.cloud_engine.GroqVisionEngine")
    @patch("casebuddy_ocr.run_ocr.process_document", return_value=RECORD)
    def test_cloud_engine_selected(self, mock_process, mock_engine, scan):
        main([scan, "--engine", "cloud"])
        assert mock_process.call_args.kwargs["engine"] is mock_engine.return_value

    @patch("casebuddy_ocr.run_ocr.analyze_document", return_value=RECORD)
    def test_analyze_mode(self, mock_analyze, scan):
        assert main([scan, "--analyze"]) == 0
        file_bytes, media_type = mock_analyze.call_args.args
        assert file_bytes == b"placeholder"
        assert media_type == "image/png"

    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "nope.pdf")]) == 1
        assert "File not found" in capsys.readouterr().err

    @patch(
        "casebuddy_ocr.run_ocr.process_document",
        side_effect=EmptyDocumentError("No text could be extracted from the document."),
    )
    def test_pipeline_error_exits_nonzero(self, mock_process, scan, capsys):
        assert main([scan]) == 1
        assert "No text could be extracted" in capsys.readouterr().err
