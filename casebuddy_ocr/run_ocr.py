"""
run_ocr.py

Command-line entry point: extract text, summary and entities from a document.

Usage:
    python -m casebuddy_ocr.run_ocr <file_path>
    python -m casebuddy_ocr.run_ocr <file_path> --json
    python -m casebuddy_ocr.run_ocr <file_path> --engine cloud --workers 4
    python -m casebuddy_ocr.run_ocr <file_path> --analyze
"""

import argparse
import logging
import os
import sys

from .errors import DocumentFileError, DocumentSecurityError, ExtractionError
from .ocr_pipeline import analyze_document, process_document
from .utils import load_document


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Extract text, a summary and legal entities from a PDF or image"
    )
    parser.add_argument(
        "file_path",
        help="Path to the PDF or image file to process",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output the extracted record as JSON",
    )
    parser.add_argument(
        "--engine",
        choices=["local", "cloud"],
        default="local",
        help="Recognition engine: local Surya OCR or a Groq vision model",
    )
    parser.add_argument(
        "--analyze",
        action="store_true",
        help="Send the whole document to the cloud model in one request",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of pages to recognize concurrently",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def _print_progress(page_index: int, fraction: float) -> None:
    print(f"Page {page_index} done ({fraction:.0%})", file=sys.stderr)


def _print_report(file_path: str, result) -> None:
    entities = result.entities
    print(f"File: {file_path}")
    print(f"Confidence: {result.confidence_score}%")
    print(f"Summary: {result.summary}")
    print(f"Dates: {', '.join(entities.dates) or '-'}")
    print(f"Names: {', '.join(entities.names) or '-'}")
    print(f"Case numbers: {', '.join(entities.case_numbers) or '-'}")
    print("---")
    print(result.raw_text)


def main(argv=None) -> int:
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not os.path.exists(args.file_path):
        print(f"Error: File not found: {args.file_path}", file=sys.stderr)
        return 1

    try:
        if args.analyze:
            file_bytes, media_type = load_document(args.file_path)
            result = analyze_document(file_bytes, media_type)
        else:
            engine = None
            if args.engine == "cloud":
                from .cloud_engine import GroqVisionEngine

                engine = GroqVisionEngine()
            result = process_document(
                args.file_path,
                engine=engine,
                max_workers=args.workers,
                progress=_print_progress,
            )
    except (ExtractionError, DocumentFileError, DocumentSecurityError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(result.model_dump_json(by_alias=True, indent=2))
    else:
        _print_report(args.file_path, result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
