"""
Command-line interface for the document extraction pipeline.

Usage:
    python -m docextract process <file.pdf|directory> [--eval] [--workers N]
    python -m docextract process-url <url> [--eval]
    python -m docextract evaluate [--file record.json] [--limit N]
    python -m docextract stats
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv

from docextract.config import Settings, get_settings
from docextract.db.json_database import JsonDocumentStore
from docextract.middleware.logging import CLI_LOG_FORMAT, configure_logging
from docextract.models.pipeline import BatchSummary, PipelineResult
from docextract.services.batch_processor import process_directory
from docextract.services.document_classifier import ClassificationFailedError
from docextract.services.document_extractor import ExtractionFailedError
from docextract.services.evaluation_report import (
    default_query,
    format_evaluation_report,
    format_summary,
    summarize_evaluations,
)
from docextract.services.gemini_client import GeminiCompletionClient, TransportError
from docextract.services.pdf_downloader import PdfDownloadError
from docextract.services.pipeline import process_pdf_file, process_pdf_url
from docextract.services.quality_evaluator import evaluate_extraction
from docextract.services.relevancy_scorer import AnswerRelevancyScorer

logger = logging.getLogger(__name__)

_RULE = "=" * 60

# Failures of one document that are reported without a traceback
_DOCUMENT_ERRORS = (
    ClassificationFailedError,
    ExtractionFailedError,
    TransportError,
    PdfDownloadError,
    FileNotFoundError,
    ValueError,
)


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="docextract",
        description="Extract structured data from invoice, contract and receipt PDFs"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    process_parser = subparsers.add_parser(
        "process",
        help="Process one PDF or every PDF in a directory"
    )
    process_parser.add_argument("path", help="PDF file or directory of PDFs")
    process_parser.add_argument(
        "--eval",
        dest="evaluate",
        action="store_true",
        help="Print a quality report for each extraction"
    )
    process_parser.add_argument(
        "--workers",
        "-w",
        type=int,
        default=None,
        help="PDFs processed in parallel in directory mode (default: from env or 1)"
    )
    process_parser.add_argument(
        "--pattern",
        "-p",
        type=str,
        default="*.pdf",
        help="Glob pattern for PDF files in directory mode (default: *.pdf)"
    )
    process_parser.add_argument(
        "--doc-type",
        choices=["invoice", "contract", "receipt"],
        default=None,
        help="Skip classification and treat the document as this type"
    )

    url_parser = subparsers.add_parser(
        "process-url",
        help="Download a PDF from an http(s) URL and process it"
    )
    url_parser.add_argument("url", help="http or https URL of the PDF")
    url_parser.add_argument("--eval", dest="evaluate", action="store_true")

    eval_parser = subparsers.add_parser(
        "evaluate",
        help="Score stored extractions (or one JSON record file)"
    )
    eval_parser.add_argument(
        "--file",
        "-f",
        type=str,
        default=None,
        help="Evaluate a specific extracted-record JSON file"
    )
    eval_parser.add_argument(
        "--limit",
        "-n",
        type=int,
        default=10,
        help="Most recent stored documents to evaluate (default: 10)"
    )

    subparsers.add_parser("stats", help="Show document database statistics")

    return parser


def _relevancy(settings: Settings, completer: GeminiCompletionClient) -> Optional[AnswerRelevancyScorer]:
    if not settings.enable_confidence_scoring:
        return None
    return AnswerRelevancyScorer(completer)


def _print_result(result: PipelineResult) -> None:
    print(f"OK {result.source_label}")
    print(f"   Classified as: {result.classification.category.value} "
          f"({result.classification.method}, confidence {result.classification.confidence:.1f})")
    print(f"   Extracted: {len(result.record.field_values())} fields")
    print(f"   Saved as {result.document_id} in {result.storage_location}")
    if result.evaluation is not None:
        print(format_evaluation_report(result.evaluation, result.source_label))


def _print_batch_summary(summary: BatchSummary) -> None:
    print(f"\n{_RULE}")
    print(f"DONE: {summary.success}/{summary.total} succeeded, {summary.errors} failed "
          f"({summary.success_rate:.1f}%) in {summary.duration_seconds:.1f}s")

    failed = [r for r in summary.results if r.status != "ok"]
    if failed:
        print("\nFailed files:")
        for r in failed:
            print(f"  - {r.file}: {r.error_type}: {r.error}")


def process_command(args: argparse.Namespace, settings: Settings) -> int:
    """
    Process a single PDF or a directory of PDFs.

    Returns:
        int: 0 if at least one document succeeded, else 1
    """
    if not os.path.exists(args.path):
        print(f"Error: Path not found: {args.path}")
        return 1

    workers = args.workers if args.workers is not None else settings.batch_workers
    if workers < 1 or workers > 50:
        print("Error: --workers must be between 1 and 50")
        return 1

    completer = GeminiCompletionClient()
    store = JsonDocumentStore(settings.database_path)
    relevancy = _relevancy(settings, completer)

    if os.path.isdir(args.path):
        summary = asyncio.run(process_directory(
            args.path,
            completer=completer,
            store=store,
            workers=workers,
            pattern=args.pattern,
            evaluate=args.evaluate,
            relevancy=relevancy,
            excerpt_chars=settings.classification_excerpt_chars,
        ))
        _print_batch_summary(summary)
        return 0 if summary.success > 0 else 1

    try:
        result = process_pdf_file(
            args.path,
            completer=completer,
            store=store,
            evaluate=args.evaluate,
            relevancy=relevancy,
            category=args.doc_type,
            excerpt_chars=settings.classification_excerpt_chars,
        )
    except _DOCUMENT_ERRORS as e:
        print(f"Error processing {args.path}: {e}")
        return 1

    _print_result(result)
    return 0


def process_url_command(args: argparse.Namespace, settings: Settings) -> int:
    completer = GeminiCompletionClient()
    try:
        result = process_pdf_url(
            args.url,
            downloads_dir=settings.downloads_dir,
            timeout=settings.download_timeout_seconds,
            max_size_bytes=settings.max_download_size_mb * 1024 * 1024,
            completer=completer,
            store=JsonDocumentStore(settings.database_path),
            evaluate=args.evaluate,
            relevancy=_relevancy(settings, completer),
            excerpt_chars=settings.classification_excerpt_chars,
        )
    except _DOCUMENT_ERRORS as e:
        print(f"Error processing PDF URL: {e}")
        return 1

    _print_result(result)
    return 0


def evaluate_command(args: argparse.Namespace, settings: Settings) -> int:
    """Evaluate a record file, or the most recent stored documents."""
    if args.file:
        try:
            with open(args.file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            print(f"Error reading {args.file}: {e}")
            return 1

        evaluation = evaluate_extraction(data, query=default_query())
        print(format_evaluation_report(evaluation, args.file))
        return 0

    store = JsonDocumentStore(settings.database_path)
    documents = store.query(limit=args.limit)
    if not documents:
        print("No documents found in database to evaluate.")
        print("Process some documents first using:")
        print("  python -m docextract process <file.pdf>")
        print("  python -m docextract process-url <url>")
        return 1

    print(f"Evaluating {len(documents)} documents from database...\n")
    evaluations = []
    for doc in documents:
        evaluation = evaluate_extraction(doc.extracted_data, query=default_query(doc.document_type))
        evaluations.append(evaluation)
        print(f"{doc.id} {doc.source_label} [{doc.document_type.value}] "
              f"score {evaluation.score:.1f}/100, completeness {evaluation.completeness:.1f}%")
        if evaluation.missing_fields:
            print(f"   Missing: {', '.join(evaluation.missing_fields)}")

    print(format_summary(summarize_evaluations(evaluations)))
    print_stats(store)
    return 0


def print_stats(store: JsonDocumentStore) -> None:
    stats = store.stats()
    print("\nDatabase Statistics:")
    print(f"   Total Documents: {stats.total}")
    print(f"   Invoices: {stats.invoice}")
    print(f"   Contracts: {stats.contract}")
    print(f"   Receipts: {stats.receipt}")


def stats_command(args: argparse.Namespace, settings: Settings) -> int:
    print_stats(JsonDocumentStore(settings.database_path))
    return 0


COMMANDS = {
    "process": process_command,
    "process-url": process_url_command,
    "evaluate": evaluate_command,
    "stats": stats_command,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    load_dotenv()
    try:
        settings = get_settings()
    except ValueError as e:
        print(f"Configuration error: {e}")
        print("\nMake sure you have a .env file with:")
        print("  GEMINI_API_KEY=your_api_key")
        return 1

    configure_logging(settings.log_level, CLI_LOG_FORMAT)

    try:
        return COMMANDS[args.command](args, settings)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        return 1


if __name__ == "__main__":
    sys.exit(main())
