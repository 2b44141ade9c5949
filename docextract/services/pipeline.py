"""
Single-document pipeline.

Each document moves through:

    validated -> text extracted -> classified -> extracted -> persisted -> (evaluated)

A failure at any step aborts the document and propagates to the caller.
Nothing is persisted unless the extractor returned a schema-valid record,
and the pipeline itself never retries (the extractor's fallback attempt is
the only retry).
"""

import logging
import os
import time
from typing import Optional, Union

import httpx

from docextract.db.json_database import JsonDocumentStore
from docextract.models.classification import ClassificationResult
from docextract.models.document_schema import DocumentCategory, parse_category
from docextract.models.pipeline import PipelineResult
from docextract.services.document_classifier import classify_text
from docextract.services.document_extractor import extract_document
from docextract.services.evaluation_report import default_query
from docextract.services.gemini_client import CompletionClient
from docextract.services.pdf_downloader import download_pdf
from docextract.services.quality_evaluator import RelevancyFn, evaluate_extraction
from docextract.services.text_extractor import extract_text, validate_pdf_file

logger = logging.getLogger(__name__)


class InvalidPdfError(ValueError):
    """Raised when an input path is not an existing, readable .pdf file."""


def run_pipeline(
    text: str,
    source_label: str,
    *,
    completer: CompletionClient,
    store: JsonDocumentStore,
    file_path: Optional[str] = None,
    evaluate: bool = False,
    relevancy: Optional[RelevancyFn] = None,
    category: Optional[Union[DocumentCategory, str]] = None,
    excerpt_chars: int = 2000,
) -> PipelineResult:
    """
    Classify, extract, persist and optionally evaluate one document's text.

    Args:
        text: Document text
        source_label: File name or URL shown in reports and stored with the record
        completer: Model client for classification and extraction
        store: Where the record is persisted
        file_path: Local path of the source PDF, if any
        evaluate: Run the quality evaluator on the stored record
        relevancy: Optional relevancy scorer used during evaluation
        category: Skip classification and use this category
        excerpt_chars: Leading characters sent to the classifier

    Returns:
        PipelineResult

    Raises:
        ClassificationFailedError: No category could be assigned
        ExtractionFailedError: Both extraction attempts failed
        UnsupportedCategoryError: ``category`` is not a supported type
    """
    started = time.monotonic()

    if category is not None:
        classification = ClassificationResult(
            category=parse_category(category),
            confidence=1.0,
            method="user_provided",
        )
    else:
        classification = classify_text(text, completer, excerpt_chars=excerpt_chars)
    logger.info(
        "Classified %s as %s (%.1f, %s)",
        source_label, classification.category.value,
        classification.confidence, classification.method,
    )

    record = extract_document(classification.category, text, completer)

    duration = time.monotonic() - started
    stored = store.append(
        record,
        source_label,
        file_path=file_path,
        processing_duration=round(duration, 3),
    )

    evaluation = None
    if evaluate:
        evaluation = evaluate_extraction(
            record,
            text,
            default_query(classification.category),
            relevancy=relevancy,
        )
        logger.info("Evaluated %s: score %.1f", stored.id, evaluation.score)

    return PipelineResult(
        document_id=stored.id,
        source_label=source_label,
        classification=classification,
        record=record,
        storage_location=store.path,
        evaluation=evaluation,
        processing_duration=time.monotonic() - started,
    )


def process_pdf_file(
    file_path: str,
    *,
    source_label: Optional[str] = None,
    **pipeline_options,
) -> PipelineResult:
    """
    Run the pipeline on a local PDF.

    Raises:
        InvalidPdfError: Missing, unreadable or non-.pdf path
        NoTextFoundError: The PDF has no extractable text
        Plus everything ``run_pipeline`` raises
    """
    if not validate_pdf_file(file_path):
        raise InvalidPdfError(f"Not a readable PDF file: {file_path}")

    text = extract_text(file_path)
    return run_pipeline(
        text,
        source_label or os.path.basename(file_path),
        file_path=file_path,
        **pipeline_options,
    )


def process_pdf_url(
    url: str,
    *,
    downloads_dir: str,
    timeout: float = 30.0,
    max_size_bytes: int = 50 * 1024 * 1024,
    http_client: Optional[httpx.Client] = None,
    **pipeline_options,
) -> PipelineResult:
    """
    Download a PDF and run the pipeline on it.

    Raises:
        PdfDownloadError: The URL could not be fetched as a PDF
        Plus everything ``process_pdf_file`` raises
    """
    downloaded = download_pdf(
        url,
        downloads_dir,
        timeout=timeout,
        max_size_bytes=max_size_bytes,
        client=http_client,
    )
    return process_pdf_file(downloaded.file_path, source_label=url, **pipeline_options)
