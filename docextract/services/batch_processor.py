"""
Local batch PDF processing.

Runs every PDF in a directory through the single-document pipeline. One
document's failure is logged and counted but never stops the batch. With
``workers > 1`` documents run concurrently in worker threads, bounded by a
semaphore; the shared store serializes its own writes.
"""

import asyncio
import glob
import logging
import os
import time
from typing import List, Optional

from docextract.db.json_database import JsonDocumentStore
from docextract.models.pipeline import BatchSummary, FileOutcome
from docextract.services.gemini_client import CompletionClient
from docextract.services.pipeline import process_pdf_file
from docextract.services.quality_evaluator import RelevancyFn

logger = logging.getLogger(__name__)


def find_pdfs(directory: str, pattern: str = "*.pdf") -> List[str]:
    """Return the files in *directory* matching *pattern*, sorted by path."""
    return sorted(
        path for path in glob.glob(os.path.join(directory, pattern))
        if os.path.isfile(path)
    )


async def process_single_pdf(
    file_path: str,
    idx: int,
    total: int,
    semaphore: asyncio.Semaphore,
    **pipeline_options,
) -> FileOutcome:
    """
    Process one PDF and convert any failure into a failed FileOutcome.

    Args:
        file_path: Path to the PDF file
        idx: Index of the file (for progress logging)
        total: Number of files in the batch
        semaphore: Bounds concurrently running documents
        **pipeline_options: Forwarded to ``process_pdf_file``

    Returns:
        FileOutcome with status "ok" or "failed"
    """
    basename = os.path.basename(file_path)
    outcome = FileOutcome(file=basename)
    t0 = time.monotonic()

    async with semaphore:
        try:
            result = await asyncio.to_thread(process_pdf_file, file_path, **pipeline_options)
            outcome.document_type = result.classification.category.value
            outcome.document_id = result.document_id
        except Exception as e:
            logger.exception("[%d/%d] Failed to process %s", idx + 1, total, basename)
            outcome.status = "failed"
            outcome.error = str(e)
            outcome.error_type = type(e).__name__

    outcome.elapsed_s = round(time.monotonic() - t0, 1)

    if outcome.status == "ok":
        logger.info(
            "[%d/%d] OK %s -> %s %s (%.1fs)",
            idx + 1, total, basename, outcome.document_type,
            outcome.document_id, outcome.elapsed_s,
        )
    return outcome


async def process_directory(
    directory: str,
    *,
    completer: CompletionClient,
    store: JsonDocumentStore,
    workers: int = 1,
    pattern: str = "*.pdf",
    evaluate: bool = False,
    relevancy: Optional[RelevancyFn] = None,
    excerpt_chars: int = 2000,
) -> BatchSummary:
    """
    Process all PDFs in a directory matching the given pattern.

    Args:
        directory: Directory containing PDF files
        completer: Model client shared by all documents
        store: Document store shared by all documents
        workers: Documents processed concurrently (1 = sequential)
        pattern: Glob pattern for PDF files
        evaluate: Evaluate each stored record
        relevancy: Optional relevancy scorer used during evaluation
        excerpt_chars: Leading characters sent to the classifier

    Returns:
        BatchSummary with counters and per-file outcomes
    """
    if workers < 1:
        raise ValueError("workers must be at least 1")

    started = time.monotonic()
    pdfs = find_pdfs(directory, pattern)
    total = len(pdfs)

    if total == 0:
        logger.warning("No PDFs found in %s matching pattern: %s", directory, pattern)
        return BatchSummary()

    logger.info("Found %d PDFs to process with %d worker(s)", total, workers)

    semaphore = asyncio.Semaphore(workers)
    options = dict(
        completer=completer,
        store=store,
        evaluate=evaluate,
        relevancy=relevancy,
        excerpt_chars=excerpt_chars,
    )

    if workers == 1:
        # Sequential processing (deterministic order, easier debugging)
        results = []
        for idx, pdf in enumerate(pdfs):
            results.append(await process_single_pdf(pdf, idx, total, semaphore, **options))
    else:
        results = list(await asyncio.gather(*[
            process_single_pdf(pdf, idx, total, semaphore, **options)
            for idx, pdf in enumerate(pdfs)
        ]))

    success = sum(1 for r in results if r.status == "ok")
    summary = BatchSummary(
        total=total,
        success=success,
        errors=total - success,
        duration_seconds=round(time.monotonic() - started, 2),
        results=results,
    )

    logger.info(
        "Batch done: %d/%d succeeded, %d failed in %.1fs",
        summary.success, summary.total, summary.errors, summary.duration_seconds,
    )
    return summary
