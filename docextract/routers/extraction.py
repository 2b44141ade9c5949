"""
Extraction and evaluation API endpoints.

Model-backed work runs in a worker thread (``asyncio.to_thread``) so slow
model calls never block the event loop.
"""

import asyncio
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, Response, UploadFile, status
from pydantic import BaseModel, Field

from docextract.config import Settings, get_settings
from docextract.db.json_database import JsonDocumentStore
from docextract.dependencies import get_completer, get_relevancy, get_store
from docextract.middleware.rate_limit import limit_evaluate, limit_extract
from docextract.models.document_schema import UnsupportedCategoryError, parse_category
from docextract.models.evaluation import EvaluationResult
from docextract.models.pipeline import PipelineResult
from docextract.services.document_classifier import ClassificationFailedError
from docextract.services.document_extractor import ExtractionFailedError
from docextract.services.file_validator import validate_pdf
from docextract.services.gemini_client import CompletionClient, TransportError
from docextract.services.pdf_downloader import PdfDownloadError
from docextract.services.pipeline import process_pdf_url, run_pipeline
from docextract.services.quality_evaluator import evaluate_extraction
from docextract.services.relevancy_scorer import AnswerRelevancyScorer
from docextract.services.text_extractor import extract_text

router = APIRouter(prefix="/api", tags=["extraction"])
logger = logging.getLogger(__name__)


class ExtractUrlRequest(BaseModel):
    url: str = Field(description="http(s) URL of the PDF")
    doc_type: Optional[str] = Field(default=None, description="invoice, contract or receipt; auto-detected if omitted")
    evaluate: bool = False


class EvaluateRequest(BaseModel):
    record: Any = Field(description="Extracted record, as stored or returned by /api/extract")
    source_text: Optional[str] = Field(default=None, description="Document text, enables confidence scoring")
    query: Optional[str] = Field(default=None, description="Extraction intent used for confidence scoring")


def _to_http_error(e: Exception) -> HTTPException:
    """Map pipeline failures to HTTP errors."""
    if isinstance(e, ExtractionFailedError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    if isinstance(e, TransportError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    if isinstance(e, PdfDownloadError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    # ClassificationFailedError, NoTextFoundError, InvalidPdfError and
    # unreadable PDFs (ValueError from the text extractor)
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


_PIPELINE_ERRORS = (
    ClassificationFailedError,
    ExtractionFailedError,
    TransportError,
    PdfDownloadError,
    FileNotFoundError,
    ValueError,
)


def _validate_doc_type(doc_type: Optional[str]) -> Optional[str]:
    if doc_type is None or doc_type == "":
        return None
    try:
        return parse_category(doc_type).value
    except UnsupportedCategoryError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid doc_type '{doc_type}'. Must be 'invoice', 'contract' or 'receipt'"
        )


def _result_response(result: PipelineResult) -> Response:
    headers = {
        "X-Document-ID": result.document_id,
        "X-Doc-Type": result.classification.category.value,
    }
    if result.evaluation is not None:
        headers["X-Quality-Score"] = f"{result.evaluation.score:.1f}"
    return Response(
        content=result.model_dump_json(),
        media_type="application/json",
        status_code=status.HTTP_201_CREATED,
        headers=headers,
    )


@router.post("/extract", status_code=status.HTTP_201_CREATED)
@limit_extract
async def extract_pdf(
    request: Request,
    file: UploadFile = File(..., description="PDF file to extract"),
    doc_type: Optional[str] = Form(None, description="invoice, contract or receipt. If omitted, auto-detected."),
    evaluate: bool = Form(False, description="Score the extraction quality"),
    settings: Settings = Depends(get_settings),
    store: JsonDocumentStore = Depends(get_store),
    completer: CompletionClient = Depends(get_completer),
    relevancy: Optional[AnswerRelevancyScorer] = Depends(get_relevancy),
) -> Response:
    """
    Extract structured data from an uploaded PDF.

    Returns:
        201: PipelineResult (document id also in X-Document-ID)
        400: Invalid file or doc_type
        413: File too large
        422: No text, unreadable PDF or unclassifiable document
        502: Both extraction attempts failed
        503: Model unavailable
    """
    category = _validate_doc_type(doc_type)
    upload = await validate_pdf(file, max_size=settings.max_download_size_mb * 1024 * 1024)
    logger.info("Received %s (%d bytes, sha256 %s)", upload.filename, len(upload.content), upload.sha256[:12])

    try:
        text = await asyncio.to_thread(extract_text, upload.content)
        result = await asyncio.to_thread(
            run_pipeline,
            text,
            upload.filename,
            completer=completer,
            store=store,
            evaluate=evaluate,
            relevancy=relevancy,
            category=category,
            excerpt_chars=settings.classification_excerpt_chars,
        )
    except _PIPELINE_ERRORS as e:
        logger.warning("Extraction of %s failed: %s", upload.filename, e)
        raise _to_http_error(e) from e

    return _result_response(result)


@router.post("/extract-url", status_code=status.HTTP_201_CREATED)
@limit_extract
async def extract_pdf_url(
    request: Request,
    body: ExtractUrlRequest,
    settings: Settings = Depends(get_settings),
    store: JsonDocumentStore = Depends(get_store),
    completer: CompletionClient = Depends(get_completer),
    relevancy: Optional[AnswerRelevancyScorer] = Depends(get_relevancy),
) -> Response:
    """
    Download a PDF from a URL and extract structured data from it.

    Returns:
        201: PipelineResult
        400: Bad URL, non-PDF content or download failure
        422/502/503: As for /api/extract
    """
    category = _validate_doc_type(body.doc_type)

    try:
        result = await asyncio.to_thread(
            process_pdf_url,
            body.url,
            downloads_dir=settings.downloads_dir,
            timeout=settings.download_timeout_seconds,
            max_size_bytes=settings.max_download_size_mb * 1024 * 1024,
            completer=completer,
            store=store,
            evaluate=body.evaluate,
            relevancy=relevancy,
            category=category,
            excerpt_chars=settings.classification_excerpt_chars,
        )
    except _PIPELINE_ERRORS as e:
        logger.warning("Extraction of %s failed: %s", body.url, e)
        raise _to_http_error(e) from e

    return _result_response(result)


@router.post("/evaluate", response_model=EvaluationResult)
@limit_evaluate
async def evaluate_record(
    request: Request,
    body: EvaluateRequest,
    relevancy: Optional[AnswerRelevancyScorer] = Depends(get_relevancy),
) -> EvaluationResult:
    """
    Score an extracted record. Always returns 200; problems with the record
    are reported in the result's errors and warnings.
    """
    return await asyncio.to_thread(
        evaluate_extraction,
        body.record,
        body.source_text,
        body.query,
        relevancy=relevancy,
    )