"""Tests for the single-document pipeline."""

import json
from unittest.mock import MagicMock, patch

import httpx
import pytest

from docextract.db.json_database import JsonDocumentStore
from docextract.services.document_classifier import ClassificationFailedError
from docextract.services.document_extractor import ExtractionFailedError
from docextract.services.pdf_downloader import PdfDownloadError
from docextract.services.pipeline import (
    InvalidPdfError,
    process_pdf_file,
    process_pdf_url,
    run_pipeline,
)

INVOICE_TEXT = "INVOICE #INV-42 Bill To: Acme Corp Amount due: $500.00 USD due 2025-01-15"
INVOICE_REPLY = json.dumps({
    "client": "Acme Corp",
    "invoiceNumber": "INV-42",
    "totalAmount": "$500.00",
    "currency": "USD",
    "dueDate": "2025-01-15",
})


@pytest.fixture
def store(tmp_path):
    return JsonDocumentStore(str(tmp_path / "db.json"))


@pytest.fixture
def pdf_file(tmp_path):
    path = tmp_path / "invoice.pdf"
    path.write_bytes(b"%PDF-1.4\n%%EOF")
    return str(path)


class TestRunPipeline:

    def test_invoice_end_to_end(self, completer_factory, store):
        completer = completer_factory("invoice", INVOICE_REPLY)

        result = run_pipeline(INVOICE_TEXT, "invoice.pdf", completer=completer, store=store)

        assert result.document_id == "doc-000001"
        assert result.classification.category.value == "invoice"
        assert result.classification.method == "model"
        assert result.record.client == "Acme Corp"
        assert result.storage_location == store.path
        assert result.evaluation is None
        assert len(completer.calls) == 2

        stored = store.get(result.document_id)
        assert stored.source_label == "invoice.pdf"
        assert stored.extracted_data["invoiceNumber"] == "INV-42"

    def test_serialized_result_includes_record_fields(self, completer_factory, store):
        completer = completer_factory("invoice", INVOICE_REPLY)

        result = run_pipeline(INVOICE_TEXT, "a.pdf", completer=completer, store=store)

        assert result.model_dump()["record"]["dueDate"] == "2025-01-15"

    def test_user_category_skips_classification(self, completer_factory, store):
        completer = completer_factory(INVOICE_REPLY)

        result = run_pipeline(
            INVOICE_TEXT, "a.pdf", completer=completer, store=store, category="Invoice"
        )

        assert result.classification.method == "user_provided"
        assert result.classification.confidence == 1.0
        assert len(completer.calls) == 1

    def test_evaluation_uses_relevancy(self, completer_factory, store):
        completer = completer_factory("invoice", INVOICE_REPLY)
        relevancy = MagicMock(return_value=1.0)

        result = run_pipeline(
            INVOICE_TEXT, "a.pdf", completer=completer, store=store,
            evaluate=True, relevancy=relevancy,
        )

        assert result.evaluation.score == 100
        assert result.evaluation.extraction_confidence == 100
        query, _ = relevancy.call_args.args
        assert query == "Extract structured data from this invoice document"

    def test_classification_failure_stores_nothing(self, completer_factory, store):
        completer = completer_factory("not sure")

        with pytest.raises(ClassificationFailedError):
            run_pipeline("Lorem ipsum", "a.pdf", completer=completer, store=store)

        assert store.query() == []

    def test_extraction_failure_stores_nothing(self, completer_factory, store):
        completer = completer_factory("invoice", "nope", "still nope")

        with pytest.raises(ExtractionFailedError):
            run_pipeline(INVOICE_TEXT, "a.pdf", completer=completer, store=store)

        assert store.stats().total == 0


class TestProcessPdfFile:

    def test_uses_basename_as_label(self, completer_factory, store, pdf_file):
        completer = completer_factory("invoice", INVOICE_REPLY)

        with patch("docextract.services.pipeline.extract_text", return_value=INVOICE_TEXT):
            result = process_pdf_file(pdf_file, completer=completer, store=store)

        assert result.source_label == "invoice.pdf"
        assert store.get(result.document_id).file_path == pdf_file

    def test_rejects_non_pdf_path(self, completer_factory, store, tmp_path):
        other = tmp_path / "notes.txt"
        other.write_text("hi")

        with pytest.raises(InvalidPdfError):
            process_pdf_file(str(other), completer=completer_factory(), store=store)

    def test_rejects_missing_file(self, completer_factory, store, tmp_path):
        with pytest.raises(InvalidPdfError):
            process_pdf_file(
                str(tmp_path / "missing.pdf"), completer=completer_factory(), store=store
            )


class TestProcessPdfUrl:

    def _client(self, content_type="application/pdf", status=200):
        def handler(request):
            return httpx.Response(
                status, content=b"%PDF-1.4 data", headers={"content-type": content_type}
            )
        return httpx.Client(transport=httpx.MockTransport(handler))

    def test_url_is_source_label(self, completer_factory, store, tmp_path):
        completer = completer_factory("invoice", INVOICE_REPLY)
        url = "https://example.com/files/invoice-42.pdf"

        with patch("docextract.services.pipeline.extract_text", return_value=INVOICE_TEXT):
            result = process_pdf_url(
                url,
                downloads_dir=str(tmp_path / "downloads"),
                http_client=self._client(),
                completer=completer,
                store=store,
            )

        assert result.source_label == url
        stored = store.get(result.document_id)
        assert stored.file_path.endswith("invoice-42.pdf")

    def test_download_failure_stores_nothing(self, completer_factory, store, tmp_path):
        with pytest.raises(PdfDownloadError):
            process_pdf_url(
                "https://example.com/page",
                downloads_dir=str(tmp_path / "downloads"),
                http_client=self._client(content_type="text/html"),
                completer=completer_factory(),
                store=store,
            )

        assert store.query() == []
