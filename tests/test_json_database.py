"""Tests for the flat JSON document store."""

import json
import os
import threading
from unittest.mock import patch

import pytest

from docextract.db.json_database import CorruptDatabaseError, JsonDocumentStore
from docextract.models.document_schema import UnsupportedCategoryError, schema_for


def _record(category="invoice", **overrides):
    values = {
        "invoice": {
            "client": "Acme Corp", "invoiceNumber": "INV-42", "totalAmount": "$500.00",
            "currency": "USD", "dueDate": "2025-01-15",
        },
        "contract": {
            "clientName": "Globex", "startDate": "2025-01-01", "endDate": "2025-12-31",
            "paymentTerms": "Net 30", "projectName": "Website",
        },
        "receipt": {
            "date": "2025-08-01", "customerEmail": "a@b.co", "amount": "$29.99",
            "description": "Subscription",
        },
    }[category]
    values.update(overrides)
    return schema_for(category).record_model.model_validate({
        "documentType": category,
        "extractedAt": "2025-01-01T00:00:00+00:00",
        **values,
    })


@pytest.fixture
def store(tmp_path):
    return JsonDocumentStore(str(tmp_path / "nested" / "db.json"))


class TestAppend:

    def test_first_append_creates_file(self, store):
        document = store.append(_record(), "invoice.pdf", file_path="/in/invoice.pdf",
                                processing_duration=1.5)

        assert os.path.exists(store.path)
        assert document.id == "doc-000001"
        assert document.document_type.value == "invoice"
        assert document.source_label == "invoice.pdf"
        assert document.file_path == "/in/invoice.pdf"
        assert document.metadata.extracted_fields == 7
        assert document.metadata.processing_duration == 1.5
        assert document.extracted_data["client"] == "Acme Corp"

    def test_ids_are_sequential(self, store):
        ids = [store.append(_record(), f"{i}.pdf").id for i in range(3)]

        assert ids == ["doc-000001", "doc-000002", "doc-000003"]

    def test_envelope_on_disk(self, store):
        store.append(_record(), "a.pdf")
        store.append(_record("receipt"), "b.pdf")

        with open(store.path, encoding="utf-8") as f:
            envelope = json.load(f)

        assert envelope["version"] == "1.0.0"
        assert envelope["total_documents"] == 2
        assert envelope["statistics"] == {"invoice": 1, "contract": 0, "receipt": 1}
        assert envelope["last_updated"] == envelope["documents"][-1]["processed_at"]

    def test_no_temp_files_left_behind(self, store):
        store.append(_record(), "a.pdf")

        leftovers = [
            name for name in os.listdir(os.path.dirname(store.path))
            if name.startswith(".db-")
        ]
        assert leftovers == []

    def test_concurrent_appends(self, store):
        threads = [
            threading.Thread(target=store.append, args=(_record(), f"{i}.pdf"))
            for i in range(10)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        documents = store.query()
        assert len(documents) == 10
        assert len({doc.id for doc in documents}) == 10
        assert store.stats().invoice == 10


class TestQuery:

    def test_newest_first(self, store):
        for i in range(3):
            store.append(_record(), f"{i}.pdf")

        labels = [doc.source_label for doc in store.query()]

        assert labels == ["2.pdf", "1.pdf", "0.pdf"]

    def test_equal_timestamps_order_by_id(self, store):
        with patch("docextract.db.json_database.utc_now_iso",
                   return_value="2025-01-01T00:00:00+00:00"):
            store.append(_record(), "first.pdf")
            store.append(_record(), "second.pdf")

        assert [doc.source_label for doc in store.query()] == ["second.pdf", "first.pdf"]

    def test_filter_and_limit(self, store):
        store.append(_record("invoice"), "i1.pdf")
        store.append(_record("contract"), "c1.pdf")
        store.append(_record("invoice"), "i2.pdf")

        invoices = store.query(document_type="invoice")
        latest = store.query(limit=1)

        assert [doc.source_label for doc in invoices] == ["i2.pdf", "i1.pdf"]
        assert [doc.source_label for doc in latest] == ["i2.pdf"]

    def test_unknown_filter(self, store):
        with pytest.raises(UnsupportedCategoryError):
            store.query(document_type="memo")

    def test_empty_store(self, store):
        assert store.query() == []
        assert store.stats().total == 0

    def test_get(self, store):
        document = store.append(_record("receipt"), "r.pdf")

        assert store.get(document.id) == document
        assert store.get("doc-999999") is None


class TestStats:

    def test_counts_per_category(self, store):
        store.append(_record("invoice"), "a.pdf")
        store.append(_record("contract"), "b.pdf")
        store.append(_record("contract"), "c.pdf")

        stats = store.stats()

        assert stats.total == 3
        assert stats.invoice == 1
        assert stats.contract == 2
        assert stats.receipt == 0


class TestCorruptFile:

    def test_corrupt_file_is_moved_aside(self, tmp_path):
        path = tmp_path / "db.json"
        path.write_text("{not valid json", encoding="utf-8")
        store = JsonDocumentStore(str(path))

        document = store.append(_record(), "a.pdf")

        assert document.id == "doc-000001"
        backups = [p.name for p in tmp_path.iterdir() if ".corrupt-" in p.name]
        assert len(backups) == 1
        assert store.stats().total == 1

    def test_reads_do_not_move_corrupt_file(self, tmp_path):
        path = tmp_path / "db.json"
        path.write_text("{not valid json", encoding="utf-8")
        store = JsonDocumentStore(str(path))

        with pytest.raises(CorruptDatabaseError):
            store.stats()
        with pytest.raises(CorruptDatabaseError):
            store.query()
        with pytest.raises(CorruptDatabaseError):
            store.get("doc-000001")

        assert sorted(p.name for p in tmp_path.iterdir()) == ["db.json"]
        assert path.read_text(encoding="utf-8") == "{not valid json"


class TestReadErrors:

    def test_failed_read_keeps_database(self, store):
        store.append(_record(), "a.pdf")
        store.append(_record(), "b.pdf")
        directory = os.path.dirname(store.path)

        with patch("docextract.db.json_database.open", create=True,
                   side_effect=PermissionError("denied")):
            with pytest.raises(PermissionError):
                store.stats()

        assert os.listdir(directory) == ["db.json"]
        assert store.stats().total == 2
        assert store.append(_record(), "c.pdf").id == "doc-000003"

    def test_failed_read_on_append_propagates(self, store):
        store.append(_record(), "a.pdf")

        with patch("docextract.db.json_database.open", create=True,
                   side_effect=PermissionError("denied")):
            with pytest.raises(PermissionError):
                store.append(_record(), "b.pdf")

        assert store.stats().total == 1
