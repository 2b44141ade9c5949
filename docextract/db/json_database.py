"""
Flat JSON document database.

The whole database lives in one JSON file: an envelope with running counts
per category and the list of stored documents. Every append rewrites the
file atomically (temp file + ``os.replace``) while holding a lock, so ids
stay monotonic and counts stay accurate when batch workers share a store.
"""

import logging
import os
import tempfile
import threading
from datetime import datetime, timezone
from typing import List, Optional, Union

from pydantic import ValidationError

from docextract.models.document import (
    DatabaseStats,
    DocumentDatabase,
    DocumentMetadata,
    StoredDocument,
    utc_now_iso,
)
from docextract.models.document_schema import (
    DocumentCategory,
    ExtractedRecord,
    parse_category,
)

logger = logging.getLogger(__name__)

ID_PREFIX = "doc-"


class CorruptDatabaseError(Exception):
    """Raised when a read finds a database file it cannot parse."""


def _format_id(sequence: int) -> str:
    return f"{ID_PREFIX}{sequence:06d}"


def _parse_sequence(document_id: str) -> int:
    try:
        return int(document_id[len(ID_PREFIX):])
    except ValueError:
        return 0


class JsonDocumentStore:
    """Append-only document store backed by a single JSON file."""

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # File handling
    # -------------------------------------------------------------------------

    def _load(self, recover: bool = False) -> DocumentDatabase:
        """Read the database file.

        Read errors (``OSError``) always propagate. Unparseable content is
        moved aside and replaced by an empty database only when *recover*
        is set, which only the append path does; readers see the error.
        """
        if not os.path.exists(self.path):
            return DocumentDatabase()

        with open(self.path, "r", encoding="utf-8") as f:
            raw = f.read()

        try:
            return DocumentDatabase.model_validate_json(raw)
        except (ValueError, ValidationError) as e:
            if not recover:
                raise CorruptDatabaseError(
                    f"Database {self.path} is not valid: {e}"
                ) from e
            stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
            backup = f"{self.path}.corrupt-{stamp}"
            logger.warning(
                "Could not parse database %s (%s); moved to %s and starting fresh",
                self.path, e, backup,
            )
            os.replace(self.path, backup)
            return DocumentDatabase()

    def _save(self, database: DocumentDatabase) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".db-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(database.model_dump_json(indent=2))
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def append(
        self,
        record: ExtractedRecord,
        source_label: str,
        file_path: Optional[str] = None,
        processing_duration: Optional[float] = None,
    ) -> StoredDocument:
        """Persist a validated record and return the stored document.

        The storage location of the record is ``self.path``.
        """
        extracted_data = record.model_dump()
        category = parse_category(extracted_data["documentType"])

        with self._lock:
            database = self._load(recover=True)
            last = max((_parse_sequence(doc.id) for doc in database.documents), default=0)

            document = StoredDocument(
                id=_format_id(last + 1),
                processed_at=utc_now_iso(),
                source_label=source_label,
                file_path=file_path,
                document_type=category,
                extracted_data=extracted_data,
                metadata=DocumentMetadata(
                    extracted_fields=len(extracted_data),
                    processing_duration=processing_duration,
                ),
            )

            database.documents.append(document)
            database.total_documents = len(database.documents)
            database.statistics.increment(category)
            database.last_updated = document.processed_at
            self._save(database)

        logger.info("Stored %s as %s in %s", category.value, document.id, self.path)
        return document

    def query(
        self,
        document_type: Optional[Union[DocumentCategory, str]] = None,
        limit: Optional[int] = None,
    ) -> List[StoredDocument]:
        """Return stored documents newest first, optionally filtered by type."""
        with self._lock:
            documents = self._load().documents

        if document_type is not None:
            category = parse_category(document_type)
            documents = [doc for doc in documents if doc.document_type == category]

        # Ids are monotonic, so they break ties between equal timestamps
        documents = sorted(
            documents,
            key=lambda doc: (doc.processed_at, _parse_sequence(doc.id)),
            reverse=True,
        )
        if limit is not None:
            documents = documents[:limit]
        return documents

    def get(self, document_id: str) -> Optional[StoredDocument]:
        with self._lock:
            documents = self._load().documents
        for doc in documents:
            if doc.id == document_id:
                return doc
        return None

    def stats(self) -> DatabaseStats:
        """Counts per category plus the total."""
        with self._lock:
            database = self._load()
        return DatabaseStats(
            total=database.total_documents,
            invoice=database.statistics.invoice,
            contract=database.statistics.contract,
            receipt=database.statistics.receipt,
        )
