"""Pydantic models for the flat JSON document database."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from docextract.models.document_schema import DocumentCategory

DATABASE_VERSION = "1.0.0"


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class DocumentMetadata(BaseModel):
    """Processing metadata stored alongside each record."""
    extracted_fields: int = Field(ge=0, description="Number of keys in extracted_data")
    processing_duration: Optional[float] = Field(default=None, description="Seconds")
    version: str = DATABASE_VERSION


class StoredDocument(BaseModel):
    """One persisted extraction."""
    id: str
    processed_at: str
    source_label: str
    file_path: Optional[str] = None
    document_type: DocumentCategory
    extracted_data: Dict[str, Any]
    metadata: DocumentMetadata


class DatabaseStatistics(BaseModel):
    """Running counts per document category."""
    invoice: int = 0
    contract: int = 0
    receipt: int = 0

    def increment(self, category: DocumentCategory) -> None:
        setattr(self, category.value, getattr(self, category.value) + 1)


class DocumentDatabase(BaseModel):
    """Envelope written to the JSON database file."""
    version: str = DATABASE_VERSION
    created_at: str = Field(default_factory=utc_now_iso)
    last_updated: str = Field(default_factory=utc_now_iso)
    total_documents: int = 0
    statistics: DatabaseStatistics = Field(default_factory=DatabaseStatistics)
    documents: List[StoredDocument] = Field(default_factory=list)


class DatabaseStats(BaseModel):
    """Counts returned by ``JsonDocumentStore.stats``."""
    total: int = 0
    invoice: int = 0
    contract: int = 0
    receipt: int = 0
