"""Read endpoints over the document database.

The handlers are plain functions: FastAPI runs them in its threadpool, so a
read waiting on the store lock never stalls the event loop.
"""

from typing import Callable, List, Optional, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from docextract.db.json_database import CorruptDatabaseError, JsonDocumentStore
from docextract.dependencies import get_store
from docextract.middleware.rate_limit import limit_documents
from docextract.models.document import DatabaseStats, StoredDocument
from docextract.models.document_schema import DocumentCategory

router = APIRouter(prefix="/api", tags=["documents"])

T = TypeVar("T")


def _read(operation: Callable[[], T]) -> T:
    try:
        return operation()
    except (CorruptDatabaseError, OSError) as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Document database could not be read: {e}"
        ) from e


@router.get("/documents", response_model=List[StoredDocument])
@limit_documents
def list_documents(
    request: Request,
    document_type: Optional[DocumentCategory] = Query(None, description="Only this category"),
    limit: int = Query(10, ge=1, le=100, description="Maximum number of documents"),
    store: JsonDocumentStore = Depends(get_store),
) -> List[StoredDocument]:
    """Stored documents, newest first."""
    return _read(lambda: store.query(document_type=document_type, limit=limit))


@router.get("/documents/{document_id}", response_model=StoredDocument)
@limit_documents
def get_document(
    request: Request,
    document_id: str,
    store: JsonDocumentStore = Depends(get_store),
) -> StoredDocument:
    document = _read(lambda: store.get(document_id))
    if document is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Document {document_id} not found"
        )
    return document


@router.get("/stats", response_model=DatabaseStats)
@limit_documents
def database_stats(
    request: Request,
    store: JsonDocumentStore = Depends(get_store),
) -> DatabaseStats:
    """Document counts per category."""
    return _read(store.stats)
