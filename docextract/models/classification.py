"""Pydantic model for document classification results.

Produced once per document by the classifier and folded into the
extraction request; it is not persisted on its own.
"""

from typing import Any, Dict, Literal
from pydantic import BaseModel, Field

from docextract.models.document_schema import DocumentCategory


class ClassificationResult(BaseModel):
    """Result of classifying raw document text."""

    category: DocumentCategory = Field(
        description="Classified document category"
    )
    confidence: float = Field(
        ge=0.0, le=1.0,
        description="Classification confidence (0.0 to 1.0)"
    )
    method: Literal["model", "keywords", "user_provided"] = Field(
        description="Which classification tier produced the result"
    )
    signals: Dict[str, Any] = Field(
        default_factory=dict,
        description="Debug info: raw model reply, matched keyword, etc."
    )
