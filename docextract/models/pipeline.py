"""Pydantic models for pipeline and batch processing results."""

from typing import List, Literal, Optional
from pydantic import BaseModel, Field, SerializeAsAny

from docextract.models.classification import ClassificationResult
from docextract.models.document_schema import ExtractedRecord
from docextract.models.evaluation import EvaluationResult


class PipelineResult(BaseModel):
    """Outcome of running one document through the pipeline."""
    document_id: str = Field(description="Id assigned by the document store")
    source_label: str = Field(description="File name or URL the text came from")
    classification: ClassificationResult
    record: SerializeAsAny[ExtractedRecord]
    storage_location: str = Field(description="Where the record was persisted")
    evaluation: Optional[EvaluationResult] = None
    processing_duration: float = Field(default=0.0, ge=0.0, description="Seconds")


class FileOutcome(BaseModel):
    """Per-file entry of a batch run."""
    file: str
    status: Literal["ok", "failed"] = "ok"
    document_type: Optional[str] = None
    document_id: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    elapsed_s: float = 0.0


class BatchSummary(BaseModel):
    """Aggregate counters for a directory batch run."""
    total: int = 0
    success: int = 0
    errors: int = 0
    duration_seconds: float = 0.0
    results: List[FileOutcome] = Field(default_factory=list)

    @property
    def success_rate(self) -> float:
        """Percentage of files processed successfully."""
        if self.total == 0:
            return 0.0
        return self.success / self.total * 100
