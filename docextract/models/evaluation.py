"""Pydantic models for extraction quality evaluation.

Evaluation is computed fresh on every call and is never persisted as its
own entity; callers may attach it to a report or an API response.
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class EvaluationResult(BaseModel):
    """Heuristic quality assessment of one extracted record."""

    is_valid: bool = Field(default=False, description="Schema validation passed with zero errors")
    score: float = Field(default=0.0, ge=0.0, le=100.0, description="Composite score (0-100)")
    completeness: float = Field(default=0.0, ge=0.0, le=100.0)
    field_accuracy: float = Field(default=0.0, ge=0.0, le=100.0)
    format_compliance: float = Field(default=0.0, ge=0.0, le=100.0)
    data_quality: float = Field(default=0.0, ge=0.0, le=100.0)
    extraction_confidence: Optional[float] = Field(
        default=None,
        ge=0.0, le=100.0,
        description="Model-judged relevancy (0-100); None when not measured"
    )
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    quality_issues: List[str] = Field(default_factory=list)
    field_count: int = Field(default=0, ge=0, description="Number of keys present in the record")
    missing_fields: List[str] = Field(default_factory=list)
    document_type: str = Field(default="unknown")


class QualityDistribution(BaseModel):
    """Count of evaluations per score band."""
    excellent: int = 0  # 90-100
    good: int = 0       # 70-89
    fair: int = 0       # 50-69
    poor: int = 0       # < 50


class EvaluationSummary(BaseModel):
    """Aggregate over several evaluations."""
    documents_evaluated: int = 0
    average_score: float = 0.0
    distribution: QualityDistribution = Field(default_factory=QualityDistribution)
    common_issues: Dict[str, int] = Field(
        default_factory=dict,
        description="Most frequent issue prefixes, most common first"
    )
