"""Ground-truth-free quality scoring for extracted records.

Quality is inferred from surface properties of the values alone: whether
each required field is present, whether it holds a placeholder sentinel,
and whether it matches the format rule of its field kind. The composite
score weights four sub-scores and subtracts fixed penalties per warning and
per schema error.

Sub-score weights:
- completeness: 35%
- field accuracy: 30%
- format compliance: 20%
- data quality: 15%
"""

import json
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from docextract.models.document_schema import (
    FORMAT_ISSUES,
    DocumentSchema,
    ExtractedRecord,
    UnsupportedCategoryError,
    check_format,
    is_placeholder,
    schema_for,
)
from docextract.models.evaluation import EvaluationResult

logger = logging.getLogger(__name__)

WEIGHTS: Dict[str, float] = {
    "completeness": 0.35,
    "field_accuracy": 0.30,
    "format_compliance": 0.20,
    "data_quality": 0.15,
}

CONFIDENCE_WEIGHT = 0.1
WARNING_PENALTY = 2
ERROR_PENALTY = 8

# Content longer than this earns no "reasonable content" point
MAX_REASONABLE_LENGTH = 100
_GENERIC_MARKERS = ("placeholder", "example")

RelevancyFn = Callable[[str, str], float]


def _string_value(data: Mapping[str, Any], field: str) -> Optional[str]:
    """Return the field value when it is a string, else None."""
    value = data.get(field)
    return value if isinstance(value, str) else None


def _is_filled(value: Optional[str]) -> bool:
    return value is not None and value.strip() != "" and not is_placeholder(value)


def _format_validation_errors(error: ValidationError) -> List[str]:
    return [
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in error.errors()
    ]


def _completeness(schema: DocumentSchema, data: Mapping[str, Any]) -> List[str]:
    """Return the required fields that are missing or placeholders."""
    return [
        name for name in schema.field_names
        if not _is_filled(_string_value(data, name))
    ]


def _field_accuracy(schema: DocumentSchema, data: Mapping[str, Any]) -> float:
    accurate = 0
    for name in schema.field_names:
        value = _string_value(data, name)
        if value is None or value.strip() == "":
            continue
        if not is_placeholder(value, extended=True) and len(value.strip()) > 1:
            accurate += 1
    return accurate / len(schema.fields) * 100


def _format_compliance(
    schema: DocumentSchema, data: Mapping[str, Any], quality_issues: List[str]
) -> float:
    checked = 0
    passed = 0
    for spec in schema.fields:
        value = _string_value(data, spec.name)
        # Missing data is not a format violation
        if not _is_filled(value):
            continue
        checked += 1
        if check_format(spec.kind, value):
            passed += 1
        else:
            quality_issues.append(f"{spec.name}: {FORMAT_ISSUES[spec.kind]}")

    if checked == 0:
        return 100.0
    return passed / checked * 100


def _data_quality(schema: DocumentSchema, data: Mapping[str, Any]) -> float:
    """Three points per field: present, not a placeholder, reasonable content."""
    points = 0
    for name in schema.field_names:
        value = _string_value(data, name)
        if not value:
            continue
        clean = value.strip().lower()
        placeholder = is_placeholder(clean)

        if clean != "":
            points += 1
        if not placeholder:
            points += 1
        if (
            2 <= len(clean) <= MAX_REASONABLE_LENGTH
            and not placeholder
            and not any(marker in clean for marker in _GENERIC_MARKERS)
        ):
            points += 1

    return points / (len(schema.fields) * 3) * 100


def _field_warnings(schema: DocumentSchema, data: Mapping[str, Any]) -> List[str]:
    warnings: List[str] = []
    for name in schema.field_names:
        value = _string_value(data, name)
        if not value:
            warnings.append(f"Field '{name}' is missing or invalid type")
            continue
        if is_placeholder(value):
            warnings.append(f"Field '{name}' has placeholder value: {value}")
        if len(value.strip()) < 2:
            warnings.append(f"Field '{name}' has very short content")
    return warnings


def _measure_confidence(
    data: Mapping[str, Any], query: str, relevancy: RelevancyFn
) -> float:
    output = json.dumps(dict(data), indent=2, ensure_ascii=False)
    score = float(relevancy(query, output))
    if not 0.0 <= score <= 1.0:
        raise ValueError(f"Relevancy score out of range: {score}")
    return score * 100


def evaluate_extraction(
    record: Union[ExtractedRecord, Mapping[str, Any], Any],
    source_text: Optional[str] = None,
    query: Optional[str] = None,
    *,
    relevancy: Optional[RelevancyFn] = None,
) -> EvaluationResult:
    """Score the quality of one extracted record.

    Never raises: structural problems become entries in ``errors`` and a
    failing relevancy call becomes a warning.

    Args:
        record: An ExtractedRecord or a mapping loaded from JSON.
        source_text: Original document text (needed for confidence scoring).
        query: What the extraction was asked to do (needed for confidence).
        relevancy: ``relevancy(query, serialized_record) -> [0, 1]``.

    Returns:
        EvaluationResult with the composite score and its sub-scores.
    """
    result = EvaluationResult()

    if isinstance(record, ExtractedRecord):
        data: Mapping[str, Any] = record.model_dump()
    elif isinstance(record, Mapping):
        data = record
    else:
        result.errors.append("Invalid data structure: not an object")
        return result

    result.field_count = len(data)
    result.document_type = str(data.get("documentType") or "unknown")

    try:
        schema = schema_for(data.get("documentType"))
    except UnsupportedCategoryError:
        result.errors.append(f"Unsupported document type: {data.get('documentType')}")
        return result

    try:
        schema.evaluation_model.model_validate(dict(data))
    except ValidationError as e:
        result.errors.extend(_format_validation_errors(e))
    result.is_valid = not result.errors

    result.missing_fields = _completeness(schema, data)
    result.completeness = (
        (len(schema.fields) - len(result.missing_fields)) / len(schema.fields) * 100
    )
    result.field_accuracy = _field_accuracy(schema, data)
    result.format_compliance = _format_compliance(schema, data, result.quality_issues)
    result.data_quality = _data_quality(schema, data)

    if source_text and query and relevancy is not None:
        try:
            result.extraction_confidence = _measure_confidence(data, query, relevancy)
        except Exception as e:
            logger.warning("Relevancy scoring failed: %s", e)
            result.warnings.append(f"LLM-based confidence evaluation failed: {e}")

    result.warnings.extend(_field_warnings(schema, data))

    base_score = sum(getattr(result, name) * weight for name, weight in WEIGHTS.items())
    if result.extraction_confidence is not None:
        base_score = (
            base_score * (1 - CONFIDENCE_WEIGHT)
            + result.extraction_confidence * CONFIDENCE_WEIGHT
        )

    penalty = len(result.warnings) * WARNING_PENALTY + len(result.errors) * ERROR_PENALTY
    result.score = max(0.0, min(100.0, base_score - penalty))

    return result
