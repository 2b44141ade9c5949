"""Human-readable evaluation reports and multi-document summaries."""

from collections import Counter
from typing import Iterable, List, Optional, Union

from docextract.models.document_schema import DocumentCategory
from docextract.models.evaluation import (
    EvaluationResult,
    EvaluationSummary,
    QualityDistribution,
)

MAX_REPORTED_ISSUES = 5
MAX_REPORTED_WARNINGS = 3
TOP_ISSUES = 5

_RULE = "=" * 60


def default_query(category: Optional[Union[DocumentCategory, str]] = None) -> str:
    """Extraction intent used for relevancy scoring."""
    if category is None:
        return "Extract structured data from this document"
    value = category.value if isinstance(category, DocumentCategory) else category
    return f"Extract structured data from this {value} document"


def _limited(lines: List[str], items: List[str], limit: int) -> None:
    lines.extend(f"   - {item}" for item in items[:limit])
    if len(items) > limit:
        lines.append(f"   ... and {len(items) - limit} more")


def format_evaluation_report(evaluation: EvaluationResult, source_label: str) -> str:
    """Render one evaluation as a multi-line text report."""
    lines = [
        "",
        "Document Extraction Quality Report",
        _RULE,
        f"File: {source_label}",
        f"Type: {evaluation.document_type}",
        f"Schema Valid: {'Yes' if evaluation.is_valid else 'No'}",
        f"Overall Score: {evaluation.score:.1f}/100",
        "",
        "Extraction Quality Metrics:",
        f"   Completeness: {evaluation.completeness:.1f}% (required fields extracted)",
        f"   Field Accuracy: {evaluation.field_accuracy:.1f}% (meaningful data quality)",
        f"   Format Compliance: {evaluation.format_compliance:.1f}% (correct data formats)",
        f"   Data Quality: {evaluation.data_quality:.1f}% (overall content quality)",
    ]
    if evaluation.extraction_confidence is not None:
        lines.append(
            f"   Model Confidence: {evaluation.extraction_confidence:.1f}% (extraction relevance)"
        )

    lines.extend(["", "Field Summary:", f"   Fields Found: {evaluation.field_count}"])
    if evaluation.missing_fields:
        lines.append(f"   Missing Fields: {', '.join(evaluation.missing_fields)}")

    if evaluation.quality_issues:
        lines.extend(["", "Quality Notes:"])
        _limited(lines, evaluation.quality_issues, MAX_REPORTED_ISSUES)

    if evaluation.errors:
        lines.extend(["", "Errors:"])
        lines.extend(f"   - {error}" for error in evaluation.errors)

    if evaluation.warnings:
        lines.extend(["", "Warnings:"])
        _limited(lines, evaluation.warnings, MAX_REPORTED_WARNINGS)

    lines.append(_RULE)
    return "\n".join(lines)


def _band(distribution: QualityDistribution, score: float) -> None:
    if score >= 90:
        distribution.excellent += 1
    elif score >= 70:
        distribution.good += 1
    elif score >= 50:
        distribution.fair += 1
    else:
        distribution.poor += 1


def summarize_evaluations(evaluations: Iterable[EvaluationResult]) -> EvaluationSummary:
    """Aggregate scores, score bands and the most common issue keys.

    Issues (errors, warnings and quality notes) are keyed by the text before
    their first ``:`` so that one field's problems are counted together.
    """
    summary = EvaluationSummary()
    issue_counts: Counter = Counter()
    total_score = 0.0

    for evaluation in evaluations:
        summary.documents_evaluated += 1
        total_score += evaluation.score
        _band(summary.distribution, evaluation.score)
        for issue in evaluation.errors + evaluation.warnings + evaluation.quality_issues:
            issue_counts[issue.split(":", 1)[0]] += 1

    if summary.documents_evaluated:
        summary.average_score = total_score / summary.documents_evaluated
    summary.common_issues = dict(issue_counts.most_common(TOP_ISSUES))
    return summary


def format_summary(summary: EvaluationSummary) -> str:
    """Render an EvaluationSummary as text."""
    dist = summary.distribution
    lines = [
        "",
        "Evaluation Summary",
        _RULE,
        f"Documents Evaluated: {summary.documents_evaluated}",
        f"Average Score: {summary.average_score:.1f}/100",
        "",
        "Quality Distribution:",
        f"   Excellent (90-100): {dist.excellent}",
        f"   Good (70-89): {dist.good}",
        f"   Fair (50-69): {dist.fair}",
        f"   Poor (<50): {dist.poor}",
    ]
    if summary.common_issues:
        lines.extend(["", "Common Issues:"])
        lines.extend(
            f"   - {issue}: {count} occurrences"
            for issue, count in summary.common_issues.items()
        )
    lines.append(_RULE)
    return "\n".join(lines)
