"""Schema registry for the supported business document categories.

Each category has an ordered list of required fields, and each field has a
semantic kind. The kind drives two things:

- the format hints given to the model in extraction prompts
- the format-compliance check run by the quality evaluator

The placeholder vocabulary lives here as well, so the extractor (which asks
the model to emit sentinels) and the evaluator (which detects them) cannot
drift apart.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Literal, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, Field, create_model


class DocumentCategory(str, Enum):
    """The closed set of document types the pipeline recognizes."""

    INVOICE = "invoice"
    CONTRACT = "contract"
    RECEIPT = "receipt"


class FieldKind(str, Enum):
    """Semantic kind of a required field."""

    FREE_TEXT = "free_text"
    DATE = "date"
    CURRENCY_AMOUNT = "currency_amount"
    EMAIL = "email"
    IDENTIFIER = "identifier"


class UnsupportedCategoryError(ValueError):
    """Raised when a category has no registered schema."""

    def __init__(self, category: object):
        super().__init__(f"Unsupported document type: {category}")
        self.category = category


# =============================================================================
# SENTINELS
# =============================================================================

FALLBACK_SENTINEL = "Unknown"

PLACEHOLDER_VALUES = frozenset({"not found", "unknown", "not specified"})

# Field accuracy is stricter and also rejects these
EXTENDED_PLACEHOLDER_VALUES = PLACEHOLDER_VALUES | {"n/a", "null"}


def is_placeholder(value: str, extended: bool = False) -> bool:
    """Return True if *value* is one of the recognized sentinel strings."""
    vocabulary = EXTENDED_PLACEHOLDER_VALUES if extended else PLACEHOLDER_VALUES
    return value.strip().lower() in vocabulary


# =============================================================================
# FORMAT RULES
# =============================================================================

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_DATE_PATTERN = re.compile(
    r"^("
    r"\d{4}-\d{2}-\d{2}"                 # 2025-01-15
    r"|\d{1,2}/\d{1,2}/\d{4}"            # 1/15/2025
    r"|\d{1,2}-\d{1,2}-\d{4}"            # 1-15-2025
    r"|[A-Za-z]+\.?\s+\d{1,2},?\s+\d{4}"  # January 15, 2025
    r")$"
)

_AMOUNT_PATTERN = re.compile(
    r"^[$€£¥]?\s*\d+([,\d]*)?(\.\d{2})?$"
    r"|^\d+([,\d]*)?(\.\d{2})?\s*[$€£¥]?$"
)

# Human readable rule per kind, shared by prompts and quality reports
FORMAT_HINTS: Dict[FieldKind, str] = {
    FieldKind.EMAIL: "an email address such as name@example.com",
    FieldKind.DATE: "format as YYYY-MM-DD if possible",
    FieldKind.CURRENCY_AMOUNT: "include the currency symbol, e.g. $1,200.00",
    FieldKind.IDENTIFIER: "the identifier exactly as printed",
    FieldKind.FREE_TEXT: "short plain text",
}

FORMAT_ISSUES: Dict[FieldKind, str] = {
    FieldKind.EMAIL: "Invalid email format",
    FieldKind.DATE: "Unusual date format",
    FieldKind.CURRENCY_AMOUNT: "Currency format could be improved",
    FieldKind.IDENTIFIER: "Unusual number format",
    FieldKind.FREE_TEXT: "Unusual content length",
}


def check_format(kind: FieldKind, value: str) -> bool:
    """Check a (non-placeholder) value against the rule for its field kind."""
    value = value.strip()

    if kind is FieldKind.EMAIL:
        return bool(_EMAIL_PATTERN.match(value))
    if kind is FieldKind.DATE:
        return bool(_DATE_PATTERN.match(value))
    if kind is FieldKind.CURRENCY_AMOUNT:
        return bool(_AMOUNT_PATTERN.match(value))
    if kind is FieldKind.IDENTIFIER:
        return 2 <= len(value) <= 50
    return 2 <= len(value) <= 200


# =============================================================================
# RECORD MODELS
# =============================================================================

class ExtractedRecord(BaseModel):
    """Structured fields extracted from one document.

    Concrete per-category models are generated from the registry; every
    required field is a string, with missing data carried as a sentinel.
    Records are immutable once created.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    documentType: str = Field(description="Category that validated this record")
    extractedAt: str = Field(description="ISO-8601 timestamp of extraction")

    def field_values(self) -> Dict[str, str]:
        """Return the required fields only, without the reserved keys."""
        data = self.model_dump()
        data.pop("documentType", None)
        data.pop("extractedAt", None)
        return data


class _StrictRecord(BaseModel):
    """Evaluation-time base: unknown keys are schema violations."""
    model_config = ConfigDict(extra="forbid")

    documentType: str
    extractedAt: str


@dataclass(frozen=True)
class FieldSpec:
    """One required field of a document schema."""
    name: str
    kind: FieldKind
    description: str


@dataclass(frozen=True)
class DocumentSchema:
    """Registry entry for one document category."""
    category: DocumentCategory
    fields: Tuple[FieldSpec, ...]
    primary_sentinel: str
    primary_max_output_tokens: int
    record_model: Type[ExtractedRecord] = field(compare=False, repr=False)
    evaluation_model: Type[BaseModel] = field(compare=False, repr=False)

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(spec.name for spec in self.fields)

    def kind_of(self, name: str) -> FieldKind:
        for spec in self.fields:
            if spec.name == name:
                return spec.kind
        raise KeyError(name)


def _build_schema(
    category: DocumentCategory,
    fields: Tuple[FieldSpec, ...],
    primary_sentinel: str,
    primary_max_output_tokens: int,
) -> DocumentSchema:
    tag = Literal[category.value]  # type: ignore[valid-type]
    model_prefix = category.value.capitalize()

    record_fields: Dict[str, object] = {
        spec.name: (str, Field(description=spec.description)) for spec in fields
    }
    record_model = create_model(  # type: ignore[call-overload]
        f"{model_prefix}Record",
        __base__=ExtractedRecord,
        documentType=(tag, Field(description="Category that validated this record")),
        **record_fields,
    )

    # Evaluation is stricter: values must be non-empty strings
    evaluation_fields: Dict[str, object] = {
        spec.name: (str, Field(min_length=1, description=spec.description))
        for spec in fields
    }
    evaluation_model = create_model(  # type: ignore[call-overload]
        f"{model_prefix}EvaluationRecord",
        __base__=_StrictRecord,
        documentType=(tag, ...),
        **evaluation_fields,
    )

    return DocumentSchema(
        category=category,
        fields=fields,
        primary_sentinel=primary_sentinel,
        primary_max_output_tokens=primary_max_output_tokens,
        record_model=record_model,
        evaluation_model=evaluation_model,
    )


_REGISTRY: Dict[DocumentCategory, DocumentSchema] = {
    DocumentCategory.INVOICE: _build_schema(
        DocumentCategory.INVOICE,
        (
            FieldSpec("client", FieldKind.FREE_TEXT,
                      "Company or person name (who is being billed)"),
            FieldSpec("invoiceNumber", FieldKind.IDENTIFIER,
                      "Invoice ID or reference number"),
            FieldSpec("totalAmount", FieldKind.CURRENCY_AMOUNT,
                      "Total amount due (include currency symbol like $, €, etc.)"),
            FieldSpec("currency", FieldKind.FREE_TEXT,
                      "Currency code (USD, EUR, GBP, etc.)"),
            FieldSpec("dueDate", FieldKind.DATE,
                      "Payment due date"),
        ),
        primary_sentinel="Not found",
        primary_max_output_tokens=1000,
    ),
    DocumentCategory.CONTRACT: _build_schema(
        DocumentCategory.CONTRACT,
        (
            FieldSpec("clientName", FieldKind.FREE_TEXT,
                      "Client or company name (the other party in the contract)"),
            FieldSpec("startDate", FieldKind.DATE,
                      "Contract start date"),
            FieldSpec("endDate", FieldKind.DATE,
                      "Contract end date"),
            FieldSpec("paymentTerms", FieldKind.FREE_TEXT,
                      'Payment terms (e.g., "Net 30", "Due on receipt", "Monthly")'),
            FieldSpec("projectName", FieldKind.FREE_TEXT,
                      "Project name, service description, or contract subject"),
        ),
        primary_sentinel="Not specified",
        primary_max_output_tokens=1200,
    ),
    DocumentCategory.RECEIPT: _build_schema(
        DocumentCategory.RECEIPT,
        (
            FieldSpec("date", FieldKind.DATE,
                      "Transaction or payment date"),
            FieldSpec("customerEmail", FieldKind.EMAIL,
                      "Customer's email address"),
            FieldSpec("amount", FieldKind.CURRENCY_AMOUNT,
                      "Transaction amount (include currency symbol like $, €, etc.)"),
            FieldSpec("description", FieldKind.FREE_TEXT,
                      "Description of the service/product or transaction purpose"),
        ),
        primary_sentinel="Not found",
        primary_max_output_tokens=800,
    ),
}


def parse_category(category: Union[DocumentCategory, str]) -> DocumentCategory:
    """Coerce a category name to the enum, rejecting unknown values."""
    if isinstance(category, DocumentCategory):
        return category
    try:
        return DocumentCategory(str(category).strip().lower())
    except ValueError:
        raise UnsupportedCategoryError(category) from None


def schema_for(category: Union[DocumentCategory, str]) -> DocumentSchema:
    """Return the registry entry for *category*.

    Raises:
        UnsupportedCategoryError: If category is not invoice, contract or receipt.
    """
    return _REGISTRY[parse_category(category)]
