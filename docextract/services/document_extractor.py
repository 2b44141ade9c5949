"""Category-specific field extraction with a primary and a fallback attempt.

Each attempt prompts the model, pulls the JSON object out of the reply,
stamps the reserved keys and validates against the category's record
model. The fallback uses a simpler prompt and runs only when the primary
attempt fails for any reason, so a document costs at most two model calls.
"""

import logging
from typing import Optional, Union

from pydantic import ValidationError

from docextract.models.document import utc_now_iso
from docextract.models.document_schema import (
    DocumentCategory,
    DocumentSchema,
    ExtractedRecord,
    schema_for,
)
from docextract.services.gemini_client import CompletionClient, TransportError
from docextract.services.prompts import build_fallback_prompt, build_primary_prompt
from docextract.utils.json_tools import ResponseParseError, extract_json_object

logger = logging.getLogger(__name__)

PRIMARY_TEMPERATURE = 0.1
FALLBACK_TEMPERATURE = 0.2
FALLBACK_MAX_TOKENS = 800

# Failures local to one attempt; anything else is a programming error
_ATTEMPT_ERRORS = (TransportError, ResponseParseError, ValidationError)


class ExtractionFailedError(Exception):
    """Raised when both extraction attempts fail for a document."""

    def __init__(
        self,
        category: DocumentCategory,
        primary_error: Exception,
        fallback_error: Exception,
    ):
        super().__init__(
            f"Both primary and fallback {category.value} extraction failed: "
            f"{fallback_error}"
        )
        self.category = category
        self.primary_error = primary_error
        self.fallback_error = fallback_error


def _attempt(
    schema: DocumentSchema,
    prompt: str,
    completer: CompletionClient,
    temperature: float,
    max_output_tokens: int,
) -> ExtractedRecord:
    reply = completer.complete(
        prompt, temperature=temperature, max_output_tokens=max_output_tokens
    )
    data = extract_json_object(reply)

    # Reserved keys always come from the pipeline, never from the model
    data["documentType"] = schema.category.value
    data["extractedAt"] = utc_now_iso()

    return schema.record_model.model_validate(data)


def extract_document(
    category: Union[DocumentCategory, str],
    text: str,
    completer: CompletionClient,
) -> ExtractedRecord:
    """Extract the required fields of *category* from *text*.

    Args:
        category: Document category (enum or its string value).
        text: Full document text.
        completer: Model used for both attempts.

    Returns:
        A validated record whose keys are exactly the category's required
        fields plus ``documentType`` and ``extractedAt``.

    Raises:
        UnsupportedCategoryError: If category is not registered.
        ExtractionFailedError: If both attempts fail.
    """
    schema = schema_for(category)
    primary_error: Optional[Exception] = None

    try:
        record = _attempt(
            schema,
            build_primary_prompt(schema, text),
            completer,
            PRIMARY_TEMPERATURE,
            schema.primary_max_output_tokens,
        )
        logger.info("Extracted %s with primary prompt", schema.category.value)
        return record
    except _ATTEMPT_ERRORS as e:
        primary_error = e
        logger.warning(
            "Primary %s extraction failed, trying fallback: %s", schema.category.value, e
        )

    try:
        record = _attempt(
            schema,
            build_fallback_prompt(schema, text),
            completer,
            FALLBACK_TEMPERATURE,
            FALLBACK_MAX_TOKENS,
        )
        logger.info("Extracted %s with fallback prompt", schema.category.value)
        return record
    except _ATTEMPT_ERRORS as e:
        logger.error("Fallback %s extraction failed: %s", schema.category.value, e)
        raise ExtractionFailedError(schema.category, primary_error, e) from e
