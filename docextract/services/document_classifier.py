"""Two-tier document classifier.

Determines whether document text is an invoice, a contract or a receipt:

1. Model call on the leading excerpt (one-word answer)
2. Keyword scan over the full text when the reply names no category

The keyword tier means a chatty or out-of-vocabulary model reply degrades
to a lower-confidence answer instead of failing the document.
"""

import logging
from typing import Dict, Optional, Tuple

from docextract.models.classification import ClassificationResult
from docextract.models.document_schema import DocumentCategory
from docextract.services.gemini_client import CompletionClient, TransportError
from docextract.services.prompts import build_classification_prompt

logger = logging.getLogger(__name__)

MODEL_CONFIDENCE = 0.8
KEYWORD_CONFIDENCE = 0.6

CLASSIFICATION_TEMPERATURE = 0.1
CLASSIFICATION_MAX_TOKENS = 20

# Checked in order; the first category with a hit wins
_CATEGORY_KEYWORDS: Tuple[Tuple[DocumentCategory, Tuple[str, ...]], ...] = (
    (DocumentCategory.INVOICE, ("invoice", "bill to", "amount due")),
    (DocumentCategory.CONTRACT, ("agreement", "contract", "terms")),
    (DocumentCategory.RECEIPT, ("receipt", "stripe", "payment")),
)


class ClassificationFailedError(Exception):
    """Raised when neither the model nor the keyword scan yields a category."""


# ---------------------------------------------------------------------------
# Tier 1: model reply
# ---------------------------------------------------------------------------

def _category_from_reply(reply: str) -> Optional[DocumentCategory]:
    answer = reply.strip().lower()
    for category in DocumentCategory:
        if category.value in answer:
            return category
    return None


# ---------------------------------------------------------------------------
# Tier 2: keyword scan
# ---------------------------------------------------------------------------

def _classify_by_keywords(text: str) -> Optional[ClassificationResult]:
    lowered = text.lower()
    for category, keywords in _CATEGORY_KEYWORDS:
        for keyword in keywords:
            if keyword in lowered:
                return ClassificationResult(
                    category=category,
                    confidence=KEYWORD_CONFIDENCE,
                    method="keywords",
                    signals={"keyword": keyword},
                )
    return None


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

def classify_text(
    text: str,
    completer: CompletionClient,
    *,
    excerpt_chars: int = 2000,
) -> ClassificationResult:
    """Classify *text* into one of the supported document categories.

    Args:
        text: Full document text.
        completer: Model used for the first tier.
        excerpt_chars: Leading characters sent to the model.

    Returns:
        ClassificationResult with confidence 0.8 (model) or 0.6 (keywords).

    Raises:
        ClassificationFailedError: If no tier produces a category.
    """
    signals: Dict[str, object] = {}
    transport_error: Optional[TransportError] = None

    try:
        reply = completer.complete(
            build_classification_prompt(text[:excerpt_chars]),
            temperature=CLASSIFICATION_TEMPERATURE,
            max_output_tokens=CLASSIFICATION_MAX_TOKENS,
        )
    except TransportError as e:
        logger.warning("Classification model call failed, using keyword scan: %s", e)
        transport_error = e
        signals["model_error"] = str(e)
    else:
        signals["raw_answer"] = reply
        category = _category_from_reply(reply)
        if category is not None:
            return ClassificationResult(
                category=category,
                confidence=MODEL_CONFIDENCE,
                method="model",
                signals=signals,
            )
        logger.warning("Unrecognized classification reply %r, using keyword scan", reply[:50])

    result = _classify_by_keywords(text)
    if result is not None:
        result.signals.update(signals)
        return result

    raise ClassificationFailedError(
        "Could not classify document type"
    ) from transport_error
