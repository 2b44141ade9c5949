"""Prompt builders for classification and per-category extraction.

Field lists come from the schema registry, so a prompt always names exactly
the fields its validator expects.
"""

import json
from typing import Dict

from docextract.models.document_schema import (
    FALLBACK_SENTINEL,
    FORMAT_HINTS,
    DocumentCategory,
    DocumentSchema,
    FieldKind,
)

CLASSIFICATION_PROMPT = """Analyze this document text and classify it as one of these types:
- invoice: Bills, invoices, payment requests
- contract: Agreements, service contracts, terms of service
- receipt: Payment confirmations, receipts, payment records (especially Stripe)

Look for key indicators:
- Invoice: "Invoice", "Bill to", "Amount due", "Payment terms"
- Contract: "Agreement", "Terms", "Party", "Effective date", "Termination"
- Receipt: "Receipt", "Payment", "Charged", "Transaction", "Stripe"

Text to analyze:
{excerpt}...

Return ONLY the classification type: invoice, contract, or receipt"""

# Example objects shown in the primary prompt
EXAMPLES: Dict[DocumentCategory, Dict[str, str]] = {
    DocumentCategory.INVOICE: {
        "client": "Acme Corp",
        "invoiceNumber": "INV-001",
        "totalAmount": "$1,200.00",
        "currency": "USD",
        "dueDate": "2025-09-15",
    },
    DocumentCategory.CONTRACT: {
        "clientName": "Acme Corporation",
        "startDate": "2025-01-01",
        "endDate": "2025-12-31",
        "paymentTerms": "Net 30",
        "projectName": "Website Development Services",
    },
    DocumentCategory.RECEIPT: {
        "date": "2025-08-01",
        "customerEmail": "customer@example.com",
        "amount": "$29.99",
        "description": "Monthly subscription",
    },
}

# Plain questions used by the fallback prompt
FALLBACK_QUESTIONS: Dict[str, str] = {
    "client": "Who is being billed?",
    "invoiceNumber": "What's the invoice number?",
    "totalAmount": "What's the total amount?",
    "currency": "What currency?",
    "dueDate": "When is payment due?",
    "clientName": "Who is the client/other party?",
    "startDate": "When does the contract start?",
    "endDate": "When does it end?",
    "paymentTerms": "How will payment work?",
    "projectName": "What's the project/service about?",
    "date": "When was the payment made?",
    "customerEmail": "What's the customer's email?",
    "amount": "How much was paid?",
    "description": "What was purchased/paid for?",
}

_FALLBACK_INTROS: Dict[DocumentCategory, str] = {
    DocumentCategory.INVOICE: "extract just the key information",
    DocumentCategory.CONTRACT: "extract the key details",
    DocumentCategory.RECEIPT: "extract the payment details",
}


def build_classification_prompt(excerpt: str) -> str:
    return CLASSIFICATION_PROMPT.format(excerpt=excerpt)


def build_primary_prompt(schema: DocumentSchema, text: str) -> str:
    """Detailed extraction prompt: field descriptions, format hints, example."""
    lines = []
    for spec in schema.fields:
        description = spec.description
        if spec.kind is FieldKind.DATE:
            description = f"{description} ({FORMAT_HINTS[spec.kind]})"
        lines.append(f"- {spec.name}: {description}")

    example = json.dumps(EXAMPLES[schema.category], indent=2)

    return (
        f"Extract the following fields from this {schema.category.value} text:\n\n"
        "Required fields:\n"
        + "\n".join(lines)
        + f"\n\nText to analyze:\n{text}\n\n"
        "Return ONLY a JSON object with the exact field names above. "
        f'If a field cannot be found, use "{schema.primary_sentinel}" as the value.\n\n'
        f"Example format:\n{example}"
    )


def build_fallback_prompt(schema: DocumentSchema, text: str) -> str:
    """Simpler second-attempt prompt asking one plain question per field."""
    lines = [
        f"- {spec.name}: {FALLBACK_QUESTIONS.get(spec.name, spec.description)}"
        for spec in schema.fields
    ]
    intro = _FALLBACK_INTROS[schema.category]

    return (
        f"From this {schema.category.value} text, {intro}:\n\n"
        f"Text: {text}\n\n"
        "Return JSON with these fields:\n"
        + "\n".join(lines)
        + f'\n\nUse "{FALLBACK_SENTINEL}" if you can\'t find a field.'
    )
