"""
PDF text extraction using OpenDataLoader.

Converts a PDF to markdown locally (no API call) and flattens it into the
plain text the classifier and extractor consume. There is no OCR: a scanned
PDF with no text layer yields ``NoTextFoundError``.
"""

import logging
import os
import re
import tempfile
from typing import Union

from opendataloader_pdf import convert

logger = logging.getLogger(__name__)

_HORIZONTAL_SPACE = re.compile(r"[ \t\f\v\xa0]+")


class NoTextFoundError(ValueError):
    """Raised when a PDF yields no extractable text."""


def validate_pdf_file(file_path: str) -> bool:
    """Check that *file_path* exists, has a ``.pdf`` extension and is readable."""
    if not os.path.isfile(file_path):
        return False
    if not file_path.lower().endswith(".pdf"):
        return False
    return os.access(file_path, os.R_OK)


def clean_text(raw: str) -> str:
    """Collapse runs of spaces and drop blank lines."""
    lines = (_HORIZONTAL_SPACE.sub(" ", line).strip() for line in raw.splitlines())
    return "\n".join(line for line in lines if line)


def _convert_to_markdown(file_path: str, output_dir: str) -> str:
    convert(
        input_path=file_path,
        output_dir=output_dir,
        format="markdown",
        quiet=True
    )

    base_name = os.path.splitext(os.path.basename(file_path))[0]
    markdown_path = os.path.join(output_dir, f"{base_name}.md")
    if not os.path.exists(markdown_path):
        return ""

    with open(markdown_path, "r", encoding="utf-8") as f:
        return f.read()


def extract_text(source: Union[str, bytes]) -> str:
    """
    Extract flat text from a PDF file path or raw PDF bytes.

    Args:
        source: Path to a PDF file, or the PDF content itself

    Returns:
        Cleaned document text (never empty)

    Raises:
        FileNotFoundError: If the PDF file does not exist
        NoTextFoundError: If the PDF contains no extractable text
        ValueError: If OpenDataLoader cannot process the file
    """
    with tempfile.TemporaryDirectory() as temp_dir:
        if isinstance(source, (bytes, bytearray)):
            file_path = os.path.join(temp_dir, "document.pdf")
            with open(file_path, "wb") as f:
                f.write(source)
            label = "<bytes>"
        else:
            file_path = source
            label = source
            if not os.path.exists(file_path):
                raise FileNotFoundError(f"PDF file not found: {file_path}")

        output_dir = os.path.join(temp_dir, "out")
        os.makedirs(output_dir, exist_ok=True)

        try:
            markdown = _convert_to_markdown(file_path, output_dir)
        except FileNotFoundError as e:
            raise FileNotFoundError(f"PDF file not found: {label}") from e
        except Exception as e:
            raise ValueError(f"Failed to extract text from {label}: {e}") from e

    text = clean_text(markdown)
    if not text:
        raise NoTextFoundError(f"No text could be extracted from the PDF: {label}")

    logger.debug("Extracted %d characters from %s", len(text), label)
    return text
