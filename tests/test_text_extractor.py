"""Tests for PDF text extraction via OpenDataLoader."""

import os
from unittest.mock import patch

import pytest

from docextract.services.text_extractor import (
    NoTextFoundError,
    clean_text,
    extract_text,
    validate_pdf_file,
)


def _fake_convert(markdown):
    """Build a convert() stand-in that writes *markdown* next to the output."""
    def _convert(input_path, output_dir, format, quiet):
        assert format == "markdown"
        base_name = os.path.splitext(os.path.basename(input_path))[0]
        with open(os.path.join(output_dir, f"{base_name}.md"), "w", encoding="utf-8") as f:
            f.write(markdown)
    return _convert


@pytest.fixture
def pdf_file(tmp_path):
    path = tmp_path / "invoice.pdf"
    path.write_bytes(b"%PDF-1.4\n%%EOF")
    return str(path)


class TestExtractText:

    def test_extracts_from_path(self, pdf_file):
        markdown = "# INVOICE\n\n\nBill   To:\tAcme Corp\n\n  Amount due: $500.00  \n"

        with patch("docextract.services.text_extractor.convert",
                   side_effect=_fake_convert(markdown)) as mock_convert:
            text = extract_text(pdf_file)

        assert text == "# INVOICE\nBill To: Acme Corp\nAmount due: $500.00"
        assert mock_convert.call_args.kwargs["input_path"] == pdf_file

    def test_extracts_from_bytes(self):
        with patch("docextract.services.text_extractor.convert",
                   side_effect=_fake_convert("Receipt from Stripe")) as mock_convert:
            text = extract_text(b"%PDF-1.4 bytes")

        assert text == "Receipt from Stripe"
        input_path = mock_convert.call_args.kwargs["input_path"]
        assert input_path.endswith("document.pdf")
        # Temporary copy is cleaned up
        assert not os.path.exists(input_path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            extract_text(str(tmp_path / "nope.pdf"))

    def test_blank_output(self, pdf_file):
        with patch("docextract.services.text_extractor.convert",
                   side_effect=_fake_convert("   \n\n \t \n")):
            with pytest.raises(NoTextFoundError):
                extract_text(pdf_file)

    def test_no_markdown_written(self, pdf_file):
        with patch("docextract.services.text_extractor.convert"):
            with pytest.raises(NoTextFoundError):
                extract_text(pdf_file)

    def test_converter_failure(self, pdf_file):
        with patch("docextract.services.text_extractor.convert",
                   side_effect=RuntimeError("java not found")):
            with pytest.raises(ValueError) as exc_info:
                extract_text(pdf_file)

        assert "Failed to extract text" in str(exc_info.value)
        assert "java not found" in str(exc_info.value)


class TestHelpers:

    def test_clean_text(self):
        assert clean_text("a  b\n\n\nc\xa0\xa0d\n") == "a b\nc d"

    def test_validate_pdf_file(self, pdf_file, tmp_path):
        other = tmp_path / "notes.txt"
        other.write_text("hi")

        assert validate_pdf_file(pdf_file) is True
        assert validate_pdf_file(str(other)) is False
        assert validate_pdf_file(str(tmp_path / "missing.pdf")) is False
