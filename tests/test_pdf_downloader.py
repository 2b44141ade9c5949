"""Tests for downloading PDFs from URLs."""

import os
import re

import httpx
import pytest

from docextract.services.pdf_downloader import (
    PdfDownloadError,
    download_pdf,
    filename_from_url,
)

PDF_BYTES = b"%PDF-1.4 sample"


def _client(content=PDF_BYTES, content_type="application/pdf", status=200, exc=None):
    def handler(request):
        if exc is not None:
            raise exc
        headers = {"content-type": content_type} if content_type else {}
        return httpx.Response(status, content=content, headers=headers)
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestDownloadPdf:

    def test_saves_pdf(self, tmp_path):
        dest = tmp_path / "downloads"

        downloaded = download_pdf(
            "https://example.com/docs/invoice.pdf", str(dest), client=_client()
        )

        assert downloaded.file_name == "invoice.pdf"
        assert downloaded.file_size == len(PDF_BYTES)
        assert downloaded.content_type == "application/pdf"
        with open(downloaded.file_path, "rb") as f:
            assert f.read() == PDF_BYTES
        assert os.path.dirname(downloaded.file_path) == str(dest)

    def test_content_type_with_parameters(self, tmp_path):
        downloaded = download_pdf(
            "https://example.com/a.pdf", str(tmp_path),
            client=_client(content_type="Application/PDF; charset=binary"),
        )

        assert downloaded.file_size == len(PDF_BYTES)

    @pytest.mark.parametrize("url", ["ftp://example.com/a.pdf", "file:///etc/passwd", "example.com/a.pdf"])
    def test_rejects_other_schemes(self, tmp_path, url):
        with pytest.raises(PdfDownloadError) as exc_info:
            download_pdf(url, str(tmp_path), client=_client())

        assert "Only HTTP and HTTPS" in str(exc_info.value)

    def test_http_error_status(self, tmp_path):
        with pytest.raises(PdfDownloadError) as exc_info:
            download_pdf("https://example.com/a.pdf", str(tmp_path), client=_client(status=404))

        assert "HTTP 404" in str(exc_info.value)

    def test_network_error(self, tmp_path):
        client = _client(exc=httpx.ConnectError("connection refused"))

        with pytest.raises(PdfDownloadError) as exc_info:
            download_pdf("https://example.com/a.pdf", str(tmp_path), client=client)

        assert "connection refused" in str(exc_info.value)

    def test_non_pdf_content_type(self, tmp_path):
        with pytest.raises(PdfDownloadError) as exc_info:
            download_pdf(
                "https://example.com/a.pdf", str(tmp_path),
                client=_client(content_type="text/html"),
            )

        assert "Content-Type: text/html" in str(exc_info.value)
        assert os.listdir(tmp_path) == []

    def test_empty_body(self, tmp_path):
        with pytest.raises(PdfDownloadError):
            download_pdf("https://example.com/a.pdf", str(tmp_path), client=_client(content=b""))

    def test_size_limit(self, tmp_path):
        with pytest.raises(PdfDownloadError) as exc_info:
            download_pdf(
                "https://example.com/a.pdf", str(tmp_path),
                client=_client(content=b"x" * 11), max_size_bytes=10,
            )

        assert "too large" in str(exc_info.value)

    def test_streamed_body_stops_at_limit(self, tmp_path):
        served = []

        def chunks():
            for _ in range(200):
                served.append(1)
                yield b"x" * 1024

        def handler(request):
            return httpx.Response(200, content=chunks(), headers={"content-type": "application/pdf"})

        client = httpx.Client(transport=httpx.MockTransport(handler))

        with pytest.raises(PdfDownloadError) as exc_info:
            download_pdf("https://example.com/a.pdf", str(tmp_path), client=client, max_size_bytes=1024)

        assert "too large" in str(exc_info.value)
        assert len(served) <= 2
        assert os.listdir(tmp_path) == []

    def test_streamed_body_within_limit(self, tmp_path):
        def handler(request):
            body = iter([b"%PDF-1.4 ", b"streamed"])
            return httpx.Response(200, content=body, headers={"content-type": "application/pdf"})

        client = httpx.Client(transport=httpx.MockTransport(handler))

        downloaded = download_pdf("https://example.com/a.pdf", str(tmp_path), client=client)

        assert downloaded.file_size == len(b"%PDF-1.4 streamed")


class TestFilenameFromUrl:

    def test_uses_path_basename(self):
        assert filename_from_url("https://example.com/files/Q3%20report.pdf?x=1") == "Q3_report.pdf"

    def test_name_without_extension(self):
        assert re.fullmatch(r"download_\d+\.pdf", filename_from_url("https://example.com/get"))

    def test_no_path(self):
        assert re.fullmatch(r"download_\d+\.pdf", filename_from_url("https://example.com/"))

    def test_non_pdf_extension_gets_pdf_suffix(self):
        assert filename_from_url("https://example.com/file.bin") == "file.bin.pdf"
