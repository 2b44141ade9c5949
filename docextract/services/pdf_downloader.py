"""Download a PDF from an http(s) URL into the outputs directory."""

import logging
import os
import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote, urlparse

import httpx

from docextract.services.file_validator import sanitize_filename

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = ("http", "https")
PDF_CONTENT_TYPE = "application/pdf"


class PdfDownloadError(Exception):
    """Raised when a URL cannot be fetched as a PDF."""


@dataclass
class DownloadedPdf:
    url: str
    file_path: str
    file_name: str
    file_size: int
    content_type: str


def filename_from_url(url: str) -> str:
    """Derive a safe local file name from the URL path.

    A path without a usable name (or without any extension) gets a
    timestamped ``download_<ms>.pdf`` name.
    """
    name = os.path.basename(unquote(urlparse(url).path))
    if not name or "." not in name:
        return f"download_{int(time.time() * 1000)}.pdf"
    return sanitize_filename(name)


def _read_limited(response: httpx.Response, max_size_bytes: int) -> bytes:
    """Read a streamed body, stopping as soon as it passes *max_size_bytes*."""
    chunks = []
    received = 0
    for chunk in response.iter_bytes():
        received += len(chunk)
        if received > max_size_bytes:
            raise PdfDownloadError(
                f"PDF too large: more than {max_size_bytes} bytes received (limit {max_size_bytes})"
            )
        chunks.append(chunk)
    return b"".join(chunks)


def download_pdf(
    url: str,
    dest_dir: str,
    *,
    timeout: float = 30.0,
    max_size_bytes: int = 50 * 1024 * 1024,
    client: Optional[httpx.Client] = None,
) -> DownloadedPdf:
    """
    Fetch *url* and save it under *dest_dir*.

    Args:
        url: http or https URL of the PDF
        dest_dir: Directory the PDF is written to (created if missing)
        timeout: Request timeout in seconds
        max_size_bytes: Largest accepted body
        client: Pre-configured httpx client (its lifetime stays with the caller)

    Returns:
        DownloadedPdf describing the saved file

    Raises:
        PdfDownloadError: Bad scheme, HTTP error, non-PDF content type,
            oversized body or network failure
    """
    scheme = urlparse(url).scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        raise PdfDownloadError(
            f"Only HTTP and HTTPS URLs are supported (got: {scheme or 'none'})"
        )

    owns_client = client is None
    http = client or httpx.Client(timeout=timeout, follow_redirects=True)
    try:
        logger.info("Downloading PDF from %s", url)
        with http.stream("GET", url) as response:
            response.raise_for_status()

            content_type = response.headers.get("content-type", "")
            if PDF_CONTENT_TYPE not in content_type.lower():
                raise PdfDownloadError(
                    f"URL does not point to a PDF file. Content-Type: {content_type or 'missing'}"
                )

            declared = response.headers.get("content-length", "")
            if declared.isdigit() and int(declared) > max_size_bytes:
                raise PdfDownloadError(
                    f"PDF too large: {declared} bytes (limit {max_size_bytes})"
                )

            content = _read_limited(response, max_size_bytes)
    except httpx.HTTPStatusError as e:
        raise PdfDownloadError(
            f"Failed to download PDF: HTTP {e.response.status_code}"
        ) from e
    except httpx.HTTPError as e:
        raise PdfDownloadError(f"Failed to download PDF: {e}") from e
    finally:
        if owns_client:
            http.close()

    if not content:
        raise PdfDownloadError("Downloaded PDF is empty")

    os.makedirs(dest_dir, exist_ok=True)
    file_name = filename_from_url(url)
    file_path = os.path.join(dest_dir, file_name)
    with open(file_path, "wb") as f:
        f.write(content)

    logger.info("Saved %s (%.1f KB)", file_path, len(content) / 1024)
    return DownloadedPdf(
        url=url,
        file_path=file_path,
        file_name=file_name,
        file_size=len(content),
        content_type=content_type,
    )
