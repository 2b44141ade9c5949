"""
Validation for PDFs arriving over HTTP (uploads) or fetched from URLs.

Security checks:
- Size limits
- MIME sniffing with python-magic (the declared type is not trusted)
- Filename sanitization
- SHA-256 content hash, recorded alongside the upload
"""

import hashlib
import re
from pathlib import Path
from typing import NamedTuple, Optional

import magic
from fastapi import HTTPException, UploadFile

MAX_UPLOAD_SIZE = 50 * 1024 * 1024  # 50MB in bytes
ALLOWED_MIME_TYPE = "application/pdf"
DEFAULT_FILENAME = "upload.pdf"


class ValidatedUpload(NamedTuple):
    content: bytes
    sha256: str
    filename: str


def sniff_mime_type(content: bytes) -> str:
    """Detect the MIME type of *content* from its leading bytes."""
    return magic.from_buffer(content[:2048], mime=True)


def is_pdf_content(content: bytes) -> bool:
    return bool(content) and sniff_mime_type(content) == ALLOWED_MIME_TYPE


async def validate_pdf(file: UploadFile, max_size: int = MAX_UPLOAD_SIZE) -> ValidatedUpload:
    """
    Validate an uploaded PDF and return its content, hash and safe filename.

    Args:
        file: FastAPI UploadFile from multipart/form-data
        max_size: Largest accepted upload in bytes

    Returns:
        ValidatedUpload(content, sha256, filename)

    Raises:
        HTTPException: 400 for an empty or non-PDF upload, 413 if too large
    """
    content = await file.read()

    if len(content) == 0:
        raise HTTPException(status_code=400, detail="File is empty")

    if len(content) > max_size:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {max_size // (1024 * 1024)}MB"
        )

    mime_type = sniff_mime_type(content)
    if mime_type != ALLOWED_MIME_TYPE:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type. Expected {ALLOWED_MIME_TYPE}, got {mime_type}"
        )

    return ValidatedUpload(
        content=content,
        sha256=hashlib.sha256(content).hexdigest(),
        filename=sanitize_filename(file.filename),
    )


def sanitize_filename(filename: Optional[str], default: str = DEFAULT_FILENAME) -> str:
    """
    Reduce *filename* to a safe ``.pdf`` basename.

    Path components, parent references and null bytes are removed, anything
    outside ``[A-Za-z0-9._-]`` becomes ``_`` and the result is capped at 255
    characters with the extension preserved.
    """
    if not filename:
        return default

    name = Path(filename.replace("\\", "/")).name
    name = name.replace("..", "").replace("\0", "")
    name = re.sub(r"[^a-zA-Z0-9._-]", "_", name)

    if not name or name.lower() == ".pdf":
        return default

    if not name.lower().endswith(".pdf"):
        name += ".pdf"

    if len(name) > 255:
        name = name[:251] + ".pdf"

    return name
