"""
Input Validation Utilities

This module validates uploaded files against the rules of their category
before any parser sees the bytes.

Responsibilities:
- Reject missing uploads
- Check extensions and declared MIME types per category
- Enforce per-category size ceilings
"""

from typing import Dict, Optional
import logging

from app.models.schemas import ErrorKind, FileCategory
from app.models.extraction import ExtractionFailure, UploadedFile

logger = logging.getLogger(__name__)


MEGABYTE = 1024 * 1024

ACCEPTED_EXTENSIONS: Dict[FileCategory, set] = {
    FileCategory.PDF: {".pdf"},
    FileCategory.IMAGE: {".jpg", ".jpeg", ".png"},
    FileCategory.OFFICE: {".doc", ".docx"},
    FileCategory.SPREADSHEET: {".xls", ".xlsx"},
    FileCategory.TEXT: {".txt", ".csv"},
}

SUPPORTED_IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png")


def _invalid(message: str, kind: ErrorKind = ErrorKind.INVALID_TYPE) -> ExtractionFailure:
    return ExtractionFailure(kind=kind, message=message, http_status=400)


def is_missing(upload: Optional[UploadedFile]) -> bool:
    """True when the request carried no file (or an empty, unnamed part)"""
    return upload is None or (not upload.filename and not upload.size)


def missing_file() -> ExtractionFailure:
    return _invalid("No file provided", ErrorKind.NO_FILE)


def _format_megabytes(size_bytes: int) -> str:
    megabytes = size_bytes / MEGABYTE
    return f"{megabytes:g}MB"


def validate_upload(
    upload: Optional[UploadedFile],
    category: FileCategory,
    max_size_bytes: int
) -> Optional[ExtractionFailure]:
    """
    Validate an upload against its category's rules

    Pure check over the file's metadata. Type checks run before the size
    check, mirroring the order users see errors in the web client.

    Args:
        upload: The uploaded file, or None when the request carried none
        category: Category the file is being extracted as
        max_size_bytes: Size ceiling for the category

    Returns:
        None when valid, otherwise an ExtractionFailure with status 400

    Example:
        >>> validate_upload(None, FileCategory.PDF, 10 * MEGABYTE).message
        'No file provided'
    """
    if is_missing(upload):
        return missing_file()

    if category == FileCategory.IMAGE:
        content_type = (upload.content_type or "").lower()
        if not content_type.startswith("image/"):
            return _invalid("File must be an image")
        if content_type not in SUPPORTED_IMAGE_TYPES:
            return _invalid("Unsupported image format. Please use JPG or PNG files.")
        if upload.size > max_size_bytes:
            return _invalid(
                f"Image file too large. Please use images smaller than "
                f"{_format_megabytes(max_size_bytes)}.",
                ErrorKind.TOO_LARGE
            )
        return None

    if category == FileCategory.PDF:
        if upload.extension != ".pdf":
            return _invalid("File must be a PDF")
    elif upload.extension not in ACCEPTED_EXTENSIONS[category]:
        accepted = ", ".join(sorted(ACCEPTED_EXTENSIONS[category]))
        return _invalid(f"Unsupported file type. Accepted types: {accepted}")

    if upload.size > max_size_bytes:
        logger.warning(
            f"Rejected {upload.filename}: {upload.size} bytes exceeds "
            f"{category.value} limit of {max_size_bytes} bytes"
        )
        return _invalid(
            f"File too large (max {_format_megabytes(max_size_bytes)})",
            ErrorKind.TOO_LARGE
        )

    return None
