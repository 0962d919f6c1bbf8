"""
Extraction Error Classifier

Turns exceptions raised by parsing libraries and the OCR client into
ExtractionFailure values with a stable user-facing message.

Classification order:
1. Typed causes (pypdf, pdfminer, OpenRouter client), including causes
   wrapped by pdfplumber
2. Case-insensitive substring match on the raw message
3. Unknown (500)
"""

import logging
from typing import Iterator, Optional

from pdfminer.pdfdocument import PDFEncryptionError, PDFPasswordIncorrect
from pdfminer.pdfparser import PDFSyntaxError
from pdfplumber.utils.exceptions import PdfminerException
from pypdf.errors import (
    DependencyError,
    EmptyFileError,
    FileNotDecryptedError,
    PdfReadError,
    WrongPasswordError,
)

from app.models.schemas import ErrorKind
from app.models.extraction import ExtractionFailure
from app.services.openrouter_client import (
    OpenRouterClientError,
    OpenRouterConfigurationError,
)

logger = logging.getLogger(__name__)


PASSWORD_PROTECTED_MESSAGE = (
    "This file is password-protected. Please remove the password protection and try again."
)
CORRUPTED_MESSAGE = (
    "The file appears to be corrupted or has an invalid format."
)
UNSUPPORTED_FORMAT_MESSAGE = (
    "This file uses an unsupported format or feature."
)
PDF_UNKNOWN_MESSAGE = (
    "Failed to parse PDF. The file may be corrupted, password-protected, "
    "or in an unsupported format."
)
OCR_NOT_CONFIGURED_MESSAGE = "OCR service not configured"
OCR_UNAVAILABLE_MESSAGE = "OCR service temporarily unavailable. Please try again later."

SUGGESTIONS = {
    ErrorKind.PASSWORD_PROTECTED: "Remove the password (for example by printing to a new PDF) and upload the file again.",
    ErrorKind.CORRUPTED: "Try re-saving or re-exporting the file, or upload a different copy.",
    ErrorKind.UNSUPPORTED_FORMAT: "Try converting the file to a standard PDF, DOCX or plain text file.",
    ErrorKind.UNKNOWN: "Try a different file, or copy the text into a .txt file and upload that.",
}

KIND_STATUS = {
    ErrorKind.PASSWORD_PROTECTED: 403,
    ErrorKind.CORRUPTED: 422,
    ErrorKind.UNSUPPORTED_FORMAT: 422,
    ErrorKind.UPSTREAM_UNAVAILABLE: 500,
    ErrorKind.CONFIGURATION_MISSING: 500,
    ErrorKind.UNKNOWN: 500,
}

# Checked in order; the first matching keyword wins
SUBSTRING_RULES = (
    (("password", "encrypted"), ErrorKind.PASSWORD_PROTECTED),
    (("invalid", "corrupted"), ErrorKind.CORRUPTED),
    (("unsupported",), ErrorKind.UNSUPPORTED_FORMAT),
)

# Raw upstream text never reaches the caller for these
OPAQUE_KINDS = {ErrorKind.UPSTREAM_UNAVAILABLE, ErrorKind.CONFIGURATION_MISSING}


def _iter_causes(exc: BaseException) -> Iterator[BaseException]:
    """Yield the exception and anything it wraps (args, __cause__, __context__)."""
    seen = set()
    pending = [exc]
    while pending:
        current = pending.pop(0)
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current

        # pdfplumber wraps pdfminer errors as PdfminerException(original)
        pending.extend(arg for arg in current.args if isinstance(arg, BaseException))
        if current.__cause__ is not None:
            pending.append(current.__cause__)
        if current.__context__ is not None:
            pending.append(current.__context__)


def _typed_kind(exc: BaseException) -> Optional[ErrorKind]:
    for cause in _iter_causes(exc):
        if isinstance(cause, OpenRouterConfigurationError):
            return ErrorKind.CONFIGURATION_MISSING
        if isinstance(cause, OpenRouterClientError):
            return ErrorKind.UPSTREAM_UNAVAILABLE
        # FileNotDecryptedError subclasses PdfReadError, so order matters
        if isinstance(cause, (FileNotDecryptedError, WrongPasswordError)):
            return ErrorKind.PASSWORD_PROTECTED
        if isinstance(cause, (PDFPasswordIncorrect, PDFEncryptionError)):
            return ErrorKind.PASSWORD_PROTECTED
        if isinstance(cause, DependencyError):
            return ErrorKind.UNSUPPORTED_FORMAT
        if isinstance(cause, (PdfReadError, EmptyFileError, PDFSyntaxError)):
            return ErrorKind.CORRUPTED
    return None


def kind_from_message(message: str) -> ErrorKind:
    """
    Classify a raw error message by keyword

    Args:
        message: Raw exception text

    Returns:
        ErrorKind, UNKNOWN when no keyword matches

    Example:
        >>> kind_from_message("Invalid PDF structure")
        <ErrorKind.CORRUPTED: 'Corrupted'>
    """
    lowered = (message or "").lower()
    for keywords, kind in SUBSTRING_RULES:
        if any(keyword in lowered for keyword in keywords):
            return kind
    return ErrorKind.UNKNOWN


def _describe(exc: BaseException) -> str:
    """Raw message for `originalError`, unwrapping pdfplumber's wrapper."""
    if isinstance(exc, PdfminerException) and exc.args:
        inner = exc.args[0]
        if isinstance(inner, BaseException):
            return str(inner) or type(inner).__name__
    return str(exc) or type(exc).__name__


def classify_error(
    exc: BaseException,
    unknown_message: str = PDF_UNKNOWN_MESSAGE,
    method: Optional[str] = None
) -> ExtractionFailure:
    """
    Convert an exception into an ExtractionFailure

    Args:
        exc: Exception raised by a parsing library or the OCR client
        unknown_message: User-facing message when nothing more specific applies
        method: Extraction method tag to attach to the failure

    Returns:
        ExtractionFailure with kind, status, message and suggestion
    """
    raw_message = _describe(exc)
    kind = _typed_kind(exc)
    if kind is None:
        kind = kind_from_message(raw_message)

    messages = {
        ErrorKind.PASSWORD_PROTECTED: PASSWORD_PROTECTED_MESSAGE,
        ErrorKind.CORRUPTED: CORRUPTED_MESSAGE,
        ErrorKind.UNSUPPORTED_FORMAT: UNSUPPORTED_FORMAT_MESSAGE,
        ErrorKind.UPSTREAM_UNAVAILABLE: OCR_UNAVAILABLE_MESSAGE,
        ErrorKind.CONFIGURATION_MISSING: OCR_NOT_CONFIGURED_MESSAGE,
    }

    logger.debug(f"Classified {type(exc).__name__} as {kind.value}: {raw_message}")

    return ExtractionFailure(
        kind=kind,
        message=messages.get(kind, unknown_message),
        http_status=KIND_STATUS[kind],
        method=method,
        original_error=None if kind in OPAQUE_KINDS else raw_message,
        suggestion=SUGGESTIONS.get(kind)
    )
