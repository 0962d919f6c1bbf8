"""
Extraction Value Types

Plain data carriers passed between the validator, the format router, the
strategies and the routes. Strategies never raise for expected failures;
they return either an ExtractionResult or an ExtractionFailure.
"""

from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any, Dict, Optional, Union

from app.models.schemas import ErrorKind, ErrorResponse, ExtractionMethod


@dataclass
class UploadedFile:
    """
    One uploaded file, held in memory for a single request

    Attributes:
        filename: Declared file name
        content_type: Declared MIME type ("" when the client sent none)
        content: Raw bytes
        declared_size: Size reported by the transport when the body was
            not read because it exceeds the ceiling
    """
    filename: str
    content_type: str
    content: bytes
    declared_size: Optional[int] = None

    @property
    def size(self) -> int:
        if self.declared_size is not None:
            return self.declared_size
        return len(self.content)

    @property
    def extension(self) -> str:
        """Lower-cased extension including the dot, e.g. '.pdf'"""
        return PurePath(self.filename or "").suffix.lower()


@dataclass
class ExtractionResult:
    """Text extracted by a strategy. `text` is never blank."""
    text: str
    page_count: Optional[int] = None
    source_method: Optional[ExtractionMethod] = None
    info: Optional[Dict[str, Any]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ExtractionFailure:
    """
    A classified extraction failure

    `message` is the stable, user-facing text. Raw library messages are only
    carried in `original_error`.
    """
    kind: ErrorKind
    message: str
    http_status: int
    pages: Optional[int] = None
    info: Optional[Dict[str, Any]] = None
    method: Optional[str] = None
    original_error: Optional[str] = None
    suggestion: Optional[str] = None

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            error=self.message,
            pages=self.pages,
            info=self.info,
            method=self.method,
            originalError=self.original_error,
            suggestion=self.suggestion
        )


ExtractionOutcome = Union[ExtractionResult, ExtractionFailure]
