"""Data models package"""
from app.models.schemas import (
    FileCategory,
    ExtractionMethod,
    ErrorKind,
    MetricType,
    AlertSeverity,
    PdfExtractionResponse,
    ImageExtractionResponse,
    DocumentExtractionResponse,
    ErrorResponse,
    MonitoringResponse
)
from app.models.extraction import (
    UploadedFile,
    ExtractionResult,
    ExtractionFailure,
    ExtractionOutcome
)

__all__ = [
    "FileCategory",
    "ExtractionMethod",
    "ErrorKind",
    "MetricType",
    "AlertSeverity",
    "PdfExtractionResponse",
    "ImageExtractionResponse",
    "DocumentExtractionResponse",
    "ErrorResponse",
    "MonitoringResponse",
    "UploadedFile",
    "ExtractionResult",
    "ExtractionFailure",
    "ExtractionOutcome"
]
