"""
Pydantic Models and Schemas

This module defines all data models and validation schemas used across the API.
Uses Pydantic for automatic validation and serialization.

Responsibilities:
- Request/Response models for the extraction endpoints
- Response envelope for the monitoring endpoints
- Enumerations shared by services and routes
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, Dict, Any
from enum import Enum


class FileCategory(str, Enum):
    """Upload categories, each with its own accepted types and size ceiling"""
    PDF = "pdf"
    IMAGE = "image"
    OFFICE = "office"
    SPREADSHEET = "spreadsheet"
    TEXT = "text"


class ExtractionMethod(str, Enum):
    """Which PDF strategy produced the text"""
    PRIMARY = "primary"
    FALLBACK = "fallback"


class ErrorKind(str, Enum):
    """Failure taxonomy for the extraction pipeline"""
    NO_FILE = "NoFile"
    INVALID_TYPE = "InvalidType"
    TOO_LARGE = "TooLarge"
    PASSWORD_PROTECTED = "PasswordProtected"
    CORRUPTED = "Corrupted"
    UNSUPPORTED_FORMAT = "UnsupportedFormat"
    NO_TEXT_CONTENT = "NoTextContent"
    UPSTREAM_UNAVAILABLE = "UpstreamUnavailable"
    CONFIGURATION_MISSING = "ConfigurationMissing"
    UNKNOWN = "Unknown"


class MetricType(str, Enum):
    """Custom metric types accepted by the monitoring API"""
    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"
    TIMER = "timer"


class AlertSeverity(str, Enum):
    """Alert severity levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class PdfExtractionResponse(BaseModel):
    """
    Successful PDF extraction

    `method` is only present when the page-by-page fallback produced the text.
    """
    text: str = Field(..., description="Extracted document text")
    pages: int = Field(..., description="Number of pages in the PDF", ge=0)
    info: Optional[Dict[str, Any]] = Field(None, description="PDF document info dictionary")
    method: Optional[str] = Field(None, description="Fallback method tag ('pdfjs')")

    class Config:
        json_schema_extra = {
            "example": {
                "text": "Chapter 1\n\nPhotosynthesis converts light energy...",
                "pages": 12,
                "info": {"Title": "Biology notes", "Producer": "LibreOffice"}
            }
        }


class ImageExtractionResponse(BaseModel):
    """Successful image OCR extraction"""
    text: str
    fileName: str
    fileSize: int = Field(..., ge=0)
    success: bool = True

    @validator('text')
    def validate_text_not_empty(cls, v):
        """OCR success always carries text"""
        if not v.strip():
            raise ValueError("OCR text cannot be empty or whitespace-only")
        return v


class DocumentExtractionResponse(BaseModel):
    """Successful extraction through the generic upload endpoint"""
    text: str
    fileName: str
    fileSize: int = Field(..., ge=0)
    category: FileCategory
    pages: Optional[int] = Field(None, ge=0)
    method: Optional[str] = None

    class Config:
        use_enum_values = True


class ErrorResponse(BaseModel):
    """
    Standard extraction error body

    `error` is always a stable, user-safe message. Raw library text only ever
    appears in `originalError`.
    """
    error: str
    pages: Optional[int] = None
    info: Optional[Dict[str, Any]] = None
    method: Optional[str] = None
    originalError: Optional[str] = None
    suggestion: Optional[str] = None


class MonitoringResponse(BaseModel):
    """Envelope returned by every monitoring endpoint"""
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    timestamp: int = Field(..., description="Milliseconds since the epoch")
    requestId: Optional[str] = None
