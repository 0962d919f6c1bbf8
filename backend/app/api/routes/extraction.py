"""
Text Extraction API Routes

This module defines the HTTP endpoints that turn uploaded files into text.
Handles multipart uploads and maps extraction outcomes onto JSON responses.

Responsibilities:
- POST /extract-pdf - PDF text layer extraction with page-by-page fallback
- POST /extract-image - OCR of JPG/PNG images through the vision model
- POST /extract - Any supported file, routed by extension
- Record one timed monitoring sample per request
"""

import logging
from typing import Callable, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from app.api.dependencies import get_collector, get_text_extractor
from app.models.extraction import ExtractionFailure, ExtractionOutcome, UploadedFile
from app.models.schemas import (
    DocumentExtractionResponse,
    ErrorResponse,
    ExtractionMethod,
    FileCategory,
    ImageExtractionResponse,
    PdfExtractionResponse,
)
from app.services.document_router import detect_category
from app.services.error_classifier import PDF_UNKNOWN_MESSAGE, classify_error
from app.services.ocr_service import OCR_FAILED_MESSAGE
from app.services.office_extractor import DOCUMENT_FAILED_MESSAGE
from app.services.pdf_processor import FALLBACK_METHOD_TAG
from app.services.performance_collector import PerformanceCollector
from app.services.text_extractor import TextExtractor

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["extraction"],
    responses={
        400: {"model": ErrorResponse, "description": "Missing, invalid or oversized file"},
        403: {"model": ErrorResponse, "description": "Password-protected document"},
        422: {"model": ErrorResponse, "description": "Unreadable document or no text content"},
        500: {"model": ErrorResponse, "description": "Extraction or OCR service failure"},
    }
)


async def _read_upload(file: Optional[UploadFile], max_size_bytes: int) -> Optional[UploadedFile]:
    """
    Read an upload, never holding more than the ceiling plus one byte

    An upload whose declared size is already over the ceiling is not read at
    all; validation still sees its size and reports it as too large.
    """
    if file is None:
        return None

    if file.size is not None and file.size > max_size_bytes:
        logger.warning(
            f"Skipping read of {file.filename}: declared {file.size} bytes exceeds {max_size_bytes}"
        )
        return UploadedFile(
            filename=file.filename or "",
            content_type=file.content_type or "",
            content=b"",
            declared_size=file.size
        )

    content = await file.read(max_size_bytes + 1)
    return UploadedFile(
        filename=file.filename or "",
        content_type=file.content_type or "",
        content=content
    )


def _error_response(failure: ExtractionFailure) -> JSONResponse:
    return JSONResponse(
        status_code=failure.http_status,
        content=failure.to_response().dict(exclude_none=True)
    )


def _method_tag(outcome) -> Optional[str]:
    if outcome.source_method == ExtractionMethod.FALLBACK:
        return FALLBACK_METHOD_TAG
    return None


async def _timed_extract(
    collector: PerformanceCollector,
    operation: str,
    service: str,
    extract: Callable[[Optional[UploadedFile]], ExtractionOutcome],
    upload: Optional[UploadedFile],
    failure_message: str
) -> ExtractionOutcome:
    """
    Run a blocking extraction off the event loop and record a sample

    Client errors (4xx) are recorded as successful operations carrying their
    error kind; only server-side failures count against the error rate.
    An exception escaping the strategies is classified like any other
    parser error, with `failure_message` as the fallback text.
    """
    finish = collector.start_timer(operation, {"service": service})
    try:
        outcome = await run_in_threadpool(extract, upload)
    except Exception as e:
        logger.error(f"Unhandled error during {operation}: {str(e)}", exc_info=True)
        outcome = classify_error(e, unknown_message=failure_message)

    if isinstance(outcome, ExtractionFailure):
        finish(
            success=outcome.http_status < 500,
            error_type=outcome.kind.value,
            metadata={"status": outcome.http_status}
        )
    else:
        finish(success=True, metadata={"chars": len(outcome.text)})
    return outcome


@router.post("/extract-pdf", response_model=PdfExtractionResponse, response_model_exclude_none=True)
async def extract_pdf(
    file: Optional[UploadFile] = File(None),
    extractor: TextExtractor = Depends(get_text_extractor),
    collector: PerformanceCollector = Depends(get_collector)
):
    """
    Extract the text layer of a PDF

    Workflow:
    1. Validate type (.pdf) and size (10MB by default)
    2. Parse the whole document; stop on blank text or password protection
    3. On a parser failure, retry page by page and label each page

    Args:
        file: PDF upload (multipart field "file")

    Returns:
        {text, pages, info?, method?}; `method` is "pdfjs" when the
        page-by-page fallback produced the text
    """
    upload = await _read_upload(file, extractor.size_limit_for(FileCategory.PDF))
    logger.info(f"PDF extraction request: {upload.filename if upload else '(no file)'}")

    outcome = await _timed_extract(
        collector, "extract_pdf", "pdf", extractor.extract_pdf, upload,
        PDF_UNKNOWN_MESSAGE
    )
    if isinstance(outcome, ExtractionFailure):
        return _error_response(outcome)

    return PdfExtractionResponse(
        text=outcome.text,
        pages=outcome.page_count or 0,
        info=outcome.info,
        method=_method_tag(outcome)
    )


@router.post("/extract-image", response_model=ImageExtractionResponse)
async def extract_image(
    file: Optional[UploadFile] = File(None),
    extractor: TextExtractor = Depends(get_text_extractor),
    collector: PerformanceCollector = Depends(get_collector)
):
    """
    OCR a JPG or PNG image

    Args:
        file: Image upload (multipart field "file")

    Returns:
        {text, fileName, fileSize, success: true}
    """
    upload = await _read_upload(file, extractor.size_limit_for(FileCategory.IMAGE))
    logger.info(f"Image extraction request: {upload.filename if upload else '(no file)'}")

    outcome = await _timed_extract(
        collector, "extract_image", "ocr", extractor.extract_image, upload,
        OCR_FAILED_MESSAGE
    )
    if isinstance(outcome, ExtractionFailure):
        return _error_response(outcome)

    return ImageExtractionResponse(
        text=outcome.text,
        fileName=upload.filename,
        fileSize=upload.size,
        success=True
    )


@router.post("/extract", response_model=DocumentExtractionResponse, response_model_exclude_none=True)
async def extract_document(
    file: Optional[UploadFile] = File(None),
    extractor: TextExtractor = Depends(get_text_extractor),
    collector: PerformanceCollector = Depends(get_collector)
):
    """
    Extract text from any supported upload

    Supported extensions: txt, csv, pdf, doc, docx, xls, xlsx, jpg, jpeg, png.
    The category (and its size ceiling) is chosen from the extension.

    Args:
        file: Upload (multipart field "file")

    Returns:
        {text, fileName, fileSize, category, pages?, method?}
    """
    category = detect_category(file.filename) if file is not None else None
    upload = await _read_upload(file, extractor.size_limit_for(category))
    logger.info(f"Document extraction request: {upload.filename if upload else '(no file)'}")

    outcome = await _timed_extract(
        collector, "extract_document", "document", extractor.extract_document, upload,
        DOCUMENT_FAILED_MESSAGE
    )
    if isinstance(outcome, ExtractionFailure):
        return _error_response(outcome)

    return DocumentExtractionResponse(
        text=outcome.text,
        fileName=upload.filename,
        fileSize=upload.size,
        category=category,
        pages=outcome.page_count,
        method=_method_tag(outcome)
    )
