"""
Text Extraction Orchestration Service

This module is the single entry point the routes call. It acts as a facade
over validation, format routing and the extraction strategies.

Responsibilities:
- Validate uploads before any parser runs
- Resolve the category of generic uploads from the file extension
- Delegate to the format router
- Return exactly one outcome per upload: a result or a failure
"""

from dataclasses import replace
from typing import Dict, Optional
import logging
import mimetypes

from app.models.extraction import ExtractionOutcome, UploadedFile
from app.models.schemas import FileCategory
from app.services.document_router import FormatRouter, detect_category, unsupported_format
from app.utils.validators import is_missing, missing_file, validate_upload

logger = logging.getLogger(__name__)


GENERIC_CONTENT_TYPES = ("", "application/octet-stream")


class TextExtractor:
    """
    High-level service for extracting text from uploaded files

    Coordinates:
    - Per-category validation (type, size)
    - Category detection for the generic endpoint
    - Strategy dispatch through the FormatRouter

    Example:
        >>> extractor = TextExtractor(router, settings.size_limits())
        >>> outcome = extractor.extract_pdf(upload)
    """

    def __init__(self, router: FormatRouter, size_limits: Dict[str, int]):
        """
        Initialize text extractor

        Args:
            router: Format router holding the strategies
            size_limits: Byte ceilings keyed by FileCategory value
        """
        self.router = router
        self.size_limits = size_limits

    def size_limit_for(self, category: Optional[FileCategory]) -> int:
        """
        Byte ceiling for a category; the largest ceiling when it is unknown

        Routes use this to bound how much of an upload they read.
        """
        if category is None:
            return max(self.size_limits.values())
        return self.size_limits[category.value]

    def extract_pdf(self, upload: Optional[UploadedFile]) -> ExtractionOutcome:
        """Validate as PDF and run the PDF strategy chain"""
        return self._extract(upload, FileCategory.PDF)

    def extract_image(self, upload: Optional[UploadedFile]) -> ExtractionOutcome:
        """Validate as JPG/PNG image and run OCR"""
        return self._extract(upload, FileCategory.IMAGE)

    def extract_document(self, upload: Optional[UploadedFile]) -> ExtractionOutcome:
        """
        Extract any supported file, choosing the category from its extension

        Unknown extensions fail with UnsupportedFormat before any strategy runs.
        """
        if is_missing(upload):
            return missing_file()

        category = detect_category(upload.filename)
        if category is None:
            logger.warning(f"Unsupported upload type: {upload.filename}")
            return unsupported_format(upload.extension)

        if category == FileCategory.IMAGE and upload.content_type in GENERIC_CONTENT_TYPES:
            # Clients without a MIME database send images untyped
            guessed, _ = mimetypes.guess_type(upload.filename)
            upload = replace(upload, content_type=guessed or upload.content_type)

        return self._extract(upload, category)

    def _extract(self, upload: Optional[UploadedFile], category: FileCategory) -> ExtractionOutcome:
        failure = validate_upload(upload, category, self.size_limit_for(category))
        if failure is not None:
            logger.warning(f"Validation failed ({failure.kind.value}): {failure.message}")
            return failure

        logger.info(
            f"Extracting {upload.filename} as {category.value} ({upload.size} bytes)"
        )
        return self.router.route(upload, category)
