"""
Format Router

Maps a validated upload to exactly one extraction strategy by file category.
Only the PDF chain tries more than one extractor internally.
"""

from pathlib import PurePath
from typing import Dict, Optional
import logging

from app.models.extraction import ExtractionFailure, ExtractionOutcome, UploadedFile
from app.models.schemas import ErrorKind, FileCategory
from app.services.ocr_service import ImageOCRStrategy
from app.services.office_extractor import (
    PlainTextExtractor,
    SpreadsheetExtractor,
    WordDocumentExtractor,
)
from app.services.pdf_processor import PDFExtractionChain

logger = logging.getLogger(__name__)


EXTENSION_CATEGORIES: Dict[str, FileCategory] = {
    ".txt": FileCategory.TEXT,
    ".csv": FileCategory.TEXT,
    ".pdf": FileCategory.PDF,
    ".doc": FileCategory.OFFICE,
    ".docx": FileCategory.OFFICE,
    ".xls": FileCategory.SPREADSHEET,
    ".xlsx": FileCategory.SPREADSHEET,
    ".jpg": FileCategory.IMAGE,
    ".jpeg": FileCategory.IMAGE,
    ".png": FileCategory.IMAGE,
}


def detect_category(filename: str) -> Optional[FileCategory]:
    """
    Category for a file name, or None when the extension is not supported

    Example:
        >>> detect_category("Notes.DOCX")
        <FileCategory.OFFICE: 'office'>
    """
    return EXTENSION_CATEGORIES.get(PurePath(filename or "").suffix.lower())


def unsupported_format(extension: str) -> ExtractionFailure:
    supported = ", ".join(ext.lstrip(".") for ext in EXTENSION_CATEGORIES)
    return ExtractionFailure(
        kind=ErrorKind.UNSUPPORTED_FORMAT,
        message=f"Unsupported file type: {extension or '(none)'}",
        http_status=422,
        suggestion=f"Supported file types: {supported}"
    )


class FormatRouter:
    """
    Dispatches uploads to the strategy for their category

    Example:
        >>> router = FormatRouter(pdf_chain, ocr_strategy)
        >>> outcome = router.route(upload, FileCategory.PDF)
    """

    def __init__(
        self,
        pdf_chain: PDFExtractionChain,
        ocr_strategy: ImageOCRStrategy,
        word_extractor: Optional[WordDocumentExtractor] = None,
        spreadsheet_extractor: Optional[SpreadsheetExtractor] = None,
        text_extractor: Optional[PlainTextExtractor] = None
    ):
        self.pdf_chain = pdf_chain
        self.ocr_strategy = ocr_strategy
        self.word_extractor = word_extractor or WordDocumentExtractor()
        self.spreadsheet_extractor = spreadsheet_extractor or SpreadsheetExtractor()
        self.text_extractor = text_extractor or PlainTextExtractor()

    def route(self, upload: UploadedFile, category: FileCategory) -> ExtractionOutcome:
        """
        Run the one strategy responsible for `category`

        Args:
            upload: Validated upload
            category: Category the upload was validated as

        Returns:
            The strategy's ExtractionResult or ExtractionFailure
        """
        logger.info(f"Routing {upload.filename} ({category.value}) to its strategy")

        if category == FileCategory.PDF:
            return self.pdf_chain.extract(upload.content)
        if category == FileCategory.IMAGE:
            return self.ocr_strategy.extract(upload)
        if category == FileCategory.OFFICE:
            return self.word_extractor.extract(upload.content, upload.extension)
        if category == FileCategory.SPREADSHEET:
            return self.spreadsheet_extractor.extract(upload.content, upload.extension)
        if category == FileCategory.TEXT:
            return self.text_extractor.extract(upload.content, upload.extension)

        return unsupported_format(upload.extension)
