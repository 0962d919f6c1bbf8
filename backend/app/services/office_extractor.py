"""
Office Document, Spreadsheet and Plain Text Extraction

Responsibilities:
- Word documents: paragraph text in document order (python-docx)
- Spreadsheets: one block per sheet in workbook order (openpyxl for .xlsx,
  xlrd for legacy .xls)
- Plain text: decoded verbatim
- CSV: display transform, commas become ' | ', one line in, one line out

Output is deterministic: the same bytes always produce the same text.
"""

from typing import Any, Iterable, List, Sequence
import io
import logging

import xlrd
from docx import Document
from openpyxl import load_workbook

from app.models.extraction import ExtractionFailure, ExtractionOutcome, ExtractionResult
from app.models.schemas import ErrorKind
from app.services.error_classifier import classify_error

logger = logging.getLogger(__name__)


DOCUMENT_FAILED_MESSAGE = "Failed to extract text from document."
SPREADSHEET_FAILED_MESSAGE = "Failed to extract text from spreadsheet."
LEGACY_DOC_MESSAGE = (
    "Legacy .doc format is not supported. Please save as .docx (Word 2007+) or export as PDF."
)
NO_TEXT_MESSAGE = "No text content found in the file."


def _no_text() -> ExtractionFailure:
    return ExtractionFailure(
        kind=ErrorKind.NO_TEXT_CONTENT,
        message=NO_TEXT_MESSAGE,
        http_status=422
    )


def _checked(text: str, **kwargs) -> ExtractionOutcome:
    if not text.strip():
        return _no_text()
    return ExtractionResult(text=text, **kwargs)


def format_cell(value: Any) -> str:
    """Render one spreadsheet cell the way a text export would"""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def rows_to_text(rows: Iterable[Sequence[Any]]) -> str:
    """Tab-delimited rows, one per line"""
    return "\n".join("\t".join(format_cell(value) for value in row) for row in rows)


def format_sheets(sheets: List[tuple]) -> str:
    """
    Render (sheet_name, sheet_text) pairs in workbook order

    Example:
        >>> format_sheets([("Q1", "a\\tb")])
        'Sheet: Q1\\na\\tb\\n\\n'
    """
    return "".join(f"Sheet: {name}\n{text}\n\n" for name, text in sheets)


def csv_to_display_text(text: str) -> str:
    """
    Replace each comma with ' | ', line by line

    No quoting rules are applied; a quoted field containing a comma is split
    like any other.

    Example:
        >>> csv_to_display_text("a,b,c")
        'a | b | c'
    """
    return "\n".join(" | ".join(line.split(",")) for line in text.split("\n"))


def decode_text(data: bytes) -> str:
    """UTF-8 decode, dropping a leading BOM and replacing undecodable bytes"""
    return data.decode("utf-8-sig", errors="replace")


class WordDocumentExtractor:
    """Raw paragraph text from .docx files; styling is discarded"""

    name = "word-document"

    def extract(self, data: bytes, extension: str = ".docx") -> ExtractionOutcome:
        if extension == ".doc":
            logger.warning("Rejected legacy .doc upload")
            return ExtractionFailure(
                kind=ErrorKind.UNSUPPORTED_FORMAT,
                message=LEGACY_DOC_MESSAGE,
                http_status=422,
                suggestion="Open the file in Word and save it as .docx."
            )

        try:
            document = Document(io.BytesIO(data))
        except Exception as e:
            logger.error(f"Word document parse failed: {type(e).__name__}: {str(e)}")
            return classify_error(e, unknown_message=DOCUMENT_FAILED_MESSAGE)

        paragraphs = [paragraph.text for paragraph in document.paragraphs]
        logger.info(f"✓ Extracted {len(paragraphs)} paragraphs from Word document")
        return _checked("\n\n".join(paragraphs))


class SpreadsheetExtractor:
    """Text of every sheet, in workbook order"""

    name = "spreadsheet"

    def extract(self, data: bytes, extension: str = ".xlsx") -> ExtractionOutcome:
        try:
            if extension == ".xls":
                sheets = self._read_xls(data)
            else:
                sheets = self._read_xlsx(data)
        except Exception as e:
            logger.error(f"Spreadsheet parse failed: {type(e).__name__}: {str(e)}")
            return classify_error(e, unknown_message=SPREADSHEET_FAILED_MESSAGE)

        if not any(text.strip() for _, text in sheets):
            # Sheet headers alone do not count as text
            logger.warning("Spreadsheet has no cell content")
            return _no_text()

        logger.info(f"✓ Extracted {len(sheets)} sheets")
        return _checked(format_sheets(sheets), metadata={"sheets": [name for name, _ in sheets]})

    @staticmethod
    def _read_xlsx(data: bytes) -> List[tuple]:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
        try:
            # Chart sheets hold no cells and are left out of `worksheets`
            return [
                (sheet.title, rows_to_text(sheet.iter_rows(values_only=True)))
                for sheet in workbook.worksheets
            ]
        finally:
            workbook.close()

    @staticmethod
    def _read_xls(data: bytes) -> List[tuple]:
        workbook = xlrd.open_workbook(file_contents=data)
        sheets = []
        for name in workbook.sheet_names():
            sheet = workbook.sheet_by_name(name)
            rows = (sheet.row_values(row_index) for row_index in range(sheet.nrows))
            sheets.append((name, rows_to_text(rows)))
        return sheets


class PlainTextExtractor:
    """Plain text and CSV uploads"""

    name = "plain-text"

    def extract(self, data: bytes, extension: str = ".txt") -> ExtractionOutcome:
        text = decode_text(data)
        if extension == ".csv":
            text = csv_to_display_text(text)
        return _checked(text)
