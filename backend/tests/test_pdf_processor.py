"""
Unit Tests for the PDF Strategy Chain

Tests cover:
- Primary text-layer extraction
- Blank documents (scanned PDFs) stop the chain
- Password protection stops the chain
- Page-by-page fallback and its page headers
- Fallback failure classification
- Real PDFs parsed by pdfplumber and pypdf
"""

import pytest
from unittest.mock import MagicMock

from app.models.extraction import ExtractionFailure, ExtractionResult
from app.models.schemas import ErrorKind, ExtractionMethod
from app.services.pdf_processor import (
    NO_TEXT_MESSAGE,
    PageByPageStrategy,
    PDFExtractionChain,
    TextLayerStrategy,
    format_pages,
)


def _chain(parser, page_reader=None):
    page_reader = page_reader or MagicMock(return_value=["unused"])
    return PDFExtractionChain([
        TextLayerStrategy(parser=parser),
        PageByPageStrategy(page_reader=page_reader),
    ])


class TestFormatPages:

    def test_headers_precede_each_page(self):
        assert format_pages(["A", "B"]) == "--- Page 1 ---\nA\n--- Page 2 ---\nB"

    def test_empty_page_keeps_header(self):
        assert format_pages(["", "B"]) == "--- Page 1 ---\n\n--- Page 2 ---\nB"


class TestPDFExtractionChain:

    def test_primary_success(self):
        parser = MagicMock(return_value={"text": "Chapter 1", "numpages": 3, "info": {"Title": "Bio"}})
        page_reader = MagicMock()

        outcome = _chain(parser, page_reader).extract(b"%PDF")

        assert isinstance(outcome, ExtractionResult)
        assert outcome.text == "Chapter 1"
        assert outcome.page_count == 3
        assert outcome.info == {"Title": "Bio"}
        assert outcome.source_method == ExtractionMethod.PRIMARY
        page_reader.assert_not_called()

    def test_blank_text_stops_chain(self):
        parser = MagicMock(return_value={"text": "   \n", "numpages": 4, "info": {}})
        page_reader = MagicMock()

        outcome = _chain(parser, page_reader).extract(b"%PDF")

        assert isinstance(outcome, ExtractionFailure)
        assert outcome.kind == ErrorKind.NO_TEXT_CONTENT
        assert outcome.http_status == 422
        assert outcome.pages == 4
        assert outcome.message == NO_TEXT_MESSAGE
        page_reader.assert_not_called()

    def test_password_protected_stops_chain(self):
        parser = MagicMock(side_effect=Exception("password required"))
        page_reader = MagicMock()

        outcome = _chain(parser, page_reader).extract(b"%PDF")

        assert outcome.kind == ErrorKind.PASSWORD_PROTECTED
        assert outcome.http_status == 403
        page_reader.assert_not_called()

    def test_parser_failure_falls_back_page_by_page(self):
        parser = MagicMock(side_effect=Exception("unexpected token"))
        page_reader = MagicMock(return_value=["A", "B"])

        outcome = _chain(parser, page_reader).extract(b"%PDF")

        assert isinstance(outcome, ExtractionResult)
        assert outcome.text == "--- Page 1 ---\nA\n--- Page 2 ---\nB"
        assert outcome.page_count == 2
        assert outcome.source_method == ExtractionMethod.FALLBACK
        page_reader.assert_called_once_with(b"%PDF")

    def test_fallback_failure_is_classified(self):
        parser = MagicMock(side_effect=Exception("unexpected token"))
        page_reader = MagicMock(side_effect=Exception("Invalid PDF structure"))

        outcome = _chain(parser, page_reader).extract(b"%PDF")

        assert outcome.kind == ErrorKind.CORRUPTED
        assert outcome.http_status == 422
        assert outcome.method == "pdfjs"
        assert outcome.original_error == "Invalid PDF structure"

    def test_fallback_unknown_failure_is_500(self):
        parser = MagicMock(side_effect=Exception("unexpected token"))
        page_reader = MagicMock(side_effect=Exception("out of cheese"))

        outcome = _chain(parser, page_reader).extract(b"%PDF")

        assert outcome.kind == ErrorKind.UNKNOWN
        assert outcome.http_status == 500

    def test_fallback_blank_pages(self):
        parser = MagicMock(side_effect=Exception("unexpected token"))
        page_reader = MagicMock(return_value=["", "  "])

        outcome = _chain(parser, page_reader).extract(b"%PDF")

        assert outcome.kind == ErrorKind.NO_TEXT_CONTENT
        assert outcome.pages == 2
        assert outcome.method == "pdfjs"


class TestRealDocuments:
    """End-to-end against generated PDFs"""

    def test_text_pdf(self, text_pdf_bytes):
        outcome = PDFExtractionChain().extract(text_pdf_bytes)

        assert isinstance(outcome, ExtractionResult)
        assert "Photosynthesis basics" in outcome.text
        assert "Light reactions" in outcome.text
        assert outcome.page_count == 2
        assert outcome.source_method == ExtractionMethod.PRIMARY

    def test_blank_pdf(self, blank_pdf_bytes):
        outcome = PDFExtractionChain().extract(blank_pdf_bytes)

        assert outcome.kind == ErrorKind.NO_TEXT_CONTENT
        assert outcome.pages == 2

    def test_encrypted_pdf(self, encrypted_pdf_bytes):
        outcome = PDFExtractionChain().extract(encrypted_pdf_bytes)

        assert outcome.kind == ErrorKind.PASSWORD_PROTECTED
        assert outcome.http_status == 403

    def test_garbage_bytes_fail_without_raising(self):
        outcome = PDFExtractionChain().extract(b"not a pdf at all")

        assert isinstance(outcome, ExtractionFailure)
        assert outcome.http_status in (422, 500)

    def test_deterministic(self, text_pdf_bytes):
        chain = PDFExtractionChain()
        assert chain.extract(text_pdf_bytes).text == chain.extract(text_pdf_bytes).text


@pytest.mark.parametrize("pages", [["only page"], ["one", "two", "three"]])
def test_page_reader_counts_pages(pdf_factory, pages):
    outcome = PageByPageStrategy().extract(pdf_factory(pages))

    assert outcome.page_count == len(pages)
    for number, text in enumerate(pages, start=1):
        assert f"--- Page {number} ---" in outcome.text
        assert text in outcome.text
