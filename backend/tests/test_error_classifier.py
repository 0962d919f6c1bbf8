"""
Unit Tests for Extraction Error Classification
"""

import pytest
from pdfminer.pdfdocument import PDFPasswordIncorrect
from pdfplumber.utils.exceptions import PdfminerException
from pypdf.errors import FileNotDecryptedError, PdfReadError
from xlrd import XLRDError

from app.models.schemas import ErrorKind
from app.services.error_classifier import (
    CORRUPTED_MESSAGE,
    OCR_NOT_CONFIGURED_MESSAGE,
    OCR_UNAVAILABLE_MESSAGE,
    PASSWORD_PROTECTED_MESSAGE,
    PDF_UNKNOWN_MESSAGE,
    classify_error,
    kind_from_message,
)
from app.services.openrouter_client import (
    OpenRouterConfigurationError,
    OpenRouterResponseError,
)


class TestKindFromMessage:

    @pytest.mark.parametrize("message, expected", [
        ("password required", ErrorKind.PASSWORD_PROTECTED),
        ("File is ENCRYPTED", ErrorKind.PASSWORD_PROTECTED),
        ("Invalid PDF structure", ErrorKind.CORRUPTED),
        ("stream corrupted", ErrorKind.CORRUPTED),
        ("unsupported compression", ErrorKind.UNSUPPORTED_FORMAT),
        ("something odd", ErrorKind.UNKNOWN),
        ("", ErrorKind.UNKNOWN),
    ])
    def test_keyword_rules(self, message, expected):
        assert kind_from_message(message) == expected

    def test_password_wins_over_invalid(self):
        assert kind_from_message("invalid password") == ErrorKind.PASSWORD_PROTECTED


class TestClassifyError:

    def test_password_message_maps_to_403(self):
        failure = classify_error(Exception("password required"))

        assert failure.kind == ErrorKind.PASSWORD_PROTECTED
        assert failure.http_status == 403
        assert failure.message == PASSWORD_PROTECTED_MESSAGE
        assert failure.original_error == "password required"
        assert failure.suggestion

    def test_invalid_structure_maps_to_422(self):
        failure = classify_error(Exception("Invalid PDF structure"))

        assert failure.kind == ErrorKind.CORRUPTED
        assert failure.http_status == 422
        assert failure.message == CORRUPTED_MESSAGE

    def test_unknown_uses_default_message(self):
        failure = classify_error(RuntimeError("boom"))

        assert failure.kind == ErrorKind.UNKNOWN
        assert failure.http_status == 500
        assert failure.message == PDF_UNKNOWN_MESSAGE
        assert failure.original_error == "boom"

    def test_unknown_message_override(self):
        failure = classify_error(RuntimeError("boom"), unknown_message="Failed to extract text from document.")
        assert failure.message == "Failed to extract text from document."

    def test_encrypted_workbook_message_is_format_neutral(self):
        failure = classify_error(
            XLRDError("Workbook is encrypted"),
            unknown_message="Failed to extract text from spreadsheet."
        )

        assert failure.kind == ErrorKind.PASSWORD_PROTECTED
        assert failure.http_status == 403
        assert failure.message.startswith("This file is password-protected.")
        assert "PDF" not in failure.message

    def test_typed_pypdf_password_error(self):
        failure = classify_error(FileNotDecryptedError("File has not been decrypted"))
        assert failure.kind == ErrorKind.PASSWORD_PROTECTED

    def test_typed_pypdf_read_error(self):
        failure = classify_error(PdfReadError("EOF marker not found"))
        assert failure.kind == ErrorKind.CORRUPTED

    def test_pdfminer_error_wrapped_by_pdfplumber(self):
        failure = classify_error(PdfminerException(PDFPasswordIncorrect()))

        assert failure.kind == ErrorKind.PASSWORD_PROTECTED
        assert failure.original_error == "PDFPasswordIncorrect"

    def test_chained_cause_is_inspected(self):
        try:
            try:
                raise PdfReadError("bad xref")
            except PdfReadError as inner:
                raise RuntimeError("wrapper") from inner
        except RuntimeError as outer:
            failure = classify_error(outer)

        assert failure.kind == ErrorKind.CORRUPTED

    def test_method_tag_attached(self):
        failure = classify_error(Exception("Invalid PDF structure"), method="pdfjs")
        assert failure.method == "pdfjs"

    def test_missing_configuration_is_opaque(self):
        failure = classify_error(OpenRouterConfigurationError("OPENROUTER_API_KEY is not set"))

        assert failure.kind == ErrorKind.CONFIGURATION_MISSING
        assert failure.http_status == 500
        assert failure.message == OCR_NOT_CONFIGURED_MESSAGE
        assert failure.original_error is None

    def test_upstream_error_hides_raw_text(self):
        failure = classify_error(OpenRouterResponseError("OpenRouter returned status 429", status_code=429))

        assert failure.kind == ErrorKind.UPSTREAM_UNAVAILABLE
        assert failure.message == OCR_UNAVAILABLE_MESSAGE
        assert failure.original_error is None
