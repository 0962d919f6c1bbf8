"""
Unit Tests for Upload Validation

Tests cover:
- Missing uploads
- PDF, image and document type checks
- Per-category size ceilings
- Check order (type before size)
"""

import pytest

from app.models.extraction import UploadedFile
from app.models.schemas import ErrorKind, FileCategory
from app.utils.validators import MEGABYTE, is_missing, validate_upload


class TestMissingFile:
    """Requests without a file"""

    def test_none_is_missing(self):
        failure = validate_upload(None, FileCategory.PDF, 10 * MEGABYTE)

        assert failure.kind == ErrorKind.NO_FILE
        assert failure.http_status == 400
        assert failure.message == "No file provided"

    def test_empty_unnamed_part_is_missing(self, make_upload):
        assert is_missing(make_upload("", content=b""))

    def test_named_empty_file_is_present(self, make_upload):
        assert not is_missing(make_upload("empty.txt", content=b""))


class TestPdfValidation:

    def test_valid_pdf(self, make_upload):
        upload = make_upload("notes.pdf", content_type="application/pdf")
        assert validate_upload(upload, FileCategory.PDF, 10 * MEGABYTE) is None

    def test_extension_is_case_insensitive(self, make_upload):
        upload = make_upload("NOTES.PDF")
        assert validate_upload(upload, FileCategory.PDF, 10 * MEGABYTE) is None

    def test_non_pdf_rejected(self, make_upload):
        failure = validate_upload(make_upload("notes.docx"), FileCategory.PDF, 10 * MEGABYTE)

        assert failure.kind == ErrorKind.INVALID_TYPE
        assert failure.http_status == 400
        assert failure.message == "File must be a PDF"

    def test_oversize_pdf_rejected(self, make_upload):
        upload = make_upload("big.pdf", content=b"x" * (10 * MEGABYTE + 1))
        failure = validate_upload(upload, FileCategory.PDF, 10 * MEGABYTE)

        assert failure.kind == ErrorKind.TOO_LARGE
        assert failure.http_status == 400
        assert failure.message == "File too large (max 10MB)"

    def test_exactly_at_limit_accepted(self, make_upload):
        upload = make_upload("edge.pdf", content=b"x" * (10 * MEGABYTE))
        assert validate_upload(upload, FileCategory.PDF, 10 * MEGABYTE) is None

    def test_type_checked_before_size(self, make_upload):
        upload = make_upload("big.txt", content=b"x" * (10 * MEGABYTE + 1))
        failure = validate_upload(upload, FileCategory.PDF, 10 * MEGABYTE)

        assert failure.kind == ErrorKind.INVALID_TYPE

    def test_declared_size_counts_when_body_unread(self):
        upload = UploadedFile("big.pdf", "application/pdf", b"", declared_size=10 * MEGABYTE + 1)
        failure = validate_upload(upload, FileCategory.PDF, 10 * MEGABYTE)

        assert failure.kind == ErrorKind.TOO_LARGE
        assert failure.message == "File too large (max 10MB)"


class TestImageValidation:

    @pytest.mark.parametrize("content_type", ["image/jpeg", "image/jpg", "image/png"])
    def test_supported_types(self, make_upload, content_type):
        upload = make_upload("photo.png", content_type=content_type)
        assert validate_upload(upload, FileCategory.IMAGE, 10 * MEGABYTE) is None

    def test_non_image_rejected(self, make_upload):
        upload = make_upload("notes.pdf", content_type="application/pdf")
        failure = validate_upload(upload, FileCategory.IMAGE, 10 * MEGABYTE)

        assert failure.message == "File must be an image"

    def test_gif_rejected(self, make_upload):
        upload = make_upload("anim.gif", content_type="image/gif")
        failure = validate_upload(upload, FileCategory.IMAGE, 10 * MEGABYTE)

        assert failure.kind == ErrorKind.INVALID_TYPE
        assert failure.message == "Unsupported image format. Please use JPG or PNG files."

    def test_oversize_image_rejected(self, make_upload):
        upload = make_upload(
            "scan.jpg", content=b"x" * (10 * MEGABYTE + 1), content_type="image/jpeg"
        )
        failure = validate_upload(upload, FileCategory.IMAGE, 10 * MEGABYTE)

        assert failure.kind == ErrorKind.TOO_LARGE
        assert failure.http_status == 400
        assert failure.message == "Image file too large. Please use images smaller than 10MB."


class TestDocumentValidation:

    def test_docx_accepted_as_office(self, make_upload):
        assert validate_upload(make_upload("a.docx"), FileCategory.OFFICE, 15 * MEGABYTE) is None

    def test_csv_accepted_as_text(self, make_upload):
        assert validate_upload(make_upload("a.csv"), FileCategory.TEXT, 15 * MEGABYTE) is None

    def test_wrong_extension_lists_accepted_types(self, make_upload):
        failure = validate_upload(make_upload("a.pdf"), FileCategory.SPREADSHEET, 15 * MEGABYTE)

        assert failure.kind == ErrorKind.INVALID_TYPE
        assert failure.message == "Unsupported file type. Accepted types: .xls, .xlsx"

    def test_office_ceiling(self, make_upload):
        upload = make_upload("a.docx", content=b"x" * (15 * MEGABYTE + 1))
        failure = validate_upload(upload, FileCategory.OFFICE, 15 * MEGABYTE)

        assert failure.message == "File too large (max 15MB)"
