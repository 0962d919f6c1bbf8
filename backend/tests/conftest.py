"""
Pytest Configuration and Fixtures

Shared fixtures and configuration for all tests.
"""

import io
import pytest
import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from app.models.extraction import UploadedFile  # noqa: E402


MEGABYTE = 1024 * 1024


def build_pdf(page_texts):
    """
    Build a minimal PDF with one Helvetica text line per page

    An empty string produces a page with no text layer.
    """
    page_count = len(page_texts)
    page_ids = [4 + 2 * i for i in range(page_count)]

    objects = {
        1: "<< /Type /Catalog /Pages 2 0 R >>",
        2: "<< /Type /Pages /Kids [{}] /Count {} >>".format(
            " ".join(f"{page_id} 0 R" for page_id in page_ids), page_count
        ),
        3: "<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    }
    for page_id, text in zip(page_ids, page_texts):
        stream = f"BT /F1 24 Tf 72 720 Td ({text}) Tj ET" if text else ""
        objects[page_id] = (
            "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            f"/Resources << /Font << /F1 3 0 R >> >> /Contents {page_id + 1} 0 R >>"
        )
        objects[page_id + 1] = f"<< /Length {len(stream)} >>\nstream\n{stream}\nendstream"

    output = b"%PDF-1.4\n"
    offsets = []
    for number in range(1, max(objects) + 1):
        offsets.append(len(output))
        output += f"{number} 0 obj\n{objects[number]}\nendobj\n".encode("latin-1")

    xref_offset = len(output)
    output += f"xref\n0 {len(offsets) + 1}\n0000000000 65535 f \n".encode("latin-1")
    for offset in offsets:
        output += f"{offset:010d} 00000 n \n".encode("latin-1")
    output += (
        f"trailer\n<< /Size {len(offsets) + 1} /Root 1 0 R >>\n"
        f"startxref\n{xref_offset}\n%%EOF\n"
    ).encode("latin-1")
    return output


@pytest.fixture
def pdf_factory():
    """Callable building PDF bytes from a list of page texts"""
    return build_pdf


@pytest.fixture
def text_pdf_bytes():
    return build_pdf(["Photosynthesis basics", "Light reactions"])


@pytest.fixture
def blank_pdf_bytes():
    """Two pages, no text layer (like a scanned document)"""
    return build_pdf(["", ""])


@pytest.fixture
def encrypted_pdf_bytes():
    """PDF protected with a user password"""
    from pypdf import PdfReader, PdfWriter

    reader = PdfReader(io.BytesIO(build_pdf(["Secret notes"])))
    writer = PdfWriter()
    for page in reader.pages:
        writer.add_page(page)
    writer.encrypt(user_password="secret", owner_password="owner", algorithm="RC4-128")

    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@pytest.fixture
def docx_bytes():
    from docx import Document

    document = Document()
    document.add_heading("Cell Biology", level=1)
    document.add_paragraph("Mitochondria produce ATP.")
    document.add_paragraph("Ribosomes build proteins.")

    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def xlsx_bytes():
    """Workbook with sheets 'Scores' then 'Notes'"""
    from openpyxl import Workbook

    workbook = Workbook()
    scores = workbook.active
    scores.title = "Scores"
    scores.append(["name", "score"])
    scores.append(["Ada", 95])
    notes = workbook.create_sheet("Notes")
    notes.append(["remember", "chapter 3"])

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def png_bytes():
    """PNG signature plus padding; OCR is mocked so pixels never matter"""
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def make_upload():
    """Callable building an UploadedFile"""
    def _make(filename, content=b"data", content_type="application/octet-stream"):
        return UploadedFile(filename=filename, content_type=content_type, content=content)
    return _make


@pytest.fixture
def size_limits():
    return {
        "pdf": 10 * MEGABYTE,
        "image": 10 * MEGABYTE,
        "office": 15 * MEGABYTE,
        "spreadsheet": 15 * MEGABYTE,
        "text": 15 * MEGABYTE,
    }


class FakeClock:
    """Millisecond clock advanced by hand"""

    def __init__(self, start=1_700_000_000_000):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()
