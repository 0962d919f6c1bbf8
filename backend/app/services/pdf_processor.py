"""
PDF Processing Service

This module extracts the text layer of uploaded PDFs using an ordered chain
of extraction strategies.

Responsibilities:
- Full-document text extraction with metadata (using pdfplumber)
- Page-by-page fallback extraction (using pypdf)
- Detect documents without a text layer (scanned PDFs)
- Classify parser failures into user-facing errors

Chain behaviour:
    1. Primary strategy parses the whole document. Blank text is reported as
       NoTextContent and the chain stops; password protection also stops it.
    2. Any other primary failure hands over to the fallback strategy, which
       walks pages 1..N in order and prefixes each with a page header.
    3. A fallback failure is classified and returned.
"""

from typing import Any, Callable, Dict, List, Optional
import io
import logging

import pdfplumber
from pypdf import PdfReader

from app.models.extraction import ExtractionFailure, ExtractionOutcome, ExtractionResult
from app.models.schemas import ErrorKind, ExtractionMethod
from app.services.error_classifier import classify_error

logger = logging.getLogger(__name__)


# Wire tag for the page-by-page path, kept for front-end compatibility
FALLBACK_METHOD_TAG = "pdfjs"

NO_TEXT_MESSAGE = (
    "No text content found in PDF. The file may be image-based (scanned) "
    "or contain only images."
)

# Failures after which no further strategy is tried
TERMINAL_KINDS = {ErrorKind.PASSWORD_PROTECTED}


def _json_safe(value: Any) -> Any:
    """Coerce PDF info values (bytes, PDF objects, dates) into JSON types"""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _json_safe(item) for key, item in value.items()}
    return str(value)


def parse_text_layer(data: bytes) -> Dict[str, Any]:
    """
    Parse a whole PDF with pdfplumber

    Args:
        data: PDF bytes

    Returns:
        Dictionary with:
        - text (str): Text of all pages joined by blank lines
        - numpages (int): Page count
        - info (dict): Document info dictionary

    Raises:
        Exception: Whatever pdfplumber/pdfminer raise for unreadable input
    """
    with pdfplumber.open(io.BytesIO(data)) as pdf:
        page_texts = [page.extract_text() or "" for page in pdf.pages]
        return {
            "text": "\n\n".join(page_texts),
            "numpages": len(pdf.pages),
            "info": _json_safe(dict(pdf.metadata or {})),
        }


def read_pages(data: bytes) -> List[str]:
    """
    Extract text page by page with pypdf

    Args:
        data: PDF bytes

    Returns:
        List of page texts, index 0 is page 1

    Raises:
        pypdf.errors.PyPdfError: For encrypted or malformed input
    """
    reader = PdfReader(io.BytesIO(data))
    page_texts = []
    for page_number, page in enumerate(reader.pages, start=1):
        page_texts.append(page.extract_text() or "")
        logger.debug(f"Page {page_number}/{len(reader.pages)} extracted")
    return page_texts


def format_pages(page_texts: List[str]) -> str:
    """Join page texts, each preceded by a '--- Page n ---' header"""
    parts = []
    for page_number, page_text in enumerate(page_texts, start=1):
        parts.append(f"--- Page {page_number} ---")
        parts.append(page_text)
    return "\n".join(parts)


class TextLayerStrategy:
    """
    Primary strategy: parse the full document in one pass

    The parser is injectable so tests can substitute a stub for pdfplumber.
    """

    name = "text-layer"

    def __init__(self, parser: Optional[Callable[[bytes], Dict[str, Any]]] = None):
        self.parser = parser or parse_text_layer

    def extract(self, data: bytes) -> ExtractionOutcome:
        try:
            parsed = self.parser(data)
        except Exception as e:
            logger.warning(f"Primary PDF parse failed: {type(e).__name__}: {str(e)}")
            return classify_error(e)

        pages = parsed.get("numpages", 0)
        info = parsed.get("info")
        text = parsed.get("text") or ""

        if not text.strip():
            logger.info(f"Primary parse found no text in {pages} pages")
            return ExtractionFailure(
                kind=ErrorKind.NO_TEXT_CONTENT,
                message=NO_TEXT_MESSAGE,
                http_status=422,
                pages=pages,
                info=info
            )

        return ExtractionResult(
            text=text,
            page_count=pages,
            source_method=ExtractionMethod.PRIMARY,
            info=info
        )


class PageByPageStrategy:
    """
    Fallback strategy: walk pages in order and label each one

    Only used after the primary strategy failed to parse the document.
    """

    name = "page-by-page"

    def __init__(self, page_reader: Optional[Callable[[bytes], List[str]]] = None):
        self.page_reader = page_reader or read_pages

    def extract(self, data: bytes) -> ExtractionOutcome:
        try:
            page_texts = self.page_reader(data)
        except Exception as e:
            logger.error(f"Fallback PDF parse failed: {type(e).__name__}: {str(e)}")
            return classify_error(e, method=FALLBACK_METHOD_TAG)

        # Headers alone do not count as text
        if not any(page_text.strip() for page_text in page_texts):
            logger.info(f"Fallback parse found no text in {len(page_texts)} pages")
            return ExtractionFailure(
                kind=ErrorKind.NO_TEXT_CONTENT,
                message=NO_TEXT_MESSAGE,
                http_status=422,
                pages=len(page_texts),
                method=FALLBACK_METHOD_TAG
            )

        return ExtractionResult(
            text=format_pages(page_texts),
            page_count=len(page_texts),
            source_method=ExtractionMethod.FALLBACK
        )


class PDFExtractionChain:
    """
    Runs PDF strategies strictly in order until one produces text

    A semantic failure (the document parsed but holds no text) ends the
    chain, as does any failure kind in TERMINAL_KINDS. Parser failures move
    on to the next strategy; the last strategy's failure is returned.

    Example:
        >>> chain = PDFExtractionChain()
        >>> outcome = chain.extract(pdf_bytes)
        >>> if isinstance(outcome, ExtractionResult):
        ...     print(outcome.page_count)
    """

    def __init__(self, strategies: Optional[List[Any]] = None):
        """
        Initialize the chain

        Args:
            strategies: Ordered strategies, each exposing `name` and
                        `extract(bytes)`. Defaults to text layer, then page by page.
        """
        self.strategies = strategies or [TextLayerStrategy(), PageByPageStrategy()]
        logger.info(
            f"PDFExtractionChain initialized: "
            f"{' -> '.join(s.name for s in self.strategies)}"
        )

    def extract(self, data: bytes) -> ExtractionOutcome:
        """
        Extract text from PDF bytes

        Args:
            data: PDF bytes, already validated for type and size

        Returns:
            ExtractionResult on success, otherwise ExtractionFailure
        """
        outcome: Optional[ExtractionOutcome] = None

        for position, strategy in enumerate(self.strategies, start=1):
            logger.info(f"PDF strategy {position}/{len(self.strategies)}: {strategy.name}")
            outcome = strategy.extract(data)

            if isinstance(outcome, ExtractionResult):
                logger.info(
                    f"✓ {strategy.name} extracted {len(outcome.text)} chars "
                    f"from {outcome.page_count} pages"
                )
                return outcome

            if outcome.kind == ErrorKind.NO_TEXT_CONTENT or outcome.kind in TERMINAL_KINDS:
                return outcome

            logger.warning(f"{strategy.name} failed with {outcome.kind.value}")

        return outcome
