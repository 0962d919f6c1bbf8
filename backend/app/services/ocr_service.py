"""
Image OCR Service

Extracts text from JPG/PNG images by sending them to a vision model through
the OpenRouter chat-completions API.

Responsibilities:
- Encode the image as a base64 data URL
- Build the OCR prompt (system instruction + user instruction + image)
- Make exactly one upstream call per image, no retries
- Convert client errors and empty answers into ExtractionFailure values
"""

import base64
import logging
from typing import Any, Dict, List

from app.models.extraction import (
    ExtractionFailure,
    ExtractionOutcome,
    ExtractionResult,
    UploadedFile,
)
from app.models.schemas import ErrorKind
from app.services.error_classifier import classify_error
from app.services.openrouter_client import OpenRouterClient, OpenRouterClientError

logger = logging.getLogger(__name__)


OCR_SYSTEM_PROMPT = (
    "You are an OCR (Optical Character Recognition) assistant. Extract ALL text "
    "content from the provided image. Return only the extracted text, maintaining "
    "the original formatting and structure as much as possible. If there are "
    "tables, preserve them in a readable format. If there are multiple columns, "
    "indicate the column breaks. Do not add any commentary or explanations - just "
    "return the extracted text."
)

OCR_USER_PROMPT = (
    "Please extract all text from this image. Maintain formatting and structure."
)

NO_TEXT_MESSAGE = (
    "No text content found in the image. Please ensure the image contains readable text."
)
OCR_FAILED_MESSAGE = "Failed to process image. Please try again."


def build_data_url(content: bytes, content_type: str) -> str:
    """Encode image bytes as a data URL, e.g. data:image/png;base64,..."""
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{content_type};base64,{encoded}"


def build_ocr_messages(data_url: str) -> List[Dict[str, Any]]:
    return [
        {"role": "system", "content": OCR_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": [
                {"type": "text", "text": OCR_USER_PROMPT},
                {"type": "image_url", "image_url": {"url": data_url}},
            ],
        },
    ]


class ImageOCRStrategy:
    """
    OCR strategy backed by a remote vision model

    Example:
        >>> strategy = ImageOCRStrategy(OpenRouterClient(config))
        >>> outcome = strategy.extract(upload)
    """

    name = "vision-ocr"

    def __init__(
        self,
        client: OpenRouterClient,
        max_tokens: int = 4000,
        temperature: float = 0.1
    ):
        """
        Args:
            client: Configured OpenRouter client
            max_tokens: Generation ceiling for the OCR answer
            temperature: Sampling temperature, kept low for faithful transcription
        """
        self.client = client
        self.max_tokens = max_tokens
        self.temperature = temperature

    def extract(self, upload: UploadedFile) -> ExtractionOutcome:
        """
        Run OCR over one validated image

        Args:
            upload: Image upload (JPG or PNG, within the size ceiling)

        Returns:
            ExtractionResult with trimmed text, or ExtractionFailure:
            - ConfigurationMissing (500) when no API key is set
            - UpstreamUnavailable (500) on transport or HTTP failure
            - NoTextContent (400) when the model returns nothing
        """
        logger.info(
            f"Starting OCR for {upload.filename} "
            f"({upload.size} bytes, {upload.content_type})"
        )

        messages = build_ocr_messages(build_data_url(upload.content, upload.content_type))

        try:
            content = self.client.chat_completion(
                messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature
            )
        except OpenRouterClientError as e:
            logger.error(f"OCR request failed: {type(e).__name__}: {str(e)}")
            return classify_error(e, unknown_message=OCR_FAILED_MESSAGE)

        text = (content or "").strip()
        if not text:
            logger.warning(f"OCR returned no text for {upload.filename}")
            return ExtractionFailure(
                kind=ErrorKind.NO_TEXT_CONTENT,
                message=NO_TEXT_MESSAGE,
                http_status=400
            )

        logger.info(f"✓ OCR extracted {len(text)} chars from {upload.filename}")
        return ExtractionResult(
            text=text,
            metadata={"fileName": upload.filename, "fileSize": upload.size}
        )
