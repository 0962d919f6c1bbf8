"""
OpenRouter Client for Vision Model Calls

This module provides a client for the OpenRouter chat-completions API, which
fronts hosted vision-capable LLMs. It is used for image OCR.

API Reference:
- POST {base_url}/chat/completions
- Request: {"model": "...", "messages": [...], "max_tokens": 4000, "temperature": 0.1}
- Response: {"choices": [{"message": {"content": "..."}}], ...}

Example Usage:
    >>> client = OpenRouterClient(OpenRouterConfig(api_key="sk-or-..."))
    >>> text = client.chat_completion(messages, max_tokens=4000, temperature=0.1)
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests
from requests.exceptions import RequestException, Timeout, ConnectionError

logger = logging.getLogger(__name__)


@dataclass
class OpenRouterConfig:
    """
    Configuration for the OpenRouter client.

    Attributes:
        api_key: Bearer credential. An empty key means OCR is not configured.
        base_url: API root (default: https://openrouter.ai/api/v1)
        model_name: Vision model identifier
        timeout: Transport timeout in seconds; the only timeout applied
        referer: Sent as HTTP-Referer for OpenRouter app attribution
        title: Sent as X-Title for OpenRouter app attribution
    """
    api_key: str = ""
    base_url: str = "https://openrouter.ai/api/v1"
    model_name: str = "mistralai/mistral-small-3.2-24b-instruct:free"
    timeout: int = 120
    referer: str = "http://localhost:3000"
    title: str = "Test Buddy - Image OCR"


class OpenRouterClientError(Exception):
    """Base exception for OpenRouter client errors."""
    pass


class OpenRouterConfigurationError(OpenRouterClientError):
    """Raised when the client has no API key."""
    pass


class OpenRouterConnectionError(OpenRouterClientError):
    """Raised when the API cannot be reached."""
    pass


class OpenRouterTimeoutError(OpenRouterClientError):
    """Raised when the request times out."""
    pass


class OpenRouterResponseError(OpenRouterClientError):
    """Raised on a non-2xx status or an unparseable body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class OpenRouterClient:
    """
    Client for the OpenRouter chat-completions endpoint.

    This client handles:
    - Bearer authentication and attribution headers
    - A single blocking round trip per call (no retries)
    - Transport timeout handling
    - Mapping transport and HTTP failures onto OpenRouterClientError subclasses

    Example:
        >>> client = OpenRouterClient(OpenRouterConfig(api_key="sk-or-..."))
        >>> client.chat_completion([{"role": "user", "content": "Hi"}])
    """

    def __init__(self, config: Optional[OpenRouterConfig] = None):
        """
        Initialize OpenRouter client.

        Args:
            config: Configuration object. Uses defaults if None.
        """
        self.config = config or OpenRouterConfig()
        self.completions_url = f"{self.config.base_url.rstrip('/')}/chat/completions"

        logger.info(
            f"Initialized OpenRouterClient with model '{self.config.model_name}' "
            f"(configured: {self.is_configured})"
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.config.api_key)

    def chat_completion(
        self,
        messages: List[Dict[str, Any]],
        max_tokens: int = 4000,
        temperature: float = 0.1
    ) -> str:
        """
        Send one chat-completions request and return the first choice's content.

        Args:
            messages: Chat messages in OpenAI format
            max_tokens: Generation ceiling
            temperature: Sampling temperature

        Returns:
            str: Message content of the first choice, "" when the model
                 returned nothing

        Raises:
            OpenRouterConfigurationError: No API key; raised before any network call
            OpenRouterConnectionError: Cannot connect to the API
            OpenRouterTimeoutError: Request timed out
            OpenRouterResponseError: Non-2xx status or invalid body
        """
        if not self.is_configured:
            raise OpenRouterConfigurationError("OPENROUTER_API_KEY is not set")

        payload = {
            "model": self.config.model_name,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        logger.debug(
            f"Sending request to OpenRouter: model={self.config.model_name}, "
            f"messages={len(messages)}"
        )

        try:
            response = requests.post(
                self.completions_url,
                headers=self._headers(),
                json=payload,
                timeout=self.config.timeout
            )
        except Timeout as e:
            logger.error(f"OpenRouter request timed out after {self.config.timeout}s")
            raise OpenRouterTimeoutError(
                f"Request timed out (timeout: {self.config.timeout}s)"
            ) from e
        except ConnectionError as e:
            logger.error(f"Connection error: {str(e)}")
            raise OpenRouterConnectionError(
                f"Failed to connect to OpenRouter at {self.config.base_url}"
            ) from e
        except RequestException as e:
            raise OpenRouterClientError(f"HTTP request failed: {str(e)}") from e

        if not response.ok:
            # Upstream body is logged only; callers get a generic message
            logger.error(
                f"OpenRouter returned status {response.status_code}: {response.text}"
            )
            raise OpenRouterResponseError(
                f"OpenRouter returned status {response.status_code}",
                status_code=response.status_code
            )

        try:
            response_data = response.json()
        except ValueError as e:
            logger.error(f"Invalid JSON response from OpenRouter: {response.text}")
            raise OpenRouterResponseError(
                "Invalid JSON response from OpenRouter",
                status_code=response.status_code
            ) from e

        content = self._first_choice_content(response_data, response.status_code)
        if not content:
            logger.warning("OpenRouter returned empty content")
            return ""

        logger.info(f"OpenRouter returned {len(content)} chars")
        return content

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.config.referer,
            "X-Title": self.config.title,
        }

    @staticmethod
    def _first_choice_content(response_data: Any, status_code: int) -> str:
        """
        Content of the first choice of a chat completion body

        Raises:
            OpenRouterResponseError: Body is not shaped like a chat completion
        """
        if not isinstance(response_data, dict):
            raise OpenRouterResponseError(
                "Unexpected response shape from OpenRouter", status_code=status_code
            )
        choices = response_data.get("choices") or []
        if not isinstance(choices, list):
            raise OpenRouterResponseError(
                "Unexpected response shape from OpenRouter", status_code=status_code
            )
        if not choices:
            return ""

        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if message is None or not isinstance(content, (str, list, type(None))):
            raise OpenRouterResponseError(
                "Unexpected response shape from OpenRouter", status_code=status_code
            )

        # Some providers return a list of typed content parts
        if isinstance(content, list):
            content = "".join(
                part["text"] for part in content
                if isinstance(part, dict) and isinstance(part.get("text"), str)
            )
        return content or ""

    def __repr__(self) -> str:
        return (
            f"OpenRouterClient(model='{self.config.model_name}', "
            f"base_url='{self.config.base_url}')"
        )
