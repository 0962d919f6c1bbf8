"""
Application Configuration Management

This module manages all application settings using Pydantic BaseSettings.
Configuration can be loaded from environment variables or .env file.

Responsibilities:
- Load and validate environment variables
- Provide typed configuration access
- Manage the OCR provider credential and endpoint
- Configure per-category upload ceilings
- Configure monitoring retention and alert thresholds
"""

from pydantic_settings import BaseSettings
from typing import Dict, List


MEGABYTE = 1024 * 1024


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # API Configuration
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Upload ceilings per file category (MB)
    MAX_PDF_SIZE_MB: float = 10
    MAX_IMAGE_SIZE_MB: float = 10
    MAX_OFFICE_SIZE_MB: float = 15
    MAX_SPREADSHEET_SIZE_MB: float = 15
    MAX_TEXT_SIZE_MB: float = 15

    # OpenRouter (vision OCR)
    OPENROUTER_API_KEY: str = ""
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    OCR_MODEL: str = "mistralai/mistral-small-3.2-24b-instruct:free"
    OCR_MAX_TOKENS: int = 4000
    OCR_TEMPERATURE: float = 0.1
    OCR_TIMEOUT: int = 120  # transport-level, seconds
    APP_URL: str = "http://localhost:3000"
    APP_TITLE: str = "Test Buddy - Image OCR"

    # Monitoring
    MONITORING_MAX_SAMPLES: int = 10000
    MONITORING_MAX_SNAPSHOTS: int = 1000
    MONITORING_MAX_ALERTS: int = 500

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    class Config:
        env_file = ".env"
        case_sensitive = True

    def size_limits(self) -> Dict[str, int]:
        """Byte ceilings keyed by file category value"""
        return {
            "pdf": int(self.MAX_PDF_SIZE_MB * MEGABYTE),
            "image": int(self.MAX_IMAGE_SIZE_MB * MEGABYTE),
            "office": int(self.MAX_OFFICE_SIZE_MB * MEGABYTE),
            "spreadsheet": int(self.MAX_SPREADSHEET_SIZE_MB * MEGABYTE),
            "text": int(self.MAX_TEXT_SIZE_MB * MEGABYTE),
        }


# Global settings instance
settings = Settings()
