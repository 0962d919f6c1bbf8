"""Utilities package - Helper functions"""
from app.utils.validators import (
    validate_upload,
    is_missing,
    missing_file,
    ACCEPTED_EXTENSIONS,
    SUPPORTED_IMAGE_TYPES
)

__all__ = [
    "validate_upload",
    "is_missing",
    "missing_file",
    "ACCEPTED_EXTENSIONS",
    "SUPPORTED_IMAGE_TYPES"
]
