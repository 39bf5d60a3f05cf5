"""
Custom exceptions for the Spectrogram Generator.

This module defines a hierarchy of exceptions for the signal-to-image
pipeline. Every failure is local to a single regeneration attempt.
"""

from typing import Any, Optional


class SpectrogramError(Exception):
    """Base exception for all spectrogram pipeline errors."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class DecodeError(SpectrogramError):
    """Raised when raw audio bytes cannot be interpreted as audio."""

    def __init__(self, message: str, file_path: Optional[str] = None):
        super().__init__(message, details={"file_path": file_path})
        self.file_path = file_path


class InvalidInputError(SpectrogramError):
    """Raised when a transform receives input it cannot operate on."""

    def __init__(self, message: str, value: Optional[Any] = None):
        super().__init__(message, details={"value": value})
        self.value = value


class InsufficientDataError(SpectrogramError):
    """Raised when there is nothing to analyze or the frame layout is negative."""

    def __init__(
        self,
        message: str,
        sample_count: Optional[int] = None,
        fft_size: Optional[int] = None,
        hop_size: Optional[int] = None,
    ):
        super().__init__(message)
        self.sample_count = sample_count
        self.fft_size = fft_size
        self.hop_size = hop_size
        self.details = {
            "sample_count": sample_count,
            "fft_size": fft_size,
            "hop_size": hop_size,
        }


class ConfigurationError(SpectrogramError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message)
        self.config_key = config_key
        self.details = {"config_key": config_key}


class DegenerateRangeError(SpectrogramError):
    """
    Display dB range is empty or inverted.

    Rendering tolerates this (midpoint or reversed normalization); the error is
    only raised when settings are validated in strict mode.
    """

    def __init__(self, min_db: float, max_db: float):
        super().__init__(
            f"Degenerate display range: min_db={min_db}, max_db={max_db}",
            details={"min_db": min_db, "max_db": max_db},
        )
        self.min_db = min_db
        self.max_db = max_db


class AnnotationError(SpectrogramError):
    """Raised when an annotation is malformed or cannot be found."""

    def __init__(self, message: str, annotation_id: Optional[str] = None):
        super().__init__(message)
        self.annotation_id = annotation_id
        self.details = {"annotation_id": annotation_id}
