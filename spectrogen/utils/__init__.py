"""
Utility modules for configuration, logging, and error handling.
"""

from spectrogen.utils.errors import (
    AnnotationError,
    ConfigurationError,
    DecodeError,
    DegenerateRangeError,
    InsufficientDataError,
    InvalidInputError,
    SpectrogramError,
)
from spectrogen.utils.logging import (
    JSONFormatter,
    configure_from_config,
    get_logger,
    setup_logging,
)
from spectrogen.utils.config import ConfigManager, load_config

__all__ = [
    "AnnotationError",
    "ConfigurationError",
    "DecodeError",
    "DegenerateRangeError",
    "InsufficientDataError",
    "InvalidInputError",
    "SpectrogramError",
    "get_logger",
    "setup_logging",
    "JSONFormatter",
    "configure_from_config",
    "ConfigManager",
    "load_config",
]
