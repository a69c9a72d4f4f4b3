"""Common utilities for bulkrepo."""

from .logger import setup_logger, get_logger
from .config import load_config, load_typed_config
from .errors import (
    BulkError,
    ConfigParseError,
    ConflictError,
    IndexReadError,
    MetadataExtractionError,
    MissingRequiredField,
    RegexCompileError,
)

__all__ = [
    "BulkError",
    "ConfigParseError",
    "ConflictError",
    "IndexReadError",
    "MetadataExtractionError",
    "MissingRequiredField",
    "RegexCompileError",
    "get_logger",
    "load_config",
    "load_typed_config",
    "setup_logger",
]
