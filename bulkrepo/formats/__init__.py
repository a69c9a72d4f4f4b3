"""Package format handlers.

This module reads the metadata (name, version, architecture, checksums)
the repository engine needs from package files.
"""

from .base import PackageFormat, PackageMetadata, package_filename
from .deb import DebPackageFormat
from .registry import (
    FormatRegistry,
    auto_register_formats,
    detect_format,
    gather_metadata,
    get_registry,
)

__all__ = [
    "DebPackageFormat",
    "FormatRegistry",
    "PackageFormat",
    "PackageMetadata",
    "auto_register_formats",
    "detect_format",
    "gather_metadata",
    "get_registry",
    "package_filename",
]
