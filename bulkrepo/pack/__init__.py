"""Reproducible package building.

Provides the tar entry encoder, an ar container writer and the Debian
package builder that combines them.
"""

from .ar import write_ar
from .deb import build_deb
from .tar import ArchiveWriter

__all__ = [
    "ArchiveWriter",
    "build_deb",
    "write_ar",
]
