"""Base classes for package format handlers.

Defines the interface that all package format handlers must implement,
along with the metadata record the repository engine consumes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List


def package_filename(name: str, version: str, architecture: str) -> str:
    """Return ``name_version_arch.deb`` with any version epoch left out."""
    epoch, sep, rest = version.partition(":")
    return f"{name}_{rest if sep else epoch}_{architecture}.deb"


@dataclass(frozen=True)
class PackageMetadata:
    """Metadata of one package file, as read from the package itself.

    ``fields`` holds the control fields in the order the package declares
    them; the checksums describe the package file at ``path``.
    """

    name: str
    version: str
    architecture: str
    path: Path
    size: int = 0
    md5sum: str = ""
    sha1: str = ""
    sha256: str = ""
    fields: Dict[str, str] = field(default_factory=dict, compare=False, hash=False)

    @property
    def arch(self) -> str:
        """Short alias for ``architecture``."""
        return self.architecture

    @property
    def filename(self) -> str:
        """Canonical file name of the package in a repository."""
        return package_filename(self.name, self.version, self.architecture)

    def get_package_key(self) -> str:
        """Get a unique key for this package.

        Returns:
            ``name_version_arch`` string
        """
        return f"{self.name}_{self.version}_{self.architecture}"


class PackageFormat(ABC):
    """Abstract base class for package format handlers.

    Each format handler must implement methods for:
    - Detecting if a file is of this format
    - Parsing package metadata
    """

    @property
    @abstractmethod
    def format_name(self) -> str:
        """Return the format identifier (e.g., 'deb')."""
        pass

    @property
    @abstractmethod
    def file_extensions(self) -> List[str]:
        """Return supported file extensions (e.g., ['.deb'])."""
        pass

    @abstractmethod
    def detect(self, path: Path) -> bool:
        """Detect if a file is of this format.

        Args:
            path: Path to the package file

        Returns:
            True if file is of this format
        """
        pass

    @abstractmethod
    def parse_metadata(self, path: Path) -> PackageMetadata:
        """Parse package metadata.

        Args:
            path: Path to the package file

        Returns:
            PackageMetadata with parsed information

        Raises:
            MetadataExtractionError: If parsing fails
        """
        pass

