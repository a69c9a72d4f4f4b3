"""Format registry and the ``gather_metadata`` entry point.

Handlers are asked in registration order whether they recognise a file's
content; when none does, the file extension decides. The module keeps one
global registry which ``gather_metadata`` fills with the built-in handlers
on first use.
"""

from pathlib import Path
from typing import Dict, List, Optional, Union

from ..common.errors import MetadataExtractionError
from ..common.logger import get_logger
from .base import PackageFormat, PackageMetadata

logger = get_logger("bulkrepo.formats.registry")


class FormatRegistry:
    """Package format handlers, by name and by file extension."""

    def __init__(self) -> None:
        self._handlers: Dict[str, PackageFormat] = {}
        self._extensions: Dict[str, str] = {}

    def register(self, handler: PackageFormat) -> None:
        """Add ``handler``, replacing a handler of the same format name."""
        name = handler.format_name
        if name in self._handlers:
            logger.warning(f"Replacing handler for format {name}")
        self._handlers[name] = handler
        for ext in handler.file_extensions:
            self._extensions[ext.lower()] = name
        logger.debug(f"Registered {name} handler for {', '.join(handler.file_extensions)}")

    def get_handler(self, format_name: str) -> Optional[PackageFormat]:
        return self._handlers.get(format_name)

    def list_formats(self) -> List[str]:
        """Registered format names, in registration order."""
        return list(self._handlers)

    def detect_format(self, path: Path) -> Optional[PackageFormat]:
        """Return the handler for the file at ``path``.

        Args:
            path: Package file

        Returns:
            Matching handler, or None if the file is missing or unknown
        """
        if not path.is_file():
            logger.debug(f"Not a file: {path}")
            return None

        for handler in self._handlers.values():
            if handler.detect(path):
                return handler

        by_extension = self._extensions.get(path.suffix.lower())
        if by_extension is not None:
            logger.debug(f"{path.name} recognised as {by_extension} by its extension")
            return self._handlers.get(by_extension)
        return None

    def read_metadata(self, path: Path) -> PackageMetadata:
        """Detect the format of ``path`` and parse its metadata.

        Raises:
            MetadataExtractionError: If the format is unknown or parsing fails
        """
        handler = self.detect_format(path)
        if handler is None:
            raise MetadataExtractionError(f"can't detect package format of {path}")
        return handler.parse_metadata(path)

    def clear(self) -> None:
        """Drop every handler (mainly for testing)."""
        self._handlers.clear()
        self._extensions.clear()


_registry = FormatRegistry()


def get_registry() -> FormatRegistry:
    """Return the global registry."""
    return _registry


def detect_format(path: Path) -> Optional[PackageFormat]:
    """Detect the format of ``path`` with the global registry."""
    return _registry.detect_format(path)


def auto_register_formats() -> None:
    """Register the built-in format handlers that are not registered yet."""
    from .deb import DebPackageFormat

    if _registry.get_handler("deb") is None:
        _registry.register(DebPackageFormat())


def gather_metadata(package_path: Union[str, Path]) -> PackageMetadata:
    """Read the metadata of one package file.

    Args:
        package_path: Path to the package file

    Returns:
        PackageMetadata of the package

    Raises:
        MetadataExtractionError: If the file is missing, of an unknown
            format, or cannot be parsed
    """
    auto_register_formats()
    metadata = _registry.read_metadata(Path(package_path))
    logger.debug(f"Read {metadata.get_package_key()} from {package_path}")
    return metadata
