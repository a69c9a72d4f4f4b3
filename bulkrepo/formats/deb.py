"""Debian package (.deb) format handler.

Reads package metadata in pure Python: the ar container is walked to find
the control archive, which is opened with :mod:`tarfile` and its
``control`` file parsed.
"""

import hashlib
import io
import tarfile
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..common.errors import MetadataExtractionError
from ..common.logger import get_logger
from .base import PackageFormat, PackageMetadata

logger = get_logger("bulkrepo.formats.deb")

AR_MAGIC = b"!<arch>\n"
AR_HEADER_SIZE = 60

REQUIRED_FIELDS = ("Package", "Version", "Architecture")


def parse_control_paragraphs(content: str) -> List[Dict[str, str]]:
    """Parse RFC822-style control data into paragraphs.

    Continuation lines are kept verbatim (including their leading
    whitespace) so a paragraph can be written back unchanged.

    Args:
        content: Control file or Packages index content

    Returns:
        List of field dictionaries, one per paragraph, in input order
    """
    paragraphs = []
    current: Dict[str, str] = {}
    current_key = None

    for line in content.split("\n"):
        if not line.strip():
            # Blank line ends a paragraph
            if current:
                paragraphs.append(current)
            current = {}
            current_key = None
        elif line.startswith(" ") or line.startswith("\t"):
            if current_key:
                current[current_key] += "\n" + line.rstrip()
        elif ":" in line:
            key, value = line.split(":", 1)
            current_key = key.strip()
            current[current_key] = value.strip()

    if current:
        paragraphs.append(current)

    return paragraphs


def format_control_paragraph(fields: Dict[str, str]) -> str:
    """Render one control paragraph (without the separating blank line)."""
    return "".join(f"{key}: {value}\n" for key, value in fields.items())


class DebPackageFormat(PackageFormat):
    """Handler for Debian package format (.deb files).

    Debian packages are ar archives containing:
    - debian-binary: Version information
    - control.tar.gz/xz: Control files and maintainer scripts
    - data.tar.gz/xz/zst: Package contents
    """

    @property
    def format_name(self) -> str:
        """Return format identifier."""
        return "deb"

    @property
    def file_extensions(self) -> List[str]:
        """Return supported file extensions."""
        return [".deb", ".udeb"]

    def detect(self, path: Path) -> bool:
        """Detect if file is a Debian package.

        Checks for ar archive magic bytes and .deb extension.

        Args:
            path: Path to the file

        Returns:
            True if file is a Debian package
        """
        if not path.exists():
            return False

        try:
            with open(path, "rb") as f:
                if f.read(8) == AR_MAGIC:
                    return True
        except OSError:
            pass

        return path.suffix.lower() in self.file_extensions

    def parse_metadata(self, path: Path) -> PackageMetadata:
        """Parse package metadata from the control file.

        Args:
            path: Path to .deb file

        Returns:
            PackageMetadata with parsed information and file checksums

        Raises:
            MetadataExtractionError: If the package cannot be read or its
                control file lacks a required field
        """
        path = Path(path)
        try:
            control_name, control_tar = self._read_control_member(path)
            control = self._read_control_file(control_tar)
            size, md5sum, sha1, sha256 = self._checksums(path)
        except (OSError, tarfile.TarError, ValueError) as e:
            raise MetadataExtractionError(f"can't read package {path}: {e}") from e

        paragraphs = parse_control_paragraphs(control)
        if not paragraphs:
            raise MetadataExtractionError(f"empty control file in {path}")
        fields = paragraphs[0]

        missing = [name for name in REQUIRED_FIELDS if not fields.get(name)]
        if missing:
            raise MetadataExtractionError(
                f"control file of {path} has no {', '.join(missing)} field"
            )

        logger.debug(f"Read {control_name} from {path.name}")
        return PackageMetadata(
            name=fields["Package"],
            version=fields["Version"],
            architecture=fields["Architecture"],
            path=path,
            size=size,
            md5sum=md5sum,
            sha1=sha1,
            sha256=sha256,
            fields=fields,
        )

    def _read_control_member(self, path: Path) -> Tuple[str, bytes]:
        """Find and read the control.tar.* member of the ar container."""
        with open(path, "rb") as f:
            if f.read(len(AR_MAGIC)) != AR_MAGIC:
                raise ValueError("not an ar archive")
            while True:
                header = f.read(AR_HEADER_SIZE)
                if not header:
                    break
                if len(header) != AR_HEADER_SIZE or header[58:60] != b"`\n":
                    raise ValueError("truncated or corrupt ar member header")
                name = header[:16].decode("ascii", "replace").strip().rstrip("/")
                size = int(header[48:58].decode("ascii").strip())
                if name.startswith("control.tar"):
                    data = f.read(size)
                    if len(data) != size:
                        raise ValueError(f"truncated ar member {name}")
                    return name, data
                f.seek(size + size % 2, io.SEEK_CUR)
        raise ValueError("no control archive in package")

    def _read_control_file(self, control_tar: bytes) -> str:
        """Extract the text of ``control`` from a control archive."""
        with tarfile.open(fileobj=io.BytesIO(control_tar), mode="r:*") as tar:
            member: Optional[tarfile.TarInfo] = None
            for info in tar.getmembers():
                if info.isfile() and info.name in ("control", "./control"):
                    member = info
                    break
            if member is None:
                raise ValueError("control archive has no control file")
            extracted = tar.extractfile(member)
            return extracted.read().decode("utf-8", errors="replace")

    def _checksums(self, path: Path) -> Tuple[int, str, str, str]:
        """Compute size and md5/sha1/sha256 digests of a file."""
        md5 = hashlib.md5()
        sha1 = hashlib.sha1()
        sha256 = hashlib.sha256()
        size = 0
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(65536), b""):
                size += len(chunk)
                md5.update(chunk)
                sha1.update(chunk)
                sha256.update(chunk)
        return size, md5.hexdigest(), sha1.hexdigest(), sha256.hexdigest()
