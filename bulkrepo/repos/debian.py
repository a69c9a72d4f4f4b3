"""Debian-style (apt) repository backend.

Layout under the repository base directory::

    dists/<suite>/Release
    dists/<suite>/<component>/binary-<arch>/Packages[.gz]
    pool/<component>/<prefix>/<name>/<name>_<version>_<arch>.deb
"""

import gzip
import hashlib
import io
from email.utils import formatdate
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from ..common.config import RepositoryConfig
from ..common.errors import IndexReadError, MissingRequiredField
from ..common.fsutil import copy_atomic, write_atomic
from ..common.logger import get_logger
from ..formats.base import PackageMetadata
from ..formats.deb import format_control_paragraph, parse_control_paragraphs
from .base import PackageIndex, Repository

logger = get_logger("bulkrepo.repos.debian")

DebianKey = Tuple[str, str, str]

# Fields appended by the repository, never copied from the package itself
INDEX_FIELDS = ("Filename", "Size", "MD5sum", "SHA1", "SHA256")

RELEASE_HASHES = (
    ("MD5Sum", hashlib.md5),
    ("SHA1", hashlib.sha1),
    ("SHA256", hashlib.sha256),
)


def pool_prefix(name: str) -> str:
    """Return the pool subdirectory of a package name (``c``, ``libc``)."""
    if name.startswith("lib") and len(name) > 3:
        return name[:4]
    return name[:1]


def _gzip(data: bytes) -> bytes:
    buf = io.BytesIO()
    with gzip.GzipFile(filename="", mode="wb", fileobj=buf, mtime=0) as gz:
        gz.write(data)
    return buf.getvalue()


class DebianIndex(PackageIndex[Dict[str, str]]):
    """``Packages`` index of one suite/component/architecture."""

    def __init__(self, base_dir: Path, suite: str, component: str, arch: str):
        super().__init__()
        self.base_dir = base_dir
        self.suite = suite
        self.component = component
        self.arch = arch
        self._load()

    @property
    def location(self) -> str:
        return f"debian repository {self.suite}/{self.component}/{self.arch}"

    @property
    def index_dir(self) -> Path:
        return self.base_dir / "dists" / self.suite / self.component / f"binary-{self.arch}"

    @property
    def packages_path(self) -> Path:
        return self.index_dir / "Packages"

    def _load(self) -> None:
        """Merge the entries of an existing Packages file, if any."""
        if not self.packages_path.exists():
            return
        try:
            content = self.packages_path.read_bytes().decode("utf-8")
        except UnicodeDecodeError as e:
            raise IndexReadError(f"can't read index {self.packages_path}: {e}") from e
        for fields in parse_control_paragraphs(content):
            key = (
                fields.get("Package", ""),
                fields.get("Version", ""),
                fields.get("Architecture", ""),
            )
            self._entries[key] = fields
        logger.debug(f"Loaded {len(self._entries)} packages from {self.packages_path}")

    def pool_filename(self, pkg: PackageMetadata) -> str:
        """Path of the package file relative to the repository base."""
        return "/".join(
            ["pool", self.component, pool_prefix(pkg.name), pkg.name, pkg.filename]
        )

    def package_key(self, pkg: PackageMetadata) -> DebianKey:
        return (pkg.name, pkg.version, pkg.architecture)

    def make_entry(self, pkg: PackageMetadata) -> Dict[str, str]:
        fields = {k: v for k, v in pkg.fields.items() if k not in INDEX_FIELDS}
        fields["Filename"] = self.pool_filename(pkg)
        fields["Size"] = str(pkg.size)
        fields["MD5sum"] = pkg.md5sum
        fields["SHA1"] = pkg.sha1
        fields["SHA256"] = pkg.sha256
        return fields

    def render(self) -> str:
        """Render the Packages file content."""
        return "\n".join(
            format_control_paragraph(self._entries[key]) for key in self.keys()
        )

    def write(self) -> None:
        for key, pkg in self._pending.items():
            copy_atomic(pkg.path, self.base_dir / self._entries[key]["Filename"])
        self._pending.clear()

        data = self.render().encode("utf-8")
        write_atomic(self.packages_path, data)
        write_atomic(self.index_dir / "Packages.gz", _gzip(data))
        logger.info(f"Wrote {self.packages_path} ({len(self)} packages)")


class DebianRepository(Repository[DebianIndex]):
    """Every Debian index opened under one repository base directory."""

    def __init__(self, base_dir: Union[str, Path]):
        super().__init__()
        self.base_dir = Path(base_dir)

    def open(self, repo: RepositoryConfig, arch: str) -> DebianIndex:
        """Return the index for the repository entry's suite/component and ``arch``.

        Raises:
            MissingRequiredField: If the entry has no suite or component
        """
        if not repo.suite or not repo.component:
            raise MissingRequiredField(
                "Debian repository requires suite and component to be specified"
            )
        suite, component = repo.suite, repo.component
        return self._open(
            (suite, component, arch),
            lambda: DebianIndex(self.base_dir, suite, component, arch),
        )

    def _finish(self) -> None:
        for suite in sorted({index.suite for index in self.indexes}):
            self.write_release(suite)

    def write_release(self, suite: str, date: Optional[str] = None) -> Path:
        """Write ``dists/<suite>/Release`` covering every index of the suite.

        Args:
            suite: Suite name
            date: Release date, current time if None

        Returns:
            Path of the Release file
        """
        suite_dir = self.base_dir / "dists" / suite
        files: List[Path] = sorted(
            list(suite_dir.glob("*/binary-*/Packages"))
            + list(suite_dir.glob("*/binary-*/Packages.gz"))
        )
        components = sorted({f.parent.parent.name for f in files})
        architectures = sorted({f.parent.name[len("binary-"):] for f in files})

        lines = [
            f"Suite: {suite}",
            f"Codename: {suite}",
            f"Date: {date or formatdate(usegmt=True)}",
            f"Architectures: {' '.join(architectures)}",
            f"Components: {' '.join(components)}",
        ]
        contents = [(f.relative_to(suite_dir).as_posix(), f.read_bytes()) for f in files]
        for title, algorithm in RELEASE_HASHES:
            lines.append(f"{title}:")
            for name, data in contents:
                lines.append(f" {algorithm(data).hexdigest()} {len(data):>16} {name}")

        release = suite_dir / "Release"
        write_atomic(release, ("\n".join(lines) + "\n").encode("utf-8"))
        logger.info(f"Wrote {release}")
        return release
