"""Reproducible Debian package builder.

Builds a ``.deb`` from a directory tree and a :class:`PackageSpec`. Every
timestamp in the result (ar headers, tar headers, gzip headers) is the
caller supplied mtime, so rebuilding the same tree yields the same bytes.
"""

import gzip
import hashlib
import io
import os
import stat
from pathlib import Path
from typing import Iterator, List, Tuple, Union

from ..common.config import PackageSpec
from ..common.fsutil import write_atomic
from ..common.logger import get_logger
from ..formats.base import package_filename
from .ar import write_ar
from .tar import ArchiveWriter

logger = get_logger("bulkrepo.pack.deb")

DEBIAN_BINARY = b"2.0\n"


def _raise(err: OSError) -> None:
    raise err


def iter_tree(source_dir: Union[str, Path]) -> Iterator[str]:
    """Yield entry names (``./``-prefixed) for everything under a directory.

    Entries come in sorted order with every directory before its contents.
    Symlinks to directories are yielded but not descended into.

    Raises:
        OSError: If a directory of the tree cannot be listed
    """
    yield "."
    for root, dirs, files in os.walk(source_dir, onerror=_raise):
        dirs.sort()
        rel = os.path.relpath(root, source_dir)
        prefix = "." if rel == "." else os.path.join(".", rel)
        for name in sorted(dirs + files):
            yield os.path.join(prefix, name)


def _gzip(data: bytes, mtime: int) -> bytes:
    buf = io.BytesIO()
    with gzip.GzipFile(filename="", mode="wb", fileobj=buf, mtime=mtime) as gz:
        gz.write(data)
    return buf.getvalue()


def format_description(short: str, long: str) -> str:
    """Render a control-file Description value (short line + folded body)."""
    lines = [short.strip()]
    for line in long.strip("\n").splitlines():
        lines.append(" " + (line.rstrip() if line.strip() else "."))
    return "\n".join(lines)


def render_control(spec: PackageSpec, version: str, installed_size: int) -> str:
    """Render the ``control`` file of a binary package."""
    fields = [
        ("Package", spec.name),
        ("Version", version),
        ("Architecture", spec.architecture),
    ]
    if spec.maintainer:
        fields.append(("Maintainer", spec.maintainer))
    fields.append(("Installed-Size", str(installed_size)))
    if spec.depends:
        fields.append(("Depends", ", ".join(spec.depends)))
    fields.append(
        ("Description", format_description(spec.short_description, spec.long_description))
    )
    return "".join(f"{key}: {value}\n" for key, value in fields)


def build_data_tar(source_dir: Union[str, Path], mtime: int) -> Tuple[bytes, List[str], int]:
    """Archive a directory tree.

    Returns:
        Tuple of (gzipped tar, md5sums lines, installed size in bytes)
    """
    md5sums = []
    total_size = 0
    raw = io.BytesIO()
    with ArchiveWriter(raw) as tar:
        for name in iter_tree(source_dir):
            tar.append_file_at(source_dir, name, mtime)
            full = os.path.join(source_dir, name)
            st = os.lstat(full)
            if stat.S_ISREG(st.st_mode):
                total_size += st.st_size
                with open(full, "rb") as f:
                    digest = hashlib.md5(f.read()).hexdigest()
                md5sums.append(f"{digest}  {name[2:]}\n")
    return _gzip(raw.getvalue(), mtime), md5sums, total_size


def build_deb(
    source_dir: Union[str, Path],
    spec: PackageSpec,
    dest_dir: Union[str, Path],
    version: str,
    mtime: int = 0,
) -> Path:
    """Build ``<name>_<version>_<arch>.deb`` from ``source_dir``.

    Args:
        source_dir: Root of the installed file tree
        spec: Package description
        dest_dir: Directory the package is written into
        version: Package version
        mtime: Timestamp stored in every archive header

    Returns:
        Path of the written package

    Raises:
        OSError: If the tree cannot be read or the package cannot be written
    """
    source_dir = Path(source_dir)
    if not source_dir.is_dir():
        raise NotADirectoryError(f"Package source is not a directory: {source_dir}")

    data_tar, md5sums, total_size = build_data_tar(source_dir, mtime)
    control = render_control(spec, version, (total_size + 1023) // 1024)

    raw = io.BytesIO()
    with ArchiveWriter(raw) as tar:
        tar.append_blob("./control", mtime, control.encode("utf-8"))
        tar.append_blob("./md5sums", mtime, "".join(md5sums).encode("utf-8"))
    control_tar = _gzip(raw.getvalue(), mtime)

    package = io.BytesIO()
    write_ar(
        package,
        [
            ("debian-binary", DEBIAN_BINARY),
            ("control.tar.gz", control_tar),
            ("data.tar.gz", data_tar),
        ],
        mtime,
    )

    dest = Path(dest_dir) / package_filename(spec.name, version, spec.architecture)
    write_atomic(dest, package.getvalue())
    logger.info(f"Built {dest}")
    return dest
