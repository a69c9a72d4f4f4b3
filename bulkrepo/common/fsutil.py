"""Atomic file replacement helpers.

Files are written to a temporary sibling and renamed over the target, so a
reader never observes a half-written index or package.
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Callable, BinaryIO


def _replace_with(path: Path, fill: Callable[[BinaryIO], None]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="wb", delete=False, dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
    ) as tmp:
        tmp_path = tmp.name
        try:
            fill(tmp)
            tmp.flush()
            os.fsync(tmp.fileno())
        except BaseException:
            tmp.close()
            os.unlink(tmp_path)
            raise
    os.chmod(tmp_path, 0o644)
    os.replace(tmp_path, path)


def write_atomic(path: Path, data: bytes) -> None:
    """Replace ``path`` with ``data``.

    Args:
        path: Destination file, parent directories are created
        data: Full file content
    """
    _replace_with(Path(path), lambda f: f.write(data))


def copy_atomic(source: Path, path: Path) -> None:
    """Replace ``path`` with a copy of ``source``.

    Args:
        source: File to copy from
        path: Destination file, parent directories are created
    """

    def fill(dest: BinaryIO) -> None:
        with open(source, "rb") as src:
            shutil.copyfileobj(src, dest)

    _replace_with(Path(path), fill)
