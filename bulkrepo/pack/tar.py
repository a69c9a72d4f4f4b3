"""Reproducible tar archive writer.

Entries carry only what a package needs: name, type, size, permission bits
and a caller supplied mtime. Owners are always root (uid/gid 0, no names)
and the file's own modification time is never used, so two builds of the
same tree produce byte-identical archives.
"""

import io
import os
import stat
import tarfile
from pathlib import Path
from typing import BinaryIO, Optional, Union

from ..common.logger import get_logger

logger = get_logger("bulkrepo.pack.tar")

PathLike = Union[str, Path]

BLOB_MODE = 0o644


class ArchiveWriter:
    """Append-only GNU tar stream over any writable byte sink.

    The sink is only written to sequentially, so sockets and pipes work as
    well as files and in-memory buffers. The sink is not closed by
    :meth:`close`.
    """

    def __init__(self, fileobj: BinaryIO):
        self._tar = tarfile.open(
            fileobj=fileobj, mode="w|", format=tarfile.GNU_FORMAT
        )

    def __enter__(self) -> "ArchiveWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Write the end-of-archive marker."""
        self._tar.close()

    def _header(self, name: PathLike, mtime: int, entry_type: bytes) -> tarfile.TarInfo:
        info = tarfile.TarInfo(os.fsdecode(name))
        info.type = entry_type
        info.mtime = mtime
        info.uid = info.gid = 0
        info.uname = info.gname = ""
        return info

    def _append(self, info: tarfile.TarInfo, payload: Optional[BinaryIO] = None) -> None:
        # tarfile computes the header checksum after all fields are set
        self._tar.addfile(info, payload)

    def append_blob(self, name: PathLike, mtime: int, data: bytes) -> None:
        """Append a regular file entry holding ``data``.

        The mode is always 0644, this is meant for generated content rather
        than copies of files on disk.

        Args:
            name: Entry name inside the archive
            mtime: Modification time stored in the header
            data: File content
        """
        info = self._header(name, mtime, tarfile.REGTYPE)
        info.size = len(data)
        info.mode = BLOB_MODE
        self._append(info, io.BytesIO(data))

    def append_file_at(self, base_dir: PathLike, path: PathLike, mtime: int) -> None:
        """Append the filesystem object at ``base_dir/path`` as entry ``path``.

        Regular files, symlinks and directories are stored with their own
        permission bits. Symlinks are always preceded by a GNU long-link
        entry carrying the raw target bytes. Anything else (devices, fifos,
        sockets) is silently skipped.

        Args:
            base_dir: Directory the entry name is relative to
            path: Entry name, also the path relative to ``base_dir``
            mtime: Modification time stored in every header

        Raises:
            OSError: If the object cannot be inspected or read, or the sink
                cannot be written
        """
        fullpath = os.path.join(os.fsencode(base_dir), os.fsencode(path))
        st = os.lstat(fullpath)
        mode = stat.S_IMODE(st.st_mode)

        if stat.S_ISREG(st.st_mode):
            info = self._header(path, mtime, tarfile.REGTYPE)
            info.size = st.st_size
            info.mode = mode
            with open(fullpath, "rb") as f:
                self._append(info, f)
        elif stat.S_ISLNK(st.st_mode):
            target = os.readlink(fullpath)

            longlink = self._header(path, mtime, tarfile.GNUTYPE_LONGLINK)
            longlink.size = len(target)
            longlink.mode = 0
            self._append(longlink, io.BytesIO(target))

            info = self._header(path, mtime, tarfile.SYMTYPE)
            info.size = 0
            info.mode = mode
            self._append(info)
        elif stat.S_ISDIR(st.st_mode):
            info = self._header(path, mtime, tarfile.DIRTYPE)
            info.size = 0
            info.mode = mode
            self._append(info)
        else:
            logger.debug(f"Skipping special file {os.fsdecode(fullpath)}")
