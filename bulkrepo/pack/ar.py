"""Deterministic ``ar`` container writer, as used by Debian packages."""

from typing import BinaryIO, Iterable, Tuple

AR_MAGIC = b"!<arch>\n"


def ar_member_header(name: str, size: int, mtime: int = 0) -> bytes:
    """Build the 60-byte header of one ar member.

    Owner and group are always 0 and the mode is always 100644.
    """
    if len(name) > 16:
        raise ValueError(f"ar member name too long: {name!r}")
    return (
        name.ljust(16)
        + str(mtime).ljust(12)
        + "0".ljust(6)
        + "0".ljust(6)
        + "100644".ljust(8)
        + str(size).ljust(10)
        + "`\n"
    ).encode("ascii")


def write_ar(fileobj: BinaryIO, members: Iterable[Tuple[str, bytes]], mtime: int = 0) -> None:
    """Write an ar archive holding ``members`` in the given order.

    Args:
        fileobj: Writable byte sink
        members: (name, content) pairs
        mtime: Modification time stored in every member header
    """
    fileobj.write(AR_MAGIC)
    for name, content in members:
        fileobj.write(ar_member_header(name, len(content), mtime))
        fileobj.write(content)
        if len(content) % 2:
            fileobj.write(b"\n")  # members are aligned to even offsets
