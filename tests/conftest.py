"""Pytest configuration and shared fixtures."""

import io
import tarfile
from pathlib import Path
from typing import Dict, Optional

import pytest
import yaml

from bulkrepo.formats.base import PackageMetadata


def create_ar_member(name: str, content: bytes) -> bytes:
    """Create an ar archive member."""
    name_padded = name.ljust(16)
    timestamp = "0".ljust(12)
    owner = "0".ljust(6)
    group = "0".ljust(6)
    mode = "100644".ljust(8)
    size_str = str(len(content)).ljust(10)
    header = f"{name_padded}{timestamp}{owner}{group}{mode}{size_str}`\n".encode()
    result = header + content
    if len(content) % 2:
        result += b"\n"  # Padding for even alignment
    return result


def create_tar(files: Dict[str, bytes], compression: str = "gz") -> bytes:
    """Create a (compressed) tar archive with the given files."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode=f"w:{compression}") as tf:
        for name, content in files.items():
            info = tarfile.TarInfo(name=name)
            info.size = len(content)
            tf.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


def control_text(name: str, version: str, arch: str) -> str:
    return (
        f"Package: {name}\n"
        f"Version: {version}\n"
        f"Architecture: {arch}\n"
        "Maintainer: Test <test@example.com>\n"
        f"Description: Test package {name}\n"
        " This is a test package.\n"
        " .\n"
        " Second paragraph.\n"
    )


@pytest.fixture
def deb_factory(tmp_path):
    """Factory for creating minimal but valid .deb files."""

    class DebFactory:
        def __init__(self, base_path: Path):
            self.base_path = base_path
            self.base_path.mkdir(parents=True, exist_ok=True)

        def create(
            self,
            name: str = "hello",
            version: str = "1.0",
            architecture: str = "amd64",
            control: Optional[str] = None,
            compression: str = "gz",
            payload: bytes = b"hello\n",
            subdir: str = "",
        ) -> Path:
            if control is None:
                control = control_text(name, version, architecture)
            ext = {"gz": ".gz", "xz": ".xz", "bz2": ".bz2"}[compression]
            content = b"!<arch>\n"
            content += create_ar_member("debian-binary", b"2.0\n")
            content += create_ar_member(
                f"control.tar{ext}",
                create_tar({"./control": control.encode()}, compression),
            )
            content += create_ar_member(
                "data.tar.gz", create_tar({"./usr/share/doc/README": payload})
            )
            directory = self.base_path / subdir
            directory.mkdir(parents=True, exist_ok=True)
            path = directory / f"{name}_{version}_{architecture}.deb"
            path.write_bytes(content)
            return path

    return DebFactory(tmp_path / "packages")


@pytest.fixture
def make_metadata(deb_factory):
    """Build PackageMetadata backed by a real package file."""
    from bulkrepo.formats.registry import gather_metadata

    def make(name="hello", version="1.0", architecture="amd64", **kwargs) -> PackageMetadata:
        return gather_metadata(deb_factory.create(name, version, architecture, **kwargs))

    return make


@pytest.fixture
def write_config(tmp_path):
    """Write a bulk.yaml from a dictionary and return its path."""

    def write(config: dict, name: str = "bulk.yaml") -> Path:
        path = tmp_path / name
        path.write_text(yaml.safe_dump(config))
        return path

    return write
