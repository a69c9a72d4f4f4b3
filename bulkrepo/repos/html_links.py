"""Static HTML index backend.

Package files are copied into a files directory and an HTML page listing a
link to every file is rendered next to them, for serving with any static
file server.
"""

import os
from pathlib import Path
from typing import Union
from urllib.parse import quote

from jinja2 import Template

from ..common.fsutil import copy_atomic, write_atomic
from ..common.logger import get_logger
from ..formats.base import PackageMetadata
from .base import PackageIndex, Repository

logger = get_logger("bulkrepo.repos.html_links")

DEFAULT_INDEX_NAME = "index.html"

INDEX_TEMPLATE = Template(
    """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
</head>
<body>
<h1>{{ title }}</h1>
<ul>
{%- for link in links %}
<li><a href="{{ link.href }}">{{ link.name }}</a></li>
{%- endfor %}
</ul>
</body>
</html>
""",
    autoescape=True,
)


class HtmlLinksIndex(PackageIndex[str]):
    """Files directory plus the HTML page linking to its packages.

    Entries are keyed by package file name; existing ``*.deb`` files in the
    files directory are part of the index from the start.
    """

    def __init__(self, base_dir: Path, index: Union[str, Path], files: Union[str, Path]):
        super().__init__()
        self.files_dir = base_dir / files
        if str(index) not in ("", "."):
            self.index_path = base_dir / index
        else:
            self.index_path = self.files_dir / DEFAULT_INDEX_NAME
        self._load()

    @property
    def location(self) -> str:
        return f"html links index {self.index_path}"

    def _load(self) -> None:
        if not self.files_dir.is_dir():
            return
        for path in self.files_dir.glob("*.deb"):
            self._entries[path.name] = path.name

    def package_key(self, pkg: PackageMetadata) -> str:
        return pkg.filename

    def make_entry(self, pkg: PackageMetadata) -> str:
        return pkg.filename

    def render(self) -> str:
        """Render the HTML page for the current entries."""
        index_dir = self.index_path.parent
        links = []
        for name in self.keys():
            href = os.path.relpath(self.files_dir / name, index_dir)
            links.append({"name": name, "href": quote(Path(href).as_posix())})
        return INDEX_TEMPLATE.render(title="Packages", links=links)

    def write(self) -> None:
        for key, pkg in self._pending.items():
            copy_atomic(pkg.path, self.files_dir / self._entries[key])
        self._pending.clear()

        write_atomic(self.index_path, self.render().encode("utf-8"))
        logger.info(f"Wrote {self.index_path} ({len(self)} packages)")


class HtmlLinksRepository(Repository[HtmlLinksIndex]):
    """Every HTML links index opened under one repository base directory."""

    def __init__(self, base_dir: Union[str, Path]):
        super().__init__()
        self.base_dir = Path(base_dir)

    def open(self, index: Union[str, Path], files: Union[str, Path]) -> HtmlLinksIndex:
        """Return the index for the (index page, files directory) pair."""
        return self._open(
            (str(index), str(files)),
            lambda: HtmlLinksIndex(self.base_dir, index, files),
        )
