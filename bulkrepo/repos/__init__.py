"""Repository backends and the engine that publishes packages into them.

Each backend kind (Debian apt repository, static HTML links page) follows
the same lifecycle: indexes are opened lazily, packages are added in
memory, and everything is persisted by a single ``write``.
"""

from .base import ConflictResolution, PackageIndex, Repository
from .debian import DebianIndex, DebianRepository
from .html_links import HtmlLinksIndex, HtmlLinksRepository
from .sync import publish_packages, repo_add

__all__ = [
    "ConflictResolution",
    "DebianIndex",
    "DebianRepository",
    "HtmlLinksIndex",
    "HtmlLinksRepository",
    "PackageIndex",
    "Repository",
    "publish_packages",
    "repo_add",
]
