"""Publish packages into the repositories listed in the configuration.

A run reads the metadata of every package first, then walks the configured
repositories in order, routes each matching package to its backend, and
finally writes every backend that was opened. Any error aborts the run;
nothing is written to disk before all packages have been routed.
"""

import re
from pathlib import Path
from typing import Iterable, List, Optional, Pattern, Sequence, Union

from ..common.config import BulkConfig, RepositoryConfig, RepositoryKind, load_typed_config
from ..common.errors import MissingRequiredField, RegexCompileError
from ..common.logger import get_logger
from ..formats.base import PackageMetadata
from ..formats.registry import gather_metadata
from .base import ConflictResolution
from .debian import DebianRepository
from .html_links import HtmlLinksRepository

logger = get_logger("bulkrepo.repos.sync")

PLACEHOLDER_ARCH = "i386"


def compile_filter(pattern: Optional[str]) -> Optional[Pattern]:
    """Compile a version filter, None when the filter is not set.

    Raises:
        RegexCompileError: If the pattern is invalid
    """
    if pattern is None:
        return None
    try:
        return re.compile(pattern)
    except re.error as e:
        raise RegexCompileError(f"invalid version pattern {pattern!r}: {e}") from e


def matches_version(
    pkg: PackageMetadata,
    match_re: Optional[Pattern],
    skip_re: Optional[Pattern],
) -> bool:
    """Whether ``pkg`` passes a repository's version filters.

    A missing match filter accepts everything, a missing skip filter
    rejects nothing.
    """
    if match_re is not None and not match_re.search(pkg.version):
        return False
    if skip_re is not None and skip_re.search(pkg.version):
        return False
    return True


def select_packages(
    repo: RepositoryConfig, packages: Iterable[PackageMetadata]
) -> List[PackageMetadata]:
    """Return the packages a repository entry accepts, in input order."""
    match_re = compile_filter(repo.match_version)
    skip_re = compile_filter(repo.skip_version)
    return [p for p in packages if matches_version(p, match_re, skip_re)]


def publish_packages(
    config: BulkConfig,
    packages: Sequence[PackageMetadata],
    repository_base: Union[str, Path],
    on_conflict: ConflictResolution = ConflictResolution.ERROR,
) -> None:
    """Add ``packages`` to every configured repository that accepts them.

    Args:
        config: Parsed configuration
        packages: Metadata of the packages to publish
        repository_base: Directory repositories are stored under
        on_conflict: Policy for packages already present

    Raises:
        RegexCompileError: If a version filter is invalid
        MissingRequiredField: If a Debian entry lacks suite or component
        ConflictError: If a package exists and the policy is ERROR
        OSError: If writing a repository fails
    """
    debian = DebianRepository(repository_base)
    html_links = HtmlLinksRepository(repository_base)

    for repo in config.repositories:
        matching = select_packages(repo, packages)
        if not matching:
            logger.info(f"No packages match {repo.kind.value} repository, skipping")
            continue

        if repo.kind is RepositoryKind.DEBIAN:
            if not repo.suite or not repo.component:
                raise MissingRequiredField(
                    "Debian repository requires suite and component to be specified"
                )
            for pkg in matching:
                debian.open(repo, pkg.arch).add_package(pkg, on_conflict)
                if repo.add_empty_i386_repo and pkg.arch != PLACEHOLDER_ARCH:
                    debian.open(repo, PLACEHOLDER_ARCH)
        elif repo.kind is RepositoryKind.HTML_LINKS:
            for pkg in matching:
                html_links.open(repo.index or "", repo.files or "").add_package(
                    pkg, on_conflict
                )

    debian.write()
    html_links.write()


def repo_add(
    config_path: Union[str, Path],
    package_paths: Sequence[Union[str, Path]],
    repository_base: Union[str, Path],
    on_conflict: ConflictResolution = ConflictResolution.ERROR,
) -> List[PackageMetadata]:
    """Read packages and publish them according to a configuration file.

    Args:
        config_path: Path to the YAML configuration
        package_paths: Package files to publish
        repository_base: Directory repositories are stored under
        on_conflict: Policy for packages already present

    Returns:
        Metadata of the published packages

    Raises:
        MetadataExtractionError: If any package cannot be read
        ConfigParseError: If the configuration cannot be parsed
    """
    packages = [gather_metadata(path) for path in package_paths]
    config = load_typed_config(config_path)
    publish_packages(config, packages, repository_base, on_conflict)
    return packages
