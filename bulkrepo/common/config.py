"""Configuration management for bulkrepo.

Handles loading and validation of the YAML configuration file (``bulk.yaml``)
that describes the package to build and the repositories to publish into.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .errors import ConfigParseError


DEFAULT_CONFIG_PATH = "bulk.yaml"


class RepositoryKind(Enum):
    """Kind of repository a configuration entry publishes into."""

    DEBIAN = "debian"
    HTML_LINKS = "html-links"


@dataclass
class RepositoryConfig:
    """Configuration for a single target repository."""

    kind: RepositoryKind
    match_version: Optional[str] = None
    skip_version: Optional[str] = None
    # Debian
    suite: Optional[str] = None
    component: Optional[str] = None
    add_empty_i386_repo: bool = False
    # HtmlLinks
    index: Optional[str] = None
    files: Optional[str] = None


@dataclass
class PackageSpec:
    """Package description used when building a package."""

    name: str
    architecture: str = "all"
    short_description: str = ""
    long_description: str = ""
    depends: List[str] = field(default_factory=list)
    maintainer: Optional[str] = None


@dataclass
class BulkConfig:
    """Top-level configuration for bulkrepo."""

    metadata: Optional[PackageSpec] = None
    repositories: List[RepositoryConfig] = field(default_factory=list)


def _get(config_dict: Dict[str, Any], key: str, default: Any = None) -> Any:
    """Look a key up by its hyphenated name, falling back to underscores."""
    if key in config_dict:
        return config_dict[key]
    return config_dict.get(key.replace("-", "_"), default)


def _optional_str(config_dict: Dict[str, Any], key: str) -> Optional[str]:
    value = _get(config_dict, key)
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        raise TypeError(f"{key} must be a string, got {type(value).__name__}")
    return str(value)


def parse_repository_config(repo_dict: Dict[str, Any]) -> RepositoryConfig:
    """Parse a repository configuration dictionary.

    Suite and component are not checked here: a Debian entry without them
    is only an error once packages are routed to it.

    Args:
        repo_dict: Repository configuration dictionary

    Returns:
        RepositoryConfig instance

    Raises:
        TypeError: If the entry is not a mapping or a field has a wrong type
        ValueError: If the repository kind is missing or unknown
    """
    if not isinstance(repo_dict, dict):
        raise TypeError(
            f"repository entry must be a mapping, got {type(repo_dict).__name__}"
        )

    kind_name = repo_dict.get("kind")
    if kind_name is None:
        raise ValueError("repository entry has no kind")
    try:
        kind = RepositoryKind(str(kind_name).replace("_", "-"))
    except ValueError:
        known = ", ".join(k.value for k in RepositoryKind)
        raise ValueError(
            f"unknown repository kind {kind_name!r} (expected one of: {known})"
        ) from None

    return RepositoryConfig(
        kind=kind,
        match_version=_optional_str(repo_dict, "match-version"),
        skip_version=_optional_str(repo_dict, "skip-version"),
        suite=_optional_str(repo_dict, "suite"),
        component=_optional_str(repo_dict, "component"),
        add_empty_i386_repo=bool(_get(repo_dict, "add-empty-i386-repo", False)),
        index=_optional_str(repo_dict, "index"),
        files=_optional_str(repo_dict, "files"),
    )


def parse_package_spec(metadata_dict: Dict[str, Any]) -> PackageSpec:
    """Parse the ``metadata`` section describing the package to build.

    Args:
        metadata_dict: Metadata configuration dictionary

    Returns:
        PackageSpec instance
    """
    if not isinstance(metadata_dict, dict):
        raise TypeError(
            f"metadata must be a mapping, got {type(metadata_dict).__name__}"
        )
    name = metadata_dict.get("name")
    if not name:
        raise ValueError("metadata.name is required")

    depends = _get(metadata_dict, "depends", []) or []
    if isinstance(depends, str):
        depends = [d.strip() for d in depends.split(",") if d.strip()]

    return PackageSpec(
        name=str(name),
        architecture=str(_get(metadata_dict, "architecture", "all")),
        short_description=str(_get(metadata_dict, "short-description", "")),
        long_description=str(_get(metadata_dict, "long-description", "")),
        depends=[str(d) for d in depends],
        maintainer=_optional_str(metadata_dict, "maintainer"),
    )


def parse_config(config_dict: Dict[str, Any]) -> BulkConfig:
    """Parse the full configuration dictionary.

    Args:
        config_dict: Full configuration dictionary

    Returns:
        BulkConfig instance
    """
    metadata = None
    if config_dict.get("metadata") is not None:
        metadata = parse_package_spec(config_dict["metadata"])

    repositories = config_dict.get("repositories") or []
    if not isinstance(repositories, list):
        raise TypeError(
            f"repositories must be a list, got {type(repositories).__name__}"
        )

    return BulkConfig(
        metadata=metadata,
        repositories=[parse_repository_config(r) for r in repositories],
    )


def load_config(config_path: Union[str, Path] = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
        TypeError: If the document root is not a mapping
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with config_file.open("r") as f:
        config = yaml.safe_load(f)

    if config is None:
        config = {}

    if not isinstance(config, dict):
        raise TypeError(
            f"Configuration root must be a mapping, got {type(config).__name__}"
        )

    return _expand_env_vars(config)


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand environment variables in configuration.

    Args:
        obj: Configuration object (dict, list, str, etc.)

    Returns:
        Configuration with expanded environment variables
    """
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        return os.path.expandvars(obj)
    else:
        return obj


def load_typed_config(config_path: Union[str, Path] = DEFAULT_CONFIG_PATH) -> BulkConfig:
    """Load and parse configuration into typed dataclasses.

    Args:
        config_path: Path to configuration file

    Returns:
        BulkConfig instance

    Raises:
        ConfigParseError: If the file is missing, unreadable or malformed
    """
    try:
        return parse_config(load_config(config_path))
    except (OSError, yaml.YAMLError, TypeError, ValueError) as e:
        raise ConfigParseError(f"can't parse config {str(config_path)!r}: {e}") from e
