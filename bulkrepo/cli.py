"""Command line interface for bulkrepo."""

from pathlib import Path
from typing import Optional, Tuple

import click

from .common.config import DEFAULT_CONFIG_PATH, load_typed_config
from .common.errors import BulkError, MissingRequiredField
from .common.logger import setup_logger
from .pack.deb import build_deb
from .repos.base import ConflictResolution
from .repos.sync import repo_add


def _fail(err: Exception) -> None:
    click.echo(f"Error: {err}", err=True)
    raise SystemExit(1)


@click.group("bulkrepo")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False),
    envvar="BULKREPO_LOG_DIR",
    help="Also write a rotating log file into this directory",
)
def cli(verbose: bool, log_dir: Optional[str]) -> None:
    """Build reproducible packages and publish them into repositories."""
    setup_logger("bulkrepo", level="DEBUG" if verbose else "INFO", log_dir=log_dir)


@cli.command("repo-add")
@click.option(
    "-c",
    "--config",
    "config_path",
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    type=click.Path(path_type=Path),
    help="Package configuration file",
)
@click.option(
    "-D",
    "--repository-base",
    default=".",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory where repositories are stored",
)
@click.option(
    "--skip-existing",
    is_flag=True,
    help="Skip package if it's already in the repository",
)
@click.option(
    "--replace-existing",
    is_flag=True,
    help="Replace package if it's already in the repository",
)
@click.argument("packages", nargs=-1, type=click.Path(path_type=Path))
def repo_add_cmd(
    config_path: Path,
    repository_base: Path,
    skip_existing: bool,
    replace_existing: bool,
    packages: Tuple[Path, ...],
) -> None:
    """Add package files to the configured repositories."""
    if skip_existing and replace_existing:
        raise click.UsageError(
            "--skip-existing and --replace-existing are mutually exclusive"
        )
    on_conflict = ConflictResolution.ERROR
    if skip_existing:
        on_conflict = ConflictResolution.KEEP
    elif replace_existing:
        on_conflict = ConflictResolution.REPLACE

    try:
        repo_add(config_path, list(packages), repository_base, on_conflict)
    except (BulkError, OSError) as e:
        _fail(e)


@cli.command("pack")
@click.option(
    "-c",
    "--config",
    "config_path",
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    type=click.Path(path_type=Path),
    help="Package configuration file",
)
@click.option(
    "--dir",
    "source_dir",
    required=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory holding the files to package",
)
@click.option(
    "--dest-dir",
    default=".",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory the package is written into",
)
@click.option("--package-version", required=True, help="Version of the package")
@click.option(
    "--mtime",
    default=0,
    show_default=True,
    type=int,
    help="Timestamp stored for every file in the package",
)
def pack_cmd(
    config_path: Path,
    source_dir: Path,
    dest_dir: Path,
    package_version: str,
    mtime: int,
) -> None:
    """Build a reproducible Debian package from a directory."""
    try:
        config = load_typed_config(config_path)
        if config.metadata is None:
            raise MissingRequiredField(f"config {str(config_path)!r} has no metadata section")
        path = build_deb(source_dir, config.metadata, dest_dir, package_version, mtime)
    except (BulkError, OSError) as e:
        _fail(e)
    click.echo(str(path))


def main() -> None:
    """Main entry point for the bulkrepo CLI."""
    cli()


if __name__ == "__main__":
    main()
