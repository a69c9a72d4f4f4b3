"""Tests for routing packages into configured repositories."""

import pytest

from bulkrepo.common.config import BulkConfig, RepositoryConfig, RepositoryKind
from bulkrepo.common.errors import (
    ConfigParseError,
    ConflictError,
    MetadataExtractionError,
    MissingRequiredField,
    RegexCompileError,
)
from bulkrepo.repos.base import ConflictResolution
from bulkrepo.repos.sync import (
    compile_filter,
    matches_version,
    publish_packages,
    repo_add,
    select_packages,
)


def debian(**kwargs):
    kwargs.setdefault("suite", "stable")
    kwargs.setdefault("component", "main")
    return RepositoryConfig(kind=RepositoryKind.DEBIAN, **kwargs)


def html_links(**kwargs):
    return RepositoryConfig(kind=RepositoryKind.HTML_LINKS, **kwargs)


def binary_dirs(base):
    return sorted(p.name for p in (base / "dists" / "stable" / "main").iterdir())


class TestVersionFilters:
    """Tests for version matching."""

    def test_no_filters(self, make_metadata):
        """Test no filters accept everything."""
        assert matches_version(make_metadata(version="0.1~rc1"), None, None)

    def test_match_and_skip(self, make_metadata):
        """Test skip wins over match."""
        pkg = make_metadata(version="2.0")
        match_re = compile_filter(r"^2\.")
        assert matches_version(pkg, match_re, None)
        assert not matches_version(pkg, match_re, compile_filter(r"^2\.0$"))

    def test_match_is_unanchored(self, make_metadata):
        """Test patterns match anywhere in the version."""
        assert matches_version(make_metadata(version="1.0-rc2"), compile_filter("rc"), None)
        assert not matches_version(make_metadata(version="1.0"), compile_filter("rc"), None)

    def test_invalid_pattern(self):
        """Test an invalid pattern is reported."""
        with pytest.raises(RegexCompileError, match=r"\(unclosed"):
            compile_filter("(unclosed")

    def test_compile_none(self):
        assert compile_filter(None) is None

    def test_select_keeps_order(self, make_metadata):
        """Test selected packages keep their input order."""
        packages = [
            make_metadata("c", "1.0"),
            make_metadata("a", "2.0"),
            make_metadata("b", "1.1"),
        ]
        selected = select_packages(debian(match_version=r"^1\."), packages)
        assert [p.name for p in selected] == ["c", "b"]

    def test_select_invalid_pattern_without_packages(self):
        """Test patterns are compiled even when nothing is routed."""
        with pytest.raises(RegexCompileError):
            select_packages(debian(skip_version="["), [])


class TestPublishPackages:
    """Tests for publish_packages."""

    def test_debian_and_html(self, tmp_path, make_metadata):
        """Test one run fills every matching repository."""
        config = BulkConfig(
            repositories=[
                debian(),
                html_links(index="web/index.html", files="web/files"),
            ]
        )
        base = tmp_path / "repo"

        publish_packages(config, [make_metadata("hello", "1.0", "amd64")], base)

        assert (base / "pool" / "main" / "h" / "hello" / "hello_1.0_amd64.deb").exists()
        assert (base / "dists" / "stable" / "Release").exists()
        assert (base / "web" / "files" / "hello_1.0_amd64.deb").exists()
        assert "hello_1.0_amd64.deb" in (base / "web" / "index.html").read_text()

    def test_routing_by_version(self, tmp_path, make_metadata):
        """Test releases and prereleases go to different suites."""
        config = BulkConfig(
            repositories=[
                debian(suite="stable", skip_version="rc"),
                debian(suite="testing", match_version="rc"),
            ]
        )
        base = tmp_path / "repo"

        publish_packages(
            config,
            [make_metadata("tool", "1.0"), make_metadata("tool", "1.1-rc1")],
            base,
        )

        stable = (base / "dists" / "stable" / "main" / "binary-amd64" / "Packages").read_text()
        testing = (base / "dists" / "testing" / "main" / "binary-amd64" / "Packages").read_text()
        assert "Version: 1.0\n" in stable
        assert "1.1-rc1" not in stable
        assert "Version: 1.1-rc1\n" in testing

    def test_arch_all(self, tmp_path, make_metadata):
        """Test arch-independent packages get a binary-all index."""
        base = tmp_path / "repo"
        publish_packages(BulkConfig(repositories=[debian()]), [make_metadata(architecture="all")], base)
        assert binary_dirs(base) == ["binary-all"]

    def test_missing_suite(self, tmp_path, make_metadata):
        """Test a Debian entry without suite fails once packages match."""
        config = BulkConfig(repositories=[debian(suite=None)])
        with pytest.raises(MissingRequiredField):
            publish_packages(config, [make_metadata()], tmp_path / "repo")
        assert not (tmp_path / "repo").exists()

    def test_missing_suite_without_matches(self, tmp_path, make_metadata):
        """Test an incomplete entry is ignored when nothing matches it."""
        config = BulkConfig(repositories=[debian(suite=None, match_version="^9")])
        publish_packages(config, [make_metadata(version="1.0")], tmp_path / "repo")
        assert not (tmp_path / "repo").exists()

    def test_no_matches_opens_nothing(self, tmp_path, make_metadata):
        """Test a repository without matching packages is not written."""
        config = BulkConfig(
            repositories=[debian(match_version="^2"), html_links(files="files")]
        )
        base = tmp_path / "repo"

        publish_packages(config, [make_metadata(version="1.0")], base)

        assert not (base / "dists").exists()
        assert (base / "files" / "index.html").exists()

    def test_empty_i386_placeholder(self, tmp_path, make_metadata):
        """Test an empty i386 index is written next to amd64."""
        config = BulkConfig(repositories=[debian(add_empty_i386_repo=True)])
        base = tmp_path / "repo"

        publish_packages(config, [make_metadata(architecture="amd64")], base)

        assert binary_dirs(base) == ["binary-amd64", "binary-i386"]
        i386 = base / "dists" / "stable" / "main" / "binary-i386" / "Packages"
        assert i386.read_bytes() == b""
        assert "Architectures: amd64 i386\n" in (base / "dists" / "stable" / "Release").read_text()

    def test_i386_placeholder_with_i386_package(self, tmp_path, make_metadata):
        """Test a real i386 package is not hidden by the placeholder."""
        config = BulkConfig(repositories=[debian(add_empty_i386_repo=True)])
        base = tmp_path / "repo"

        publish_packages(
            config,
            [make_metadata(architecture="amd64"), make_metadata(architecture="i386")],
            base,
        )

        i386 = base / "dists" / "stable" / "main" / "binary-i386" / "Packages"
        assert "Architecture: i386\n" in i386.read_text()

    def test_no_placeholder_by_default(self, tmp_path, make_metadata):
        base = tmp_path / "repo"
        publish_packages(BulkConfig(repositories=[debian()]), [make_metadata()], base)
        assert binary_dirs(base) == ["binary-amd64"]

    def test_conflict_aborts_before_writing(self, tmp_path, make_metadata):
        """Test a conflict in a later repository leaves disk untouched."""
        files = tmp_path / "repo" / "files"
        files.mkdir(parents=True)
        (files / "hello_1.0_amd64.deb").write_bytes(b"published")
        config = BulkConfig(repositories=[debian(), html_links(files="files")])

        with pytest.raises(ConflictError):
            publish_packages(config, [make_metadata()], tmp_path / "repo")

        assert not (tmp_path / "repo" / "dists").exists()
        assert (files / "hello_1.0_amd64.deb").read_bytes() == b"published"

    @pytest.mark.parametrize(
        "policy,expected",
        [(ConflictResolution.KEEP, b"published"), (ConflictResolution.REPLACE, None)],
    )
    def test_conflict_policies(self, tmp_path, make_metadata, policy, expected):
        """Test KEEP and REPLACE for a file already published."""
        files = tmp_path / "repo" / "files"
        files.mkdir(parents=True)
        (files / "hello_1.0_amd64.deb").write_bytes(b"published")
        pkg = make_metadata()

        publish_packages(
            BulkConfig(repositories=[html_links(files="files")]),
            [pkg],
            tmp_path / "repo",
            policy,
        )

        content = (files / "hello_1.0_amd64.deb").read_bytes()
        assert content == (expected if expected is not None else pkg.path.read_bytes())

    def test_duplicate_input_packages(self, tmp_path, make_metadata):
        """Test the same package twice in one run conflicts."""
        pkg = make_metadata()
        with pytest.raises(ConflictError):
            publish_packages(BulkConfig(repositories=[debian()]), [pkg, pkg], tmp_path / "repo")


class TestRepoAdd:
    """Tests for repo_add."""

    def test_repo_add(self, tmp_path, deb_factory, write_config):
        """Test packages are read and published from a config file."""
        config = write_config({
            "repositories": [
                {"kind": "debian", "suite": "stable", "component": "main"},
            ]
        })
        path = deb_factory.create("hello", "1.0", "amd64")

        packages = repo_add(config, [path], tmp_path / "repo")

        assert [p.name for p in packages] == ["hello"]
        assert (tmp_path / "repo" / "dists" / "stable" / "main" / "binary-amd64" / "Packages").exists()

    def test_bad_package_aborts(self, tmp_path, deb_factory, write_config):
        """Test an unreadable package stops the run before writing."""
        config = write_config({"repositories": [{"kind": "html-links", "files": "files"}]})
        good = deb_factory.create()
        bad = tmp_path / "bad.deb"
        bad.write_bytes(b"garbage")

        with pytest.raises(MetadataExtractionError):
            repo_add(config, [good, bad], tmp_path / "repo")

        assert not (tmp_path / "repo").exists()

    def test_missing_config(self, tmp_path, deb_factory):
        """Test a missing config file is a parse error."""
        with pytest.raises(ConfigParseError):
            repo_add(tmp_path / "nope.yaml", [deb_factory.create()], tmp_path / "repo")

    def test_no_packages(self, tmp_path, write_config):
        """Test a run without packages writes nothing."""
        config = write_config({"repositories": [{"kind": "html-links", "files": "files"}]})
        assert repo_add(config, [], tmp_path / "repo") == []
        assert not (tmp_path / "repo").exists()
