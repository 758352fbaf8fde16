"""Tests for the Git backend against a local repository."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from armkit.core.manifest import RegistryConfig
from armkit.core.request import PackageRequest
from armkit.core.version import parse_version
from armkit.exceptions import NotFoundError
from armkit.registry.git import GitBackend

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")

GIT_IDENTITY = [
    "-c", "user.name=armkit tests",
    "-c", "user.email=tests@example.invalid",
    "-c", "commit.gpgsign=false",
    "-c", "tag.gpgsign=false",
]


def _git(cwd: Path, *args: str) -> None:
    subprocess.run(["git", *GIT_IDENTITY, *args], cwd=cwd, check=True, capture_output=True)


@pytest.fixture
def origin(tmp_path: Path) -> Path:
    """Repository with tags v1.0.0 and v1.1.0 on main and a feature branch."""
    repo = tmp_path / "origin"
    repo.mkdir()
    _git(repo, "init", "--quiet")
    _git(repo, "symbolic-ref", "HEAD", "refs/heads/main")

    (repo / "rules").mkdir()
    (repo / "rules" / "a.yml").write_text("version: 1\n")
    _git(repo, "add", ".")
    _git(repo, "commit", "--quiet", "-m", "first")
    _git(repo, "tag", "v1.0.0")

    (repo / "rules" / "b.yml").write_text("b\n")
    (repo / "README.md").write_text("readme\n")
    _git(repo, "add", ".")
    _git(repo, "commit", "--quiet", "-m", "second")
    _git(repo, "tag", "v1.1.0")

    _git(repo, "checkout", "--quiet", "-b", "feature/x")
    (repo / "rules" / "c.yml").write_text("c\n")
    _git(repo, "add", ".")
    _git(repo, "commit", "--quiet", "-m", "feature")
    _git(repo, "checkout", "--quiet", "main")
    return repo


def _backend(origin: Path, tmp_path: Path, **options: object) -> GitBackend:
    cache = tmp_path / "cache"
    cache.mkdir(exist_ok=True)
    config = RegistryConfig("reg", "git", str(origin), dict(options))
    return GitBackend(config, cache / "repo", lock_timeout=10)


class TestGitBackend:
    """Tags, branch allowlists and tree reads."""

    def test_tags_are_versions(self, origin: Path, tmp_path: Path) -> None:
        """Without a branch allowlist only tags are listed."""
        versions = _backend(origin, tmp_path).list_versions(PackageRequest.create("any"))
        assert sorted(v.raw for v in versions) == ["v1.0.0", "v1.1.0"]

    def test_allowlisted_branches(self, origin: Path, tmp_path: Path) -> None:
        """Branches matching a glob become opaque versions."""
        backend = _backend(origin, tmp_path, branches=["main", "feature/*"])
        raws = {v.raw for v in backend.list_versions(PackageRequest.create("any"))}
        assert raws == {"v1.0.0", "v1.1.0", "main", "feature/x"}
        assert not parse_version("feature/x").semantic

    def test_fetch_tag_tree(self, origin: Path, tmp_path: Path) -> None:
        """A tag yields the full tree at that commit."""
        files = _backend(origin, tmp_path).fetch(PackageRequest.create("any"), parse_version("v1.0.0"))
        assert [(f.path, f.content) for f in files] == [("rules/a.yml", b"version: 1\n")]

    def test_fetch_branch_head(self, origin: Path, tmp_path: Path) -> None:
        """A branch resolves to its remote head."""
        backend = _backend(origin, tmp_path, branches=["feature/*"])
        files = backend.fetch(PackageRequest.create("any"), parse_version("feature/x"))
        assert "rules/c.yml" in [f.path for f in files]

    def test_unknown_ref(self, origin: Path, tmp_path: Path) -> None:
        """Missing tags and branches raise NotFoundError."""
        with pytest.raises(NotFoundError):
            _backend(origin, tmp_path).fetch(PackageRequest.create("any"), parse_version("v9.0.0"))

    def test_existing_clone_is_fetched(self, origin: Path, tmp_path: Path) -> None:
        """A second backend on the same clone sees new tags."""
        _backend(origin, tmp_path).list_versions(PackageRequest.create("any"))
        _git(origin, "tag", "v2.0.0")
        raws = {v.raw for v in _backend(origin, tmp_path).list_versions(PackageRequest.create("any"))}
        assert "v2.0.0" in raws
