"""Tests for the ``arm`` commands that need no registry.

Verifies:
    - ``add registry`` / ``add sink`` write arm.json and refuse duplicates.
    - ``list`` renders declared packages; malformed manifests exit 2.
    - ``install`` argument validation and configuration errors.
    - ``compile`` writes tool files for local resources.
    - ``cache`` and ``clean`` housekeeping commands.
    - Duration parsing for cache eviction options.
"""

from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path

import click
import pytest
from click.testing import CliRunner

from armkit import __version__
from armkit.cli.context import parse_duration
from armkit.cli.main import cli

RULESET = """\
apiVersion: v1
kind: Ruleset
metadata:
  id: style
spec:
  rules:
    naming:
      enforcement: must
      body: Use clear names.
"""


def _manifest(project: Path) -> dict:
    return json.loads((project / "arm.json").read_text())


# ===========================================================================
# Group options
# ===========================================================================


class TestGroup:
    """Top-level behaviour."""

    def test_version(self, runner: CliRunner) -> None:
        """--version prints the package version."""
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self, runner: CliRunner) -> None:
        """--help mentions every subcommand."""
        result = runner.invoke(cli, ["--help"])
        for name in (
            "install", "update", "upgrade", "uninstall", "list", "outdated", "info",
            "add", "remove", "set", "cache", "clean", "compile",
        ):
            assert name in result.output

    def test_manifest_option(self, runner: CliRunner, tmp_path: Path) -> None:
        """--manifest overrides the environment."""
        target = tmp_path / "other" / "arm.json"
        target.parent.mkdir()
        result = runner.invoke(
            cli,
            ["--manifest", str(target), "add", "sink", "q", ".amazonq/rules", "--tool", "amazonq"],
            env={"ARM_HOME": str(tmp_path / "home")},
        )
        assert result.exit_code == 0, result.output
        assert "q" in json.loads(target.read_text())["sinks"]


# ===========================================================================
# add
# ===========================================================================


class TestAdd:
    """Declaring registries and sinks."""

    def test_add_git_registry(self, runner: CliRunner, cli_env: dict, project: Path) -> None:
        """A git registry with branch globs is written to arm.json."""
        result = runner.invoke(
            cli,
            ["add", "registry", "main", "https://github.com/acme/rules", "--type", "git", "--branch", "main"],
            env=cli_env,
        )
        assert result.exit_code == 0, result.output
        assert "Added registry" in result.output
        assert _manifest(project)["registries"]["main"] == {
            "type": "git",
            "url": "https://github.com/acme/rules",
            "branches": ["main"],
        }

    def test_duplicate_registry_needs_force(self, runner: CliRunner, cli_env: dict, project: Path) -> None:
        """Re-adding a registry requires --force."""
        args = ["add", "registry", "main", "https://a.example/r.git", "--type", "git"]
        runner.invoke(cli, args, env=cli_env)
        result = runner.invoke(cli, args, env=cli_env)
        assert result.exit_code == 2
        assert "already exists" in result.output
        forced = runner.invoke(
            cli, ["add", "registry", "main", "https://b.example/r.git", "--type", "git", "--force"], env=cli_env
        )
        assert forced.exit_code == 0
        assert _manifest(project)["registries"]["main"]["url"] == "https://b.example/r.git"

    def test_gitlab_needs_scope(self, runner: CliRunner, cli_env: dict) -> None:
        """GitLab registries require a project or group id."""
        result = runner.invoke(
            cli, ["add", "registry", "gl", "https://gitlab.example.com", "--type", "gitlab"], env=cli_env
        )
        assert result.exit_code == 2
        assert "--project-id" in result.output

    def test_cloudsmith_registry(self, runner: CliRunner, cli_env: dict, project: Path) -> None:
        """Cloudsmith options are stored under their manifest keys."""
        result = runner.invoke(
            cli,
            ["add", "registry", "cs", "https://api.cloudsmith.io", "--type", "cloudsmith",
             "--owner", "acme", "--repository", "prompts"],
            env=cli_env,
        )
        assert result.exit_code == 0, result.output
        entry = _manifest(project)["registries"]["cs"]
        assert (entry["owner"], entry["repository"]) == ("acme", "prompts")

    def test_add_sink(self, runner: CliRunner, cli_env: dict, project: Path) -> None:
        """Sinks record directory, layout and compile target."""
        result = runner.invoke(
            cli, ["add", "sink", "q", ".amazonq/rules", "--tool", "amazonq", "--layout", "flat"], env=cli_env
        )
        assert result.exit_code == 0, result.output
        assert _manifest(project)["sinks"]["q"] == {
            "directory": ".amazonq/rules",
            "layout": "flat",
            "compileTarget": "amazonq",
        }

    def test_unknown_tool(self, runner: CliRunner, cli_env: dict) -> None:
        """Unknown tools are rejected by option validation."""
        result = runner.invoke(cli, ["add", "sink", "x", "dir", "--tool", "emacs"], env=cli_env)
        assert result.exit_code == 2


# ===========================================================================
# list / install validation
# ===========================================================================


class TestListAndValidation:
    """Read-only commands and argument errors."""

    def test_list_empty(self, runner: CliRunner, cli_env: dict) -> None:
        """An empty project lists nothing."""
        result = runner.invoke(cli, ["list"], env=cli_env)
        assert result.exit_code == 0
        assert "No packages declared." in result.output

    def test_list_declared(self, runner: CliRunner, cli_env: dict, project: Path) -> None:
        """Declared packages and their pins are shown."""
        (project / "arm.json").write_text(json.dumps({
            "version": "1.0.0",
            "registries": {"reg": {"type": "git", "url": "https://example.invalid/r.git"}},
            "sinks": {"s1": {"directory": "sink1", "compileTarget": "cursor"}},
            "packages": {"reg": {"a": {"version": "^1.0.0", "sinks": ["s1"]}}},
        }))
        (project / "arm-lock.json").write_text(json.dumps({
            "version": 1,
            "dependencies": {"reg/a@1.2.0": {"integrity": "sha256-" + "a" * 64}},
        }))
        result = runner.invoke(cli, ["list"], env=cli_env)
        assert result.exit_code == 0, result.output
        assert "reg/a" in result.output
        assert "1.2.0" in result.output

    def test_malformed_manifest_exits_2(self, runner: CliRunner, cli_env: dict, project: Path) -> None:
        """Broken arm.json is a parse error."""
        (project / "arm.json").write_text("{broken")
        result = runner.invoke(cli, ["list"], env=cli_env)
        assert result.exit_code == 2
        assert "Error" in result.output

    def test_malformed_lockfile_integrity_exits_2(self, runner: CliRunner, cli_env: dict, project: Path) -> None:
        """A lockfile pin with a malformed digest is a parse error."""
        (project / "arm-lock.json").write_text(json.dumps({
            "version": 1,
            "dependencies": {"reg/a@1.2.0": {"integrity": "garbage"}},
        }))
        result = runner.invoke(cli, ["list"], env=cli_env)
        assert result.exit_code == 2
        assert "malformed integrity" in result.output

    def test_install_requires_sink(self, runner: CliRunner, cli_env: dict) -> None:
        """Installing a package needs --sink."""
        result = runner.invoke(cli, ["install", "reg/a"], env=cli_env)
        assert result.exit_code == 2
        assert "--sink" in result.output

    def test_install_bad_package_id(self, runner: CliRunner, cli_env: dict) -> None:
        """Package ids must be REGISTRY/PACKAGE."""
        result = runner.invoke(cli, ["install", "nopackage", "--sink", "s1"], env=cli_env)
        assert result.exit_code == 2

    def test_install_unknown_registry_exits_1(self, runner: CliRunner, cli_env: dict) -> None:
        """Undeclared registries are configuration errors."""
        result = runner.invoke(cli, ["install", "reg/a", "--sink", "s1"], env=cli_env)
        assert result.exit_code == 1
        assert "registry" in result.output

    def test_install_all_empty(self, runner: CliRunner, cli_env: dict, project: Path) -> None:
        """install with nothing declared succeeds and writes an empty lockfile."""
        result = runner.invoke(cli, ["install"], env=cli_env)
        assert result.exit_code == 0, result.output
        assert "Nothing to install." in result.output
        assert json.loads((project / "arm-lock.json").read_text()) == {"version": 1, "dependencies": {}}


# ===========================================================================
# compile
# ===========================================================================


class TestCompile:
    """Local compilation."""

    def test_compile_directory(self, runner: CliRunner, tmp_path: Path) -> None:
        """Resources in a directory compile into the output directory."""
        src = tmp_path / "src"
        (src / "team").mkdir(parents=True)
        (src / "team" / "style.yml").write_text(RULESET)
        (src / "notes.md").write_text("ignored")
        out = tmp_path / "out"
        result = runner.invoke(cli, ["compile", str(src), "--tool", "copilot", "-o", str(out)])
        assert result.exit_code == 0, result.output
        compiled = out / "team" / "style_naming.instructions.md"
        assert compiled.is_file()
        assert "namespace: local" in compiled.read_text()

    def test_compile_single_file_with_namespace(self, runner: CliRunner, tmp_path: Path) -> None:
        """A single file compiles beside its name with a custom namespace."""
        src = tmp_path / "style.yaml"
        src.write_text(RULESET)
        out = tmp_path / "out"
        result = runner.invoke(
            cli, ["compile", str(src), "--tool", "cursor", "-o", str(out), "--namespace", "acme/style@1.0.0"]
        )
        assert result.exit_code == 0, result.output
        assert "namespace: acme/style@1.0.0" in (out / "style_naming.mdc").read_text()

    def test_compile_nothing_found(self, runner: CliRunner, tmp_path: Path) -> None:
        """A directory without resources exits 1."""
        (tmp_path / "empty").mkdir()
        result = runner.invoke(cli, ["compile", str(tmp_path / "empty"), "--tool", "cursor", "-o", str(tmp_path / "o")])
        assert result.exit_code == 1
        assert "No rulesets or promptsets found." in result.output

    def test_compile_malformed_exits_2(self, runner: CliRunner, tmp_path: Path) -> None:
        """A resource failing validation exits 2."""
        bad = tmp_path / "bad.yml"
        bad.write_text("apiVersion: v1\nkind: Ruleset\nmetadata:\n  id: x\nspec: {}\n")
        result = runner.invoke(cli, ["compile", str(bad), "--tool", "cursor", "-o", str(tmp_path / "o")])
        assert result.exit_code == 2


# ===========================================================================
# cache / clean
# ===========================================================================


class TestHousekeeping:
    """Cache eviction and sink cleaning."""

    def test_cache_clean_empty(self, runner: CliRunner, cli_env: dict) -> None:
        """Cleaning an empty cache removes nothing."""
        result = runner.invoke(cli, ["cache", "clean", "--max-idle", "12h"], env=cli_env)
        assert result.exit_code == 0, result.output
        assert "nothing to remove" in result.output

    def test_cache_clean_bad_duration(self, runner: CliRunner, cli_env: dict) -> None:
        """Durations must look like 30s, 15m, 12h or 7d."""
        result = runner.invoke(cli, ["cache", "clean", "--max-age", "soon"], env=cli_env)
        assert result.exit_code == 2

    def test_cache_nuke(self, runner: CliRunner, cli_env: dict, tmp_path: Path) -> None:
        """nuke --yes wipes the storage directory."""
        registries = tmp_path / "home" / "storage" / "registries" / "x"
        registries.mkdir(parents=True)
        result = runner.invoke(cli, ["cache", "nuke", "--yes"], env=cli_env)
        assert result.exit_code == 0, result.output
        assert "Cache cleared." in result.output
        assert not registries.exists()

    def test_clean_sinks(self, runner: CliRunner, cli_env: dict, project: Path) -> None:
        """Unreferenced files under a sink's arm/ area are removed."""
        runner.invoke(cli, ["add", "sink", "s1", "sink1", "--tool", "cursor"], env=cli_env)
        orphan = project / "sink1" / "arm" / "reg" / "x" / "1.0.0" / "r.mdc"
        orphan.parent.mkdir(parents=True)
        orphan.write_text("stale")
        result = runner.invoke(cli, ["clean", "sinks"], env=cli_env)
        assert result.exit_code == 0, result.output
        assert "Sink s1: 1 removed." in result.output
        assert not orphan.exists()


class TestParseDuration:
    """Duration strings for cache eviction."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("30s", timedelta(seconds=30)),
            ("15m", timedelta(minutes=15)),
            ("12h", timedelta(hours=12)),
            ("7d", timedelta(days=7)),
            ("0d", timedelta(0)),
        ],
    )
    def test_valid(self, text: str, expected: timedelta) -> None:
        """Each unit maps to its timedelta."""
        assert parse_duration(text) == expected

    @pytest.mark.parametrize("text", ["", "7", "d7", "1w", "-1d", "1.5h"])
    def test_invalid(self, text: str) -> None:
        """Anything else is a bad parameter."""
        with pytest.raises(click.BadParameter):
            parse_duration(text)
