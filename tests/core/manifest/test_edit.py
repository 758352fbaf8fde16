"""Tests for in-place manifest edits behind ``arm set`` and ``arm remove``."""

from __future__ import annotations

import pytest

from armkit.core.compiler import Tool
from armkit.core.manifest import (
    Dependency,
    Layout,
    Manifest,
    RegistryConfig,
    ResourceType,
    SinkConfig,
    remove_registry,
    remove_sink,
    set_package_field,
    set_registry_field,
    set_sink_field,
)
from armkit.core.manifest.edit import split_list
from armkit.exceptions import ConfigError


@pytest.fixture
def manifest() -> Manifest:
    m = Manifest(
        registries={
            "main": RegistryConfig("main", "git", "https://example.invalid/r.git", {"branches": ["main"]}),
            "gl": RegistryConfig("gl", "gitlab", "https://gitlab.example.invalid", {"projectId": "42"}),
            "cs": RegistryConfig("cs", "cloudsmith", "https://api.cloudsmith.io", {"owner": "o", "repository": "r"}),
        },
        sinks={
            "cursor": SinkConfig("cursor", ".cursor/rules", Tool.CURSOR),
            "q": SinkConfig("q", ".amazonq/rules", Tool.AMAZONQ, Layout.FLAT),
        },
    )
    m.put(Dependency("main", "python", ResourceType.RULESET, "^1.0.0", sinks=("cursor",)))
    m.put(Dependency("main", "prompts", ResourceType.PROMPTSET, "latest", sinks=("cursor",)))
    return m


# ===========================================================================
# Removal
# ===========================================================================


class TestRemove:
    """Registries and sinks are only removed when unused."""

    def test_remove_unused_registry(self, manifest: Manifest) -> None:
        removed = remove_registry(manifest, "gl")
        assert removed.type == "gitlab"
        assert "gl" not in manifest.registries

    def test_registry_in_use(self, manifest: Manifest) -> None:
        with pytest.raises(ConfigError, match="main/prompts, main/python"):
            remove_registry(manifest, "main")
        assert "main" in manifest.registries

    def test_unknown_registry(self, manifest: Manifest) -> None:
        with pytest.raises(ConfigError, match="not defined"):
            remove_registry(manifest, "zz")

    def test_remove_unused_sink(self, manifest: Manifest) -> None:
        assert remove_sink(manifest, "q").directory == ".amazonq/rules"
        assert list(manifest.sinks) == ["cursor"]

    def test_sink_in_use(self, manifest: Manifest) -> None:
        with pytest.raises(ConfigError, match="uninstall them first"):
            remove_sink(manifest, "cursor")


# ===========================================================================
# Registries and sinks
# ===========================================================================


class TestSetRegistry:
    """Fields allowed depend on the registry type."""

    def test_url(self, manifest: Manifest) -> None:
        updated = set_registry_field(manifest, "main", "url", " https://example.invalid/new.git ")
        assert updated.url == "https://example.invalid/new.git"
        assert manifest.registry("main").options == {"branches": ["main"]}

    def test_empty_branches_clears(self, manifest: Manifest) -> None:
        set_registry_field(manifest, "main", "branches", "")
        assert manifest.registry("main").options == {}

    def test_gitlab_group(self, manifest: Manifest) -> None:
        set_registry_field(manifest, "gl", "groupId", "7")
        assert manifest.registry("gl").to_dict()["groupId"] == "7"

    def test_gitlab_keeps_a_scope(self, manifest: Manifest) -> None:
        """Clearing the only scope of a gitlab registry is refused."""
        with pytest.raises(ConfigError, match="projectId or a groupId"):
            set_registry_field(manifest, "gl", "projectId", "")
        assert manifest.registry("gl").options == {"projectId": "42"}

    def test_cloudsmith_needs_owner(self, manifest: Manifest) -> None:
        with pytest.raises(ConfigError, match="owner"):
            set_registry_field(manifest, "cs", "owner", "")

    @pytest.mark.parametrize("registry,key", [("main", "projectId"), ("gl", "branches"), ("cs", "type")])
    def test_key_not_valid_for_type(self, manifest: Manifest, registry: str, key: str) -> None:
        with pytest.raises(ConfigError, match="unknown"):
            set_registry_field(manifest, registry, key, "x")

    def test_empty_url(self, manifest: Manifest) -> None:
        with pytest.raises(ConfigError):
            set_registry_field(manifest, "main", "url", "  ")


class TestSetSink:
    def test_directory(self, manifest: Manifest) -> None:
        assert set_sink_field(manifest, "cursor", "directory", "rules").directory == "rules"

    def test_layout(self, manifest: Manifest) -> None:
        assert set_sink_field(manifest, "q", "layout", "hierarchical").layout is Layout.HIERARCHICAL

    @pytest.mark.parametrize("key", ["compileTarget", "tool"])
    def test_compile_target(self, manifest: Manifest, key: str) -> None:
        assert set_sink_field(manifest, "cursor", key, "Markdown").tool is Tool.MARKDOWN

    def test_unknown_tool(self, manifest: Manifest) -> None:
        with pytest.raises(ConfigError, match="compile target"):
            set_sink_field(manifest, "cursor", "compileTarget", "vim")

    def test_unknown_field(self, manifest: Manifest) -> None:
        with pytest.raises(ConfigError, match="valid: directory, layout, compileTarget"):
            set_sink_field(manifest, "cursor", "colour", "red")


# ===========================================================================
# Packages
# ===========================================================================


class TestSetPackage:
    """Declared dependency fields."""

    def test_version(self, manifest: Manifest) -> None:
        assert set_package_field(manifest, "main/python", "version", "^2.0.0").version == "^2.0.0"
        assert manifest.dependency("main/python").version == "^2.0.0"

    def test_sinks(self, manifest: Manifest) -> None:
        dep = set_package_field(manifest, "main/python", "sinks", "cursor, q")
        assert dep.sinks == ("cursor", "q")

    def test_sinks_must_exist(self, manifest: Manifest) -> None:
        with pytest.raises(ConfigError, match="sink 'zz'"):
            set_package_field(manifest, "main/python", "sinks", "cursor,zz")
        assert manifest.dependency("main/python").sinks == ("cursor",)

    def test_sinks_cannot_be_empty(self, manifest: Manifest) -> None:
        with pytest.raises(ConfigError, match="at least one sink"):
            set_package_field(manifest, "main/python", "sinks", "")

    def test_include_and_clear(self, manifest: Manifest) -> None:
        set_package_field(manifest, "main/python", "include", "rules/**,docs/*.yml")
        assert manifest.dependency("main/python").include == ("rules/**", "docs/*.yml")
        set_package_field(manifest, "main/python", "include", "")
        assert manifest.dependency("main/python").include == ()

    def test_priority(self, manifest: Manifest) -> None:
        assert set_package_field(manifest, "main/python", "priority", "300").priority == 300
        assert set_package_field(manifest, "main/python", "priority", "").priority is None

    def test_priority_must_be_integer(self, manifest: Manifest) -> None:
        with pytest.raises(ConfigError, match="integer"):
            set_package_field(manifest, "main/python", "priority", "high")

    def test_promptset_has_no_priority(self, manifest: Manifest) -> None:
        with pytest.raises(ConfigError, match="only rulesets"):
            set_package_field(manifest, "main/prompts", "priority", "5")

    def test_resource_type_checked(self, manifest: Manifest) -> None:
        with pytest.raises(ConfigError, match="is a promptset"):
            set_package_field(manifest, "main/prompts", "version", "1.0.0", ResourceType.RULESET)

    def test_unknown_package(self, manifest: Manifest) -> None:
        with pytest.raises(ConfigError, match="not declared"):
            set_package_field(manifest, "main/nope", "version", "1.0.0")

    def test_unknown_field(self, manifest: Manifest) -> None:
        with pytest.raises(ConfigError, match="unknown package field"):
            set_package_field(manifest, "main/python", "name", "x")


def test_split_list() -> None:
    assert split_list(" a, ,b ,") == ("a", "b")
    assert split_list("") == ()
