"""Shared fixtures for armkit tests."""

from __future__ import annotations

import pathlib
import threading
import time

import pytest

from armkit.config import Settings
from armkit.core.compiler import Tool
from armkit.core.files import File
from armkit.core.manifest import (
    Dependency,
    Manifest,
    ManifestFile,
    RegistryConfig,
    ResourceType,
    SinkConfig,
)
from armkit.core.version import parse_version
from armkit.exceptions import BackendError, NotFoundError
from armkit.registry import RegistryAdapter, RegistryBackend
from armkit.service import InstallEngine
from armkit.storage import Store


def ruleset_yaml(ruleset_id: str = "a", rule_ids: tuple[str, ...] = ("rule1",), enforcement: str = "must") -> bytes:
    """Build a minimal ruleset document."""
    lines = [
        "apiVersion: v1",
        "kind: Ruleset",
        "metadata:",
        f"  id: {ruleset_id}",
        f"  name: {ruleset_id.upper()} rules",
        "spec:",
        "  rules:",
    ]
    for rule_id in rule_ids:
        lines += [
            f"    {rule_id}:",
            f"      name: {rule_id} name",
            f"      description: {rule_id} description",
            f"      enforcement: {enforcement}",
            f"      body: Follow {rule_id}.",
        ]
    return ("\n".join(lines) + "\n").encode("utf-8")


def promptset_yaml(promptset_id: str = "p", prompt_ids: tuple[str, ...] = ("ask",)) -> bytes:
    lines = [
        "apiVersion: v1",
        "kind: Promptset",
        "metadata:",
        f"  id: {promptset_id}",
        "spec:",
        "  prompts:",
    ]
    for prompt_id in prompt_ids:
        lines += [f"    {prompt_id}:", f"      body: Prompt {prompt_id}."]
    return ("\n".join(lines) + "\n").encode("utf-8")


class FakeBackend(RegistryBackend):
    """In-memory registry: ``packages[name][raw_version] -> files``."""

    def __init__(self, config: RegistryConfig | None = None) -> None:
        super().__init__(config or RegistryConfig("reg", "git", "https://example.invalid/reg.git"))
        self.packages: dict[str, dict[str, list[File]]] = {}
        self.fetches: list[tuple[str, str]] = []
        self.list_failures = 0
        self.delays: dict[str, float] = {}
        self._lock = threading.Lock()

    def publish(self, name: str, version: str, files: list[File]) -> None:
        self.packages.setdefault(name, {})[version] = files

    def list_versions(self, request, cancel=None):
        with self._lock:
            if self.list_failures > 0:
                self.list_failures -= 1
                raise BackendError("registry temporarily unavailable")
        time.sleep(self.delays.get(request.name, 0))
        return [parse_version(v) for v in self.packages.get(request.name, {})]

    def fetch(self, request, version, cancel=None):
        with self._lock:
            self.fetches.append((request.name, version.raw))
        try:
            return list(self.packages[request.name][version.raw])
        except KeyError:
            raise NotFoundError(f"{request.name}@{version.raw} not found") from None


@pytest.fixture
def fake_backend() -> FakeBackend:
    """Registry offering ``a`` at v1.0.0, v1.2.0 and v2.0.0."""
    backend = FakeBackend()
    for version in ("v1.0.0", "v1.2.0", "v2.0.0"):
        backend.publish("a", version, [File("rules/foo.yml", ruleset_yaml("a"))])
    return backend


@pytest.fixture
def store(tmp_path: pathlib.Path) -> Store:
    """Empty package cache with a short lock timeout."""
    return Store(tmp_path / "storage", lock_timeout=5.0)


@pytest.fixture
def project_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    """Project with a manifest declaring registry ``reg``, sink ``s1`` and ``reg/a``."""
    root = tmp_path / "project"
    root.mkdir()
    manifest = Manifest(
        registries={"reg": RegistryConfig("reg", "git", "https://example.invalid/reg.git")},
        sinks={"s1": SinkConfig("s1", "sink1", Tool.CURSOR)},
    )
    manifest.put(Dependency("reg", "a", ResourceType.RULESET, "^1.0.0", sinks=("s1",)))
    ManifestFile(root / "arm.json").save(manifest)
    return root


@pytest.fixture
def make_engine(tmp_path: pathlib.Path, project_dir: pathlib.Path, fake_backend: FakeBackend):
    """Factory building an engine over the project, a shared cache and the fake backend."""

    def factory(**overrides: object) -> InstallEngine:
        settings = Settings(
            manifest_path=project_dir / "arm.json",
            arm_home=tmp_path / "home",
            workers=2,
            lock_timeout=5.0,
            retries=2,
            project_dir=project_dir,
        )
        for name, value in overrides.items():
            setattr(settings, name, value)
        adapter = RegistryAdapter(
            Store(settings.storage_root, settings.lock_timeout),
            None,
            backend_factory=lambda config, handle, timeout: fake_backend,
        )
        return InstallEngine(settings, adapter)

    return factory


@pytest.fixture
def make_ruleset():
    """Return the ruleset document builder."""
    return ruleset_yaml


@pytest.fixture
def make_promptset():
    """Return the promptset document builder."""
    return promptset_yaml
