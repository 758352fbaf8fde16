"""Reading and writing ``arm.json``.

Deserialization validates structure and raises ``ParseError`` for
malformed documents; serialization is deterministic (sorted keys, two
space indent) so that manifests diff cleanly under version control.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from armkit.core.manifest.models import (
    Dependency,
    Manifest,
    RegistryConfig,
    SinkConfig,
)
from armkit.exceptions import ParseError


def manifest_from_dict(data: dict[str, Any]) -> Manifest:
    """Build a ``Manifest`` from parsed JSON.

    Raises:
        ParseError: If the document does not match the manifest schema.
        ConfigError: If a registry type or compile target is unsupported.
    """
    if not isinstance(data, dict):
        raise ParseError("manifest must be a JSON object")
    manifest = Manifest(version=str(data.get("version", "1.0.0")))
    for name, cfg in _section(data, "registries").items():
        manifest.registries[name] = RegistryConfig.from_dict(name, cfg)
    for name, cfg in _section(data, "sinks").items():
        manifest.sinks[name] = SinkConfig.from_dict(name, cfg)
    for registry, packages in _section(data, "packages").items():
        if not isinstance(packages, dict):
            raise ParseError(f"packages.{registry} must be an object")
        for package, cfg in packages.items():
            manifest.put(Dependency.from_dict(registry, package, cfg))
    return manifest


def manifest_to_dict(manifest: Manifest) -> dict[str, Any]:
    packages: dict[str, dict[str, Any]] = {}
    for dep in manifest.packages.values():
        packages.setdefault(dep.registry, {})[dep.package] = dep.to_dict()
    return {
        "version": manifest.version,
        "registries": {n: r.to_dict() for n, r in manifest.registries.items()},
        "sinks": {n: s.to_dict() for n, s in manifest.sinks.items()},
        "packages": packages,
    }


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ParseError(f"manifest '{key}' must be an object")
    return value


class ManifestFile:
    """File-backed manifest store bound to one path."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> Manifest:
        """Read the manifest; a missing file yields an empty manifest.

        Raises:
            ParseError: If the file is not valid JSON or violates the schema.
        """
        if not self.path.exists():
            return Manifest()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ParseError(f"{self.path}: invalid JSON: {exc}") from exc
        return manifest_from_dict(data)

    def save(self, manifest: Manifest) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        text = json.dumps(manifest_to_dict(manifest), indent=2, sort_keys=True) + "\n"
        fd, tmp = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(text)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
