"""The sink installation index, ``{sink}/arm/arm-index.json``.

Maps ``registry/package@version`` to the files deployed for it (relative
to the sink directory, forward slashes) and, for rulesets, the priority::

    {"reg/a@1.2.0": {"files": ["arm/reg/a/1.2.0/rules/a_rule1.mdc"],
                     "priority": 100}}
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from armkit.core.lockfile import make_key, split_key
from armkit.exceptions import FsError, ParseError
from armkit.storage.metadata import write_json


@dataclass
class IndexEntry:
    registry: str
    package: str
    version: str
    files: list[str] = field(default_factory=list)
    priority: int | None = None

    @property
    def key(self) -> str:
        return make_key(self.registry, self.package, self.version)

    @property
    def is_ruleset(self) -> bool:
        return self.priority is not None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"files": sorted(self.files)}
        if self.priority is not None:
            out["priority"] = self.priority
        return out


class SinkIndex:
    """In-memory view of one sink's index file."""

    def __init__(self, path: Path, entries: dict[str, IndexEntry] | None = None) -> None:
        self.path = path
        self.entries: dict[str, IndexEntry] = entries or {}

    @classmethod
    def load(cls, path: Path) -> SinkIndex:
        """Read the index; a missing file yields an empty index.

        Raises:
            ParseError: If the file is not a valid index.
        """
        if not path.exists():
            return cls(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ParseError(f"{path}: invalid JSON: {exc}") from exc
        except OSError as exc:
            raise FsError(f"cannot read {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ParseError(f"{path}: expected a JSON object")
        entries: dict[str, IndexEntry] = {}
        for key, raw in data.items():
            registry, package, version = split_key(key)
            if not isinstance(raw, dict) or not isinstance(raw.get("files", []), list):
                raise ParseError(f"{path}: malformed entry {key!r}")
            entries[key] = IndexEntry(
                registry=registry,
                package=package,
                version=version,
                files=[str(f) for f in raw.get("files", [])],
                priority=raw.get("priority"),
            )
        return cls(path, entries)

    def save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            write_json(self.path, {k: self.entries[k].to_dict() for k in sorted(self.entries)})
        except OSError as exc:
            raise FsError(f"cannot write {self.path}: {exc}") from exc

    def for_package(self, registry: str, package: str) -> list[IndexEntry]:
        return [
            e for k, e in sorted(self.entries.items())
            if e.registry == registry and e.package == package
        ]

    def put(self, entry: IndexEntry) -> None:
        self.entries[entry.key] = entry

    def drop(self, key: str) -> IndexEntry | None:
        return self.entries.pop(key, None)

    def referenced(self) -> set[str]:
        return {f for e in self.entries.values() for f in e.files}

    def rulesets(self) -> list[IndexEntry]:
        """Ruleset entries ordered by priority (high first), then key."""
        return sorted(
            (e for e in self.entries.values() if e.is_ruleset),
            key=lambda e: (-(e.priority or 0), e.key),
        )
