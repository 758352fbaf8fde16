"""Lockfile core class: entry management, integrity and serialization.

The ``Lockfile`` represents ``arm-lock.json``::

    {"version": 1,
     "dependencies": {"reg/pkg@1.2.0": {"integrity": "sha256-..."}}}

Several versions of one package may coexist. ``to_json()`` is
deterministic: keys are sorted, so equal lockfiles serialize to identical
bytes.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from armkit.core.files import File, compute_integrity
from armkit.core.lockfile.models import LockedPackage


class Lockfile:
    """Reproducibility record pinning each dependency to a version and digest.

    Example::

        lf = Lockfile()
        lf.add(LockedPackage("reg", "a", "1.2.0", Lockfile.compute_integrity(files)))
        lf.write(Path("arm-lock.json"))
    """

    LOCKFILE_VERSION: int = 1

    def __init__(self) -> None:
        self._entries: dict[str, LockedPackage] = {}

    # -- Entry management ---------------------------------------------------

    def add(self, entry: LockedPackage) -> None:
        """Add or replace the entry for ``entry.key``."""
        self._entries[entry.key] = entry

    def get(self, registry: str, package: str, version: str) -> LockedPackage | None:
        for entry in self._entries.values():
            if (entry.registry, entry.package, entry.version) == (registry, package, version):
                return entry
        return None

    def find(self, registry: str, package: str) -> list[LockedPackage]:
        """Return every pinned version of ``registry/package``, sorted by key."""
        return [
            self._entries[k]
            for k in sorted(self._entries)
            if self._entries[k].registry == registry and self._entries[k].package == package
        ]

    def remove_package(self, registry: str, package: str) -> list[LockedPackage]:
        """Drop every version of ``registry/package`` and return the removed entries."""
        removed = self.find(registry, package)
        for entry in removed:
            del self._entries[entry.key]
        return removed

    @property
    def entries(self) -> list[LockedPackage]:
        return [self._entries[k] for k in sorted(self._entries)]

    @property
    def keys(self) -> list[str]:
        return sorted(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    # -- Integrity ----------------------------------------------------------

    @staticmethod
    def compute_integrity(files: list[File]) -> str:
        """Compute the ``sha256-<hex>`` digest of a resolved file set."""
        return compute_integrity(files)

    # -- Serialization ------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.LOCKFILE_VERSION,
            "dependencies": {
                key: {"integrity": self._entries[key].integrity}
                for key in sorted(self._entries)
            },
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True) + "\n"

    def write(self, path: Path) -> None:
        """Write the lockfile atomically, creating parent directories.

        Args:
            path: Destination, typically ``arm-lock.json`` beside the manifest.
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(self.to_json())
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
