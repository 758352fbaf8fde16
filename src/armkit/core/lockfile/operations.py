"""Lockfile operations: deserialization and validation.

These functions are attached to ``Lockfile`` in ``__init__.py`` so that
callers see a single class while each source file stays focused.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from armkit.core.lockfile.models import LockedPackage, _INTEGRITY_RE, split_key
from armkit.exceptions import ParseError


def _from_dict(cls: type, data: dict[str, Any]) -> Any:
    """Deserialize a lockfile from parsed JSON.

    Raises:
        ParseError: If the document does not match the lockfile schema or
            an integrity value is not ``sha256-<64 hex>``.
    """
    if not isinstance(data, dict):
        raise ParseError("lockfile must be a JSON object")
    version = data.get("version", cls.LOCKFILE_VERSION)
    if version != cls.LOCKFILE_VERSION:
        raise ParseError(f"unsupported lockfile version: {version!r}")
    deps = data.get("dependencies", {})
    if not isinstance(deps, dict):
        raise ParseError("lockfile 'dependencies' must be an object")

    lf = cls()
    for key, entry in deps.items():
        registry, package, ver = split_key(key)
        if not isinstance(entry, dict) or not isinstance(entry.get("integrity"), str):
            raise ParseError(f"lockfile entry {key!r} has no integrity")
        lf.add(LockedPackage(registry, package, ver, entry["integrity"]))

    errors = lf.validate()
    if errors:
        raise ParseError("invalid lockfile: " + "; ".join(errors))
    return lf


def _from_json(cls: type, json_str: str) -> Any:
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as exc:
        raise ParseError(f"lockfile is not valid JSON: {exc}") from exc
    return cls.from_dict(data)


def _read(cls: type, path: Path) -> Any:
    """Read a lockfile from disk; a missing file yields an empty lockfile.

    Raises:
        ParseError: If the file exists but is malformed.
    """
    if not path.exists():
        return cls()
    return cls.from_json(path.read_text(encoding="utf-8"))


def _validate(self: Any) -> list[str]:
    """Return validation messages; an empty list means the lockfile is valid."""
    errors: list[str] = []
    for entry in self.entries:
        if not _INTEGRITY_RE.match(entry.integrity):
            errors.append(f"{entry.key}: malformed integrity {entry.integrity!r}")
    return errors
