"""Lockfile data model: one ``LockedPackage`` per resolved dependency.

Pure data holders with no business logic, safe to import from anywhere.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from armkit.exceptions import ParseError

# ---------------------------------------------------------------------------
# Integrity hash format: "sha256-<64-hex-characters>"
# ---------------------------------------------------------------------------

_INTEGRITY_RE = re.compile(r"^sha256-[0-9a-f]{64}$")


def make_key(registry: str, package: str, version: str) -> str:
    """Return the lockfile key ``registry/package@version``."""
    return f"{registry}/{package}@{version}"


def split_key(key: str) -> tuple[str, str, str]:
    """Split a ``registry/package@version`` key into its parts.

    Raises:
        ParseError: If *key* lacks the registry separator or the version.
    """
    ident, sep, version = key.rpartition("@")
    registry, slash, package = ident.partition("/")
    if not sep or not slash or not registry or not package or not version:
        raise ParseError(f"invalid lockfile key: {key!r}")
    return registry, package, version


# ---------------------------------------------------------------------------
# LockedPackage: A single entry in the lockfile
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LockedPackage:
    """A resolved dependency pinned in the lockfile.

    Attributes:
        registry: Registry name from the manifest.
        package: Package name within the registry.
        version: Resolved version display string (e.g. "1.2.0", "main").
        integrity: Content digest in "sha256-<hex>" format.
    """

    registry: str
    package: str
    version: str
    integrity: str

    @property
    def key(self) -> str:
        return make_key(self.registry, self.package, self.version)

    @property
    def package_id(self) -> str:
        return f"{self.registry}/{self.package}"
