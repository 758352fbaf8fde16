"""Version and constraint data models.

A ``Version`` is either *semantic* (``major.minor.patch`` with optional
prerelease and build metadata) or *opaque* (branch names, commit ids,
abbreviated versions such as ``"1.2"``). Semantic-ness is decided once, at
parse time, and never changes. Only semantic versions are ordered, and the
order ignores prerelease and build metadata.

A ``Constraint`` is one of four kinds; see ``ConstraintKind``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


# ---------------------------------------------------------------------------
# Version
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Version:
    """A parsed package version.

    Attributes:
        raw: The display string exactly as received (e.g. "v1.2.3", "main").
        major: Major component (0 for opaque versions).
        minor: Minor component (0 for opaque versions).
        patch: Patch component (0 for opaque versions).
        prerelease: Prerelease tag without the leading ``-``.
        build: Build metadata without the leading ``+``.
        semantic: True iff *raw* is a full ``major.minor.patch`` triple.
    """

    raw: str
    major: int = 0
    minor: int = 0
    patch: int = 0
    prerelease: str = ""
    build: str = ""
    semantic: bool = False

    @property
    def key(self) -> tuple[int, int, int]:
        """Ordering key; prerelease and build metadata are ignored."""
        return (self.major, self.minor, self.patch)

    @property
    def canonical(self) -> str:
        """Canonical form without the optional ``v`` prefix.

        Opaque versions have no canonical form beyond their display string.
        """
        if not self.semantic:
            return self.raw
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.build:
            text += f"+{self.build}"
        return text

    @property
    def dirname(self) -> str:
        """Name of this version's cache directory (``v{M}.{m}.{p}``)."""
        return f"v{self.major}.{self.minor}.{self.patch}"

    def compare(self, other: Version) -> int:
        """Return -1, 0 or 1 comparing two semantic versions.

        Raises:
            ValueError: If either version is opaque.
        """
        if not (self.semantic and other.semantic):
            raise ValueError("opaque versions have no order")
        if self.key < other.key:
            return -1
        if self.key > other.key:
            return 1
        return 0

    def __str__(self) -> str:
        return self.raw


# ---------------------------------------------------------------------------
# Constraint
# ---------------------------------------------------------------------------


class ConstraintKind(Enum):
    """The four constraint shapes.

    EXACT admits one semantic version, MINOR admits the same
    ``major.minor`` line at or above its base, MAJOR admits the same major
    line at or above its base, LATEST admits everything.
    """

    EXACT = "exact"
    MINOR = "minor"
    MAJOR = "major"
    LATEST = "latest"


class ParseMode(Enum):
    """Constraint parsing strictness."""

    STRICT = "strict"
    LOOSE = "loose"


@dataclass(frozen=True)
class Constraint:
    """A declared version requirement.

    Attributes:
        kind: The constraint shape.
        version: Base version for EXACT, MINOR and MAJOR; None for LATEST.
        opaque: For LATEST constraints produced by loose parsing, the
            original unrecognized string (typically a branch name).
    """

    kind: ConstraintKind
    version: Version | None = None
    opaque: str | None = None

    def __str__(self) -> str:
        if self.kind is ConstraintKind.LATEST:
            return self.opaque or "latest"
        assert self.version is not None
        prefix = {
            ConstraintKind.EXACT: "=",
            ConstraintKind.MINOR: "~",
            ConstraintKind.MAJOR: "^",
        }[self.kind]
        return f"{prefix}{self.version.canonical}"
