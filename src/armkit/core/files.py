"""In-memory file representation and the package integrity digest.

Packages move through the system as lists of ``File`` objects: backends
produce them, the store persists them, the compiler rewrites them and
sinks deploy them. Paths are always relative and use forward slashes.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass


@dataclass(frozen=True)
class File:
    """A single file of a package.

    Attributes:
        path: Relative path with forward slashes (e.g. "rules/foo.yml").
        content: Raw file bytes.
    """

    path: str
    content: bytes


def normalize_path(path: str) -> str:
    """Fold backslashes to forward slashes and strip leading ``./`` and ``/``."""
    path = path.replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path.lstrip("/")


def sort_files(files: list[File]) -> list[File]:
    """Return *files* ordered by path ascending."""
    return sorted(files, key=lambda f: f.path)


def compute_integrity(files: list[File]) -> str:
    """Compute the integrity digest of a file set.

    Files are sorted by path; a single SHA-256 is fed, per file, the UTF-8
    path bytes followed by the raw content bytes with no separator.

    Args:
        files: The resolved file set, in any order.

    Returns:
        Integrity string in ``"sha256-<64-hex-chars>"`` format.
    """
    digest = hashlib.sha256()
    for f in sort_files(files):
        digest.update(f.path.encode("utf-8"))
        digest.update(f.content)
    return f"sha256-{digest.hexdigest()}"
