"""Placement of package files inside a sink directory.

Hierarchical: ``arm/{registry}/{package}/{version}/{relPath}``.
Flat: ``arm_{hash8}_{basename}`` where ``hash8`` is the low 32 bits of
SHA-256 over registry, package, version and relPath joined by NUL.
"""

from __future__ import annotations

import hashlib
import posixpath

from armkit.core.manifest import Layout

ARM_DIR = "arm"
FLAT_PREFIX = "arm_"
SEPARATOR = "\x00"


def hierarchical_path(registry: str, package: str, version: str, rel_path: str) -> str:
    return posixpath.join(ARM_DIR, registry, package, version, rel_path)


def flat_hash(registry: str, package: str, version: str, rel_path: str) -> str:
    digest = hashlib.sha256(
        SEPARATOR.join((registry, package, version, rel_path)).encode("utf-8")
    ).digest()
    return digest[-4:].hex()


def flat_path(registry: str, package: str, version: str, rel_path: str) -> str:
    name = posixpath.basename(rel_path)
    return f"{FLAT_PREFIX}{flat_hash(registry, package, version, rel_path)}_{name}"


def target_path(layout: Layout, registry: str, package: str, version: str, rel_path: str) -> str:
    """Return the sink-relative destination of *rel_path* for *layout*."""
    if layout is Layout.FLAT:
        return flat_path(registry, package, version, rel_path)
    return hierarchical_path(registry, package, version, rel_path)
