"""Content-addressed cache keys.

A key is the lowercase SHA-256 hex digest of the canonical JSON encoding
of an object: keys sorted ascending and no insignificant whitespace.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

from armkit.core.request import PackageRequest


def canonical_json(obj: Any) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def key_of(obj: Any) -> str:
    return hashlib.sha256(canonical_json(obj).encode("utf-8")).hexdigest()


def registry_key(config: dict[str, Any]) -> str:
    """Cache key of a registry config; identical configs share a directory."""
    return key_of(config)


def package_key(request: PackageRequest) -> str:
    """Cache key of a package request (patterns already normalized)."""
    return key_of(request.to_dict())
