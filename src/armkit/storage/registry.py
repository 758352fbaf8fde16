"""Registry directories and their ``metadata.json``.

Each registry config maps to ``registries/{registryKey}/`` holding
``RegistryMeta`` (``config``, ``createdOn``, ``lastUpdatedOn``,
``lastAccessedOn``), an optional ``repo/`` working clone and the
``packages/`` tree.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from armkit.core.cancel import CancelToken
from armkit.storage.keys import registry_key
from armkit.storage.lock import DEFAULT_TIMEOUT, FileLock
from armkit.storage.metadata import METADATA_FILE, advance, read_json, to_iso, utcnow, write_json
from armkit.exceptions import FsError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistryHandle:
    """An opened registry cache directory.

    Attributes:
        key: 64-hex registry key.
        path: ``root/storage/registries/{key}``.
        config: The registry config the key was computed from.
    """

    key: str
    path: Path
    config: dict[str, Any] = field(hash=False, compare=False)

    @property
    def packages_dir(self) -> Path:
        return self.path / "packages"

    @property
    def repo_dir(self) -> Path:
        return self.path / "repo"

    @property
    def metadata_path(self) -> Path:
        return self.path / METADATA_FILE


def open_registry(
    registries_dir: Path,
    config: dict[str, Any],
    cancel: CancelToken | None = None,
    lock_timeout: float = DEFAULT_TIMEOUT,
) -> RegistryHandle:
    """Create (or reuse) the directory for *config* and initialize metadata.

    An existing ``createdOn`` is preserved; the access time is bumped.

    Raises:
        FsError: If the directory or metadata cannot be written.
    """
    key = registry_key(config)
    handle = RegistryHandle(key=key, path=registries_dir / key, config=config)
    try:
        handle.packages_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FsError(f"cannot create registry directory {handle.path}: {exc}") from exc

    with FileLock(handle.path, timeout=lock_timeout, cancel=cancel):
        if handle.metadata_path.is_file():
            meta = read_json(handle.metadata_path)
            meta["lastAccessedOn"] = advance(meta.get("lastAccessedOn"))
        else:
            now = to_iso(utcnow())
            meta = {
                "config": config,
                "createdOn": now,
                "lastUpdatedOn": now,
                "lastAccessedOn": now,
            }
            logger.debug("Initialized registry cache %s", handle.path)
        _write(handle, meta)
    return handle


def touch(
    handle: RegistryHandle,
    *,
    update: bool,
    cancel: CancelToken | None = None,
    lock_timeout: float = DEFAULT_TIMEOUT,
) -> dict[str, Any]:
    """Bump ``lastAccessedOn`` (and ``lastUpdatedOn`` when *update*)."""
    with FileLock(handle.path, timeout=lock_timeout, cancel=cancel):
        meta = read_json(handle.metadata_path)
        accessed = advance(meta.get("lastAccessedOn"))
        if update:
            meta["lastUpdatedOn"] = accessed
        meta["lastAccessedOn"] = accessed
        _write(handle, meta)
    return meta


def _write(handle: RegistryHandle, meta: dict[str, Any]) -> None:
    try:
        write_json(handle.metadata_path, meta)
    except OSError as exc:
        raise FsError(f"cannot write {handle.metadata_path}: {exc}") from exc
