"""Store facade over the on-disk package cache.

``Store`` owns ``{root}/registries`` and exposes the registry, package and
eviction operations used by the registry adapter and the cache commands.

Eviction works at version granularity: ``evict_by_age`` compares
``updatedAt`` and ``evict_by_idle`` compares ``lastAccessedAt`` against
``now - duration``. Package ``metadata.json`` files survive eviction.
"""

from __future__ import annotations

import logging
import shutil
from datetime import timedelta
from pathlib import Path
from typing import Any

from armkit.core.cancel import CancelToken
from armkit.core.files import File
from armkit.core.request import PackageRequest
from armkit.core.version import Version
from armkit.exceptions import FsError
from armkit.storage import registry as _registry
from armkit.storage.keys import registry_key
from armkit.storage.lock import DEFAULT_TIMEOUT, FileLock
from armkit.storage.metadata import METADATA_FILE, from_iso, read_json, utcnow
from armkit.storage.package import VERSION_DIR_RE, PackageDir
from armkit.storage.registry import RegistryHandle

logger = logging.getLogger(__name__)


class Store:
    """Content-addressed package cache rooted at *root*.

    Args:
        root: Cache root, normally ``~/.arm/storage``.
        lock_timeout: Seconds to wait for any registry or package lock.
    """

    def __init__(self, root: Path, lock_timeout: float = DEFAULT_TIMEOUT) -> None:
        self.root = root
        self.lock_timeout = lock_timeout

    @property
    def registries_dir(self) -> Path:
        return self.root / "registries"

    # -- Registries ---------------------------------------------------------

    def open_registry(self, config: dict[str, Any], cancel: CancelToken | None = None) -> RegistryHandle:
        return _registry.open_registry(self.registries_dir, config, cancel, self.lock_timeout)

    def touch_access(self, reg: RegistryHandle, cancel: CancelToken | None = None) -> None:
        _registry.touch(reg, update=False, cancel=cancel, lock_timeout=self.lock_timeout)

    def touch_update(self, reg: RegistryHandle, cancel: CancelToken | None = None) -> None:
        _registry.touch(reg, update=True, cancel=cancel, lock_timeout=self.lock_timeout)

    def find_registry(self, config: dict[str, Any]) -> RegistryHandle | None:
        """Return the cached registry for *config* without creating it."""
        key = registry_key(config)
        handle = RegistryHandle(key=key, path=self.registries_dir / key, config=config)
        return handle if handle.metadata_path.is_file() else None

    def registries(self) -> list[RegistryHandle]:
        """Every cached registry, with the config recorded in its metadata."""
        handles: list[RegistryHandle] = []
        if not self.registries_dir.is_dir():
            return handles
        for path in sorted(self.registries_dir.iterdir()):
            meta_path = path / METADATA_FILE
            if not (path.is_dir() and meta_path.is_file()):
                continue
            config = read_json(meta_path).get("config", {})
            handles.append(RegistryHandle(key=path.name, path=path, config=config))
        return handles

    def registry_metadata(self, reg: RegistryHandle) -> dict[str, Any]:
        return read_json(reg.metadata_path)

    # -- Versions -----------------------------------------------------------

    def package(self, reg: RegistryHandle, request: PackageRequest) -> PackageDir:
        return PackageDir(reg, request, self.lock_timeout)

    def put_version(
        self,
        reg: RegistryHandle,
        request: PackageRequest,
        version: Version,
        files: list[File],
        cancel: CancelToken | None = None,
        overwrite: bool = True,
    ) -> Path:
        return self.package(reg, request).put(version, files, cancel, overwrite)

    def get_version(
        self,
        reg: RegistryHandle,
        request: PackageRequest,
        version: Version,
        cancel: CancelToken | None = None,
    ) -> list[File]:
        return self.package(reg, request).get(version, cancel)

    def list_versions(self, reg: RegistryHandle, request: PackageRequest) -> list[Version]:
        return self.package(reg, request).versions()

    def list_packages(self, reg: RegistryHandle) -> list[dict[str, Any]]:
        """Return the stored request of every package cached under *reg*."""
        requests = []
        if not reg.packages_dir.is_dir():
            return requests
        for entry in sorted(reg.packages_dir.iterdir()):
            meta_path = entry / METADATA_FILE
            if entry.is_dir() and meta_path.is_file():
                requests.append(read_json(meta_path).get("request", {}))
        return requests

    def remove_version(
        self,
        reg: RegistryHandle,
        request: PackageRequest,
        version: Version,
        cancel: CancelToken | None = None,
    ) -> bool:
        return self.package(reg, request).remove_version(version, cancel)

    def remove_package(
        self, reg: RegistryHandle, request: PackageRequest, cancel: CancelToken | None = None
    ) -> bool:
        return self.package(reg, request).remove(cancel)

    def wipe(self) -> None:
        """Delete every cached registry."""
        if not self.registries_dir.exists():
            return
        try:
            shutil.rmtree(self.registries_dir)
        except OSError as exc:
            raise FsError(f"cannot wipe {self.registries_dir}: {exc}") from exc
        logger.info("Wiped package cache at %s", self.registries_dir)

    # -- Eviction -----------------------------------------------------------

    def evict_by_age(self, max_age: timedelta, cancel: CancelToken | None = None) -> list[Path]:
        """Remove versions whose ``updatedAt`` is older than *max_age*."""
        return self._evict("updatedAt", max_age, cancel)

    def evict_by_idle(self, max_idle: timedelta, cancel: CancelToken | None = None) -> list[Path]:
        """Remove versions whose ``lastAccessedAt`` is older than *max_idle*."""
        return self._evict("lastAccessedAt", max_idle, cancel)

    def _evict(self, field: str, window: timedelta, cancel: CancelToken | None) -> list[Path]:
        cutoff = utcnow() - window
        removed: list[Path] = []
        for pkg_dir in self._package_dirs():
            with FileLock(pkg_dir, timeout=self.lock_timeout, cancel=cancel):
                for version_dir in sorted(pkg_dir.iterdir()):
                    if not VERSION_DIR_RE.match(version_dir.name):
                        continue
                    meta_path = version_dir / METADATA_FILE
                    if not meta_path.is_file():
                        continue
                    stamp = read_json(meta_path).get(field)
                    try:
                        expired = stamp is None or from_iso(stamp) < cutoff
                    except ValueError:
                        expired = True
                    if not expired:
                        continue
                    try:
                        shutil.rmtree(version_dir)
                    except OSError as exc:
                        raise FsError(f"cannot evict {version_dir}: {exc}") from exc
                    logger.info("Evicted %s (%s before %s)", version_dir, field, cutoff.isoformat())
                    removed.append(version_dir)
        return removed

    def _package_dirs(self) -> list[Path]:
        if not self.registries_dir.is_dir():
            return []
        return sorted(
            p
            for p in self.registries_dir.glob("*/packages/*")
            if p.is_dir()
        )
