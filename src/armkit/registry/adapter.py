"""Caching front over registry backends.

``RegistryAdapter`` is the only component that reads or writes package
versions in the ``Store``. ``get_package`` serves a version from the cache
when present and otherwise fetches it from the backend, expands archives,
applies the request's include/exclude globs and stores the result.
Opaque versions (branch heads) are always fetched, never cached, because
their content moves.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from armkit.config.rc import CredentialSource
from armkit.core.cancel import CancelToken
from armkit.core.files import File, compute_integrity, sort_files
from armkit.core.manifest import RegistryConfig
from armkit.core.patterns import filter_files
from armkit.core.request import PackageRequest
from armkit.core.version import Version
from armkit.exceptions import NotFoundError
from armkit.registry.archive import extract_archives
from armkit.registry.base import RegistryBackend
from armkit.registry.factory import create_backend
from armkit.storage import RegistryHandle, Store

logger = logging.getLogger(__name__)

BackendFactory = Callable[[RegistryConfig, RegistryHandle, float], RegistryBackend]


@dataclass(frozen=True)
class Package:
    """A resolved package version.

    Attributes:
        registry: Registry name.
        name: Package name.
        version: Resolved version.
        files: Selected files, sorted by path.
        integrity: ``sha256-<hex>`` digest of *files*.
    """

    registry: str
    name: str
    version: Version
    files: tuple[File, ...]
    integrity: str

    @property
    def namespace(self) -> str:
        return f"{self.registry}/{self.name}@{self.version.canonical}"


@dataclass(frozen=True)
class OpenRegistry:
    name: str
    config: RegistryConfig
    handle: RegistryHandle
    backend: RegistryBackend


class RegistryAdapter:
    """Uniform, cached access to every configured registry.

    Args:
        store: The package cache.
        credentials: Source of registry tokens; None means unauthenticated.
        backend_factory: Builds a backend from a config and cache handle.
    """

    def __init__(
        self,
        store: Store,
        credentials: CredentialSource | None = None,
        backend_factory: BackendFactory = create_backend,
    ) -> None:
        self.store = store
        self.credentials = credentials
        self.backend_factory = backend_factory
        self._open: dict[str, OpenRegistry] = {}
        self._guard = threading.Lock()

    def open_registry(self, config: RegistryConfig, cancel: CancelToken | None = None) -> OpenRegistry:
        """Open (once per adapter) the cache directory and backend of *config*."""
        with self._guard:
            reg = self._open.get(config.name)
            if reg is not None and reg.config == config:
                return reg
            handle = self.store.open_registry(config.to_dict(), cancel)
            backend = self.backend_factory(config, handle, self.store.lock_timeout)
            if self.credentials is not None:
                backend.apply_credentials(self.credentials)
            reg = OpenRegistry(config.name, config, handle, backend)
            self._open[config.name] = reg
            return reg

    def list_versions(
        self, reg: OpenRegistry, request: PackageRequest, cancel: CancelToken | None = None
    ) -> list[Version]:
        """Return the versions the backend offers for *request*."""
        versions = reg.backend.list_versions(request, cancel)
        self.store.touch_access(reg.handle, cancel)
        return versions

    def cached_versions(self, reg: OpenRegistry, request: PackageRequest) -> list[Version]:
        return self.store.list_versions(reg.handle, request)

    def get_package(
        self,
        reg: OpenRegistry,
        request: PackageRequest,
        version: Version,
        cancel: CancelToken | None = None,
    ) -> Package:
        """Return the files of *version*, from the cache when possible.

        Raises:
            BackendError: On transport faults during a fetch.
            NotFoundError: If the backend does not have *version*.
            FsError: On cache failures.
        """
        if version.semantic:
            try:
                files = self.store.get_version(reg.handle, request, version, cancel)
            except NotFoundError:
                logger.debug("Cache miss for %s/%s@%s", reg.name, request.name, version.raw)
            else:
                logger.debug("Cache hit for %s/%s@%s", reg.name, request.name, version.raw)
                return self._package(reg, request, version, files)

        raw = reg.backend.fetch(request, version, cancel)
        files = sort_files(filter_files(extract_archives(raw), list(request.include), list(request.exclude)))
        if version.semantic:
            self.store.put_version(reg.handle, request, version, files, cancel, overwrite=False)
            self.store.touch_update(reg.handle, cancel)
            files = self.store.get_version(reg.handle, request, version, cancel)
        return self._package(reg, request, version, files)

    def _package(
        self, reg: OpenRegistry, request: PackageRequest, version: Version, files: list[File]
    ) -> Package:
        return Package(
            registry=reg.name,
            name=request.name,
            version=version,
            files=tuple(files),
            integrity=compute_integrity(files),
        )

    def close(self) -> None:
        with self._guard:
            for reg in self._open.values():
                reg.backend.close()
            self._open.clear()
