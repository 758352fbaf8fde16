"""Per-package version directories: crash-safe writes and locked reads.

Layout under a registry::

    packages/{packageKey}/
        metadata.json          PackageMeta {request, updatedAt}
        v{M}.{m}.{p}/
            metadata.json      VersionMeta {version, updatedAt, lastAccessedAt}
            files/**

Writes build the version in a hidden scratch sibling and rename it into
place; the rename is the only commit point, so a reader either sees a
complete version directory or none at all.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import uuid
from pathlib import Path, PurePosixPath

from armkit.core.cancel import CancelToken, ensure_token
from armkit.core.files import File, sort_files
from armkit.core.request import PackageRequest
from armkit.core.version import Version, parse_version
from armkit.exceptions import FsError, NotFoundError
from armkit.storage.keys import package_key
from armkit.storage.lock import DEFAULT_TIMEOUT, FileLock
from armkit.storage.metadata import METADATA_FILE, advance, read_json, to_iso, utcnow, write_json
from armkit.storage.registry import RegistryHandle

logger = logging.getLogger(__name__)

FILES_DIR = "files"
SCRATCH_MARKER = ".tmp-"
VERSION_DIR_RE = re.compile(r"^v\d+\.\d+\.\d+$")


def _safe_relpath(path: str) -> PurePosixPath:
    rel = PurePosixPath(path)
    if rel.is_absolute() or not rel.parts or ".." in rel.parts:
        raise FsError(f"refusing to store unsafe path {path!r}")
    return rel


class PackageDir:
    """Operations on one ``packages/{packageKey}`` directory.

    Args:
        registry: Opened registry handle.
        request: The (normalized) package request.
        lock_timeout: Seconds to wait for the package lock.
    """

    def __init__(
        self,
        registry: RegistryHandle,
        request: PackageRequest,
        lock_timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.registry = registry
        self.request = request
        self.key = package_key(request)
        self.path = registry.packages_dir / self.key
        self.lock_timeout = lock_timeout

    def _lock(self, cancel: CancelToken | None) -> FileLock:
        return FileLock(self.path, timeout=self.lock_timeout, cancel=cancel)

    # -- Writes -------------------------------------------------------------

    def put(
        self,
        version: Version,
        files: list[File],
        cancel: CancelToken | None = None,
        overwrite: bool = True,
    ) -> Path:
        """Store *files* as *version*, replacing any previous copy.

        Args:
            version: A semantic version.
            files: Payload with unique relative paths.
            cancel: Checked between files; a cancel leaves no visible
                version directory.
            overwrite: When False, an already committed copy of *version*
                is kept and nothing is written.

        Returns:
            Path of the committed version directory.

        Raises:
            ValueError: If *version* is opaque.
            FsError: On filesystem failures.
            LockTimeoutError: If the package lock is not acquired in time.
            CancelledError: If cancelled before the commit point.
        """
        if not version.semantic:
            raise ValueError(f"opaque version {version.raw!r} cannot be cached")
        token = ensure_token(cancel)
        try:
            self.path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FsError(f"cannot create {self.path}: {exc}") from exc

        with self._lock(token):
            final = self.path / version.dirname
            if not overwrite and (final / METADATA_FILE).is_file() and (final / FILES_DIR).is_dir():
                logger.debug("%s@%s already cached by another writer", self.request.name, version.raw)
                return final
            scratch = self.path / f".{version.dirname}{SCRATCH_MARKER}{uuid.uuid4().hex}"
            try:
                self._sweep_scratch()
                (scratch / FILES_DIR).mkdir(parents=True)
                for f in files:
                    token.check()
                    dest = scratch / FILES_DIR / _safe_relpath(f.path)
                    dest.parent.mkdir(parents=True, exist_ok=True)
                    dest.write_bytes(f.content)
                token.check()
                now = to_iso(utcnow())
                write_json(
                    scratch / METADATA_FILE,
                    {"version": version.raw, "updatedAt": now, "lastAccessedAt": now},
                )
                token.check()
                if final.exists():
                    trash = self.path / f".{version.dirname}{SCRATCH_MARKER}old-{uuid.uuid4().hex}"
                    os.replace(final, trash)
                    os.replace(scratch, final)
                    shutil.rmtree(trash, ignore_errors=True)
                else:
                    os.replace(scratch, final)
            except OSError as exc:
                raise FsError(f"cannot store {self.request.name}@{version.raw}: {exc}") from exc
            finally:
                if scratch.exists():
                    shutil.rmtree(scratch, ignore_errors=True)

            try:
                write_json(
                    self.path / METADATA_FILE,
                    {"request": self.request.to_dict(), "updatedAt": now},
                )
            except OSError as exc:
                raise FsError(f"cannot write package metadata in {self.path}: {exc}") from exc
        logger.debug("Cached %s@%s in %s", self.request.name, version.raw, final)
        return final

    def _sweep_scratch(self) -> None:
        """Delete scratch directories left behind by interrupted writers."""
        for entry in self.path.iterdir():
            if entry.name.startswith(".") and SCRATCH_MARKER in entry.name and entry.is_dir():
                logger.info("Removing leftover scratch directory %s", entry)
                shutil.rmtree(entry, ignore_errors=True)

    # -- Reads --------------------------------------------------------------

    def get(self, version: Version, cancel: CancelToken | None = None) -> list[File]:
        """Return the cached files of *version* and bump its access time.

        Raises:
            NotFoundError: If the version is not cached.
            FsError: If the cached files cannot be read.
        """
        if not version.semantic or not self.path.is_dir():
            raise NotFoundError(f"{self.request.name}@{version.raw} is not cached")
        token = ensure_token(cancel)
        final = self.path / version.dirname
        meta_path = final / METADATA_FILE
        files_dir = final / FILES_DIR

        with self._lock(token):
            if not meta_path.is_file() or not files_dir.is_dir():
                raise NotFoundError(f"{self.request.name}@{version.raw} is not cached")
            meta = read_json(meta_path)
            if parse_version(str(meta.get("version", ""))).canonical != version.canonical:
                raise NotFoundError(f"{self.request.name}@{version.raw} is not cached")

            files: list[File] = []
            try:
                for p in sorted(files_dir.rglob("*")):
                    if not p.is_file():
                        continue
                    token.check()
                    files.append(File(p.relative_to(files_dir).as_posix(), p.read_bytes()))
            except OSError as exc:
                raise FsError(f"cannot read cached files in {final}: {exc}") from exc

            meta["lastAccessedAt"] = advance(meta.get("lastAccessedAt"))
            try:
                write_json(meta_path, meta)
            except OSError as exc:
                logger.warning("Cannot update access time of %s: %s", final, exc)
        return sort_files(files)

    def versions(self) -> list[Version]:
        """Return the versions cached for this package, in directory order."""
        if not self.path.is_dir():
            return []
        found: list[Version] = []
        try:
            for entry in sorted(self.path.iterdir()):
                if not VERSION_DIR_RE.match(entry.name):
                    continue
                meta_path = entry / METADATA_FILE
                if not meta_path.is_file():
                    continue
                meta = read_json(meta_path)
                version = parse_version(str(meta.get("version", "")))
                if version.semantic:
                    found.append(version)
        except OSError as exc:
            raise FsError(f"cannot list {self.path}: {exc}") from exc
        return found

    # -- Removal ------------------------------------------------------------

    def remove_version(self, version: Version, cancel: CancelToken | None = None) -> bool:
        if not self.path.is_dir():
            return False
        with self._lock(cancel):
            final = self.path / version.dirname
            if not final.exists():
                return False
            try:
                shutil.rmtree(final)
            except OSError as exc:
                raise FsError(f"cannot remove {final}: {exc}") from exc
        return True

    def remove(self, cancel: CancelToken | None = None) -> bool:
        if not self.path.is_dir():
            return False
        with self._lock(cancel):
            try:
                shutil.rmtree(self.path)
            except OSError as exc:
                raise FsError(f"cannot remove {self.path}: {exc}") from exc
        return True
