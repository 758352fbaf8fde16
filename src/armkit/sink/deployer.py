"""Atomic per-package deployment into a sink directory.

Every mutation of a sink runs under a ``FileLock`` on its index file.
``install`` stages the new files in a scratch directory under ``arm/``,
moves them into place, then removes the files of any other installed
version of the same package and records the new version in the index.
The index only ever names files that are on disk. The generated priority
index rule is refreshed after each change.
"""

from __future__ import annotations

import logging
import os
import posixpath
import shutil
import uuid
from pathlib import Path, PurePosixPath

from armkit.core.cancel import CancelToken, ensure_token
from armkit.core.compiler import Tool, rule_filename
from armkit.core.files import File
from armkit.core.manifest import Layout, SinkConfig
from armkit.exceptions import FsError
from armkit.sink.index import IndexEntry, SinkIndex
from armkit.sink.paths import ARM_DIR, FLAT_PREFIX, target_path
from armkit.sink.priority import INDEX_RULE_ID, INDEX_RULESET_ID, build_index_file
from armkit.storage.lock import DEFAULT_TIMEOUT, LOCK_SUFFIX, FileLock

logger = logging.getLogger(__name__)

INDEX_FILE = "arm-index.json"
STAGING_PREFIX = ".staging-"


def _check_rel(path: str) -> str:
    rel = PurePosixPath(path)
    if rel.is_absolute() or ".." in rel.parts or not rel.parts:
        raise FsError(f"refusing to deploy unsafe path {path!r}")
    return rel.as_posix()


class SinkDeployer:
    """Installs, removes and cleans packages in one sink.

    Args:
        sink: Sink configuration (directory, tool, layout).
        base_dir: Directory that a relative sink directory is resolved
            against, normally the manifest's directory.
        lock_timeout: Seconds to wait for the sink lock.
    """

    def __init__(
        self,
        sink: SinkConfig,
        base_dir: Path | None = None,
        lock_timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.sink = sink
        directory = Path(sink.directory)
        self.root = directory if directory.is_absolute() or base_dir is None else base_dir / directory
        self.lock_timeout = lock_timeout

    @property
    def tool(self) -> Tool:
        return self.sink.tool

    @property
    def arm_dir(self) -> Path:
        return self.root / ARM_DIR

    @property
    def index_path(self) -> Path:
        return self.arm_dir / INDEX_FILE

    def _lock(self, cancel: CancelToken | None) -> FileLock:
        try:
            self.arm_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FsError(f"cannot create {self.arm_dir}: {exc}") from exc
        return FileLock(self.index_path, timeout=self.lock_timeout, cancel=cancel)

    # -- Queries --------------------------------------------------------------

    def installed(self) -> list[IndexEntry]:
        index = SinkIndex.load(self.index_path)
        return [index.entries[k] for k in sorted(index.entries)]

    def priority_index_path(self) -> str:
        """Sink-relative path of the generated priority index rule."""
        name = rule_filename(self.tool, INDEX_RULESET_ID, INDEX_RULE_ID)
        if self.sink.layout is Layout.FLAT:
            return name
        return posixpath.join(ARM_DIR, name)

    # -- Mutations ------------------------------------------------------------

    def install(
        self,
        registry: str,
        package: str,
        version: str,
        files: list[File],
        priority: int | None = None,
        cancel: CancelToken | None = None,
    ) -> IndexEntry:
        """Deploy *files* as ``registry/package@version``.

        The new files are moved into place first; only once every move has
        succeeded are the files of other installed versions of the package
        removed and the index rewritten. A failed move rolls back the files
        already moved, so the sink and its index stay as they were. Pass a
        *priority* for rulesets and None for promptsets.

        Returns:
            The new index entry.

        Raises:
            FsError: On filesystem failures.
            CancelledError: If cancelled before the files are moved in.
        """
        token = ensure_token(cancel)
        targets = [
            (f, _check_rel(target_path(self.sink.layout, registry, package, version, f.path)))
            for f in files
        ]
        new_paths = {rel for _, rel in targets}
        with self._lock(token):
            index = SinkIndex.load(self.index_path)
            previous = index.for_package(registry, package)
            tracked = index.referenced()
            staging = self.arm_dir / f"{STAGING_PREFIX}{uuid.uuid4().hex}"
            moved: list[str] = []
            try:
                for f, rel in targets:
                    token.check()
                    staged = staging / rel
                    staged.parent.mkdir(parents=True, exist_ok=True)
                    staged.write_bytes(f.content)
                token.check()

                for _, rel in targets:
                    dest = self.root / rel
                    dest.parent.mkdir(parents=True, exist_ok=True)
                    os.replace(staging / rel, dest)
                    moved.append(rel)
            except OSError as exc:
                # Files overwritten in place are still indexed; only new paths go.
                self._remove_files([rel for rel in moved if rel not in tracked], strict=False)
                raise FsError(f"cannot deploy {registry}/{package}@{version} to {self.root}: {exc}") from exc
            finally:
                shutil.rmtree(staging, ignore_errors=True)

            for old in previous:
                self._remove_files([rel for rel in old.files if rel not in new_paths], strict=False)
                index.drop(old.key)
            entry = IndexEntry(
                registry=registry,
                package=package,
                version=version,
                files=sorted(new_paths),
                priority=priority,
            )
            index.put(entry)
            index.save()
            self._write_priority_index(index)
        logger.info("Deployed %s (%d file(s)) to %s", entry.key, len(entry.files), self.root)
        return entry

    def uninstall(self, registry: str, package: str, cancel: CancelToken | None = None) -> list[IndexEntry]:
        """Remove every installed version of ``registry/package``.

        Returns:
            The removed index entries (empty when nothing was installed).
        """
        if not self.index_path.exists():
            return []
        with self._lock(cancel):
            index = SinkIndex.load(self.index_path)
            removed = index.for_package(registry, package)
            for entry in removed:
                self._remove_files(entry.files)
                index.drop(entry.key)
            if removed:
                index.save()
                self._write_priority_index(index)
        for entry in removed:
            logger.info("Removed %s from %s", entry.key, self.root)
        return removed

    def clean(self, cancel: CancelToken | None = None) -> list[str]:
        """Delete files under the sink's ``arm`` area not referenced by the index.

        Returns:
            Sink-relative paths of the removed files.
        """
        token = ensure_token(cancel)
        removed: list[str] = []
        with self._lock(token):
            index = SinkIndex.load(self.index_path)
            keep = index.referenced() | {self.priority_index_path()}
            candidates = [p for p in self.arm_dir.rglob("*") if p.is_file()]
            candidates += [p for p in self.root.glob(f"{FLAT_PREFIX}*") if p.is_file()]
            for path in sorted(candidates):
                token.check()
                rel = path.relative_to(self.root).as_posix()
                if rel in keep or path == self.index_path or path.name.endswith(LOCK_SUFFIX):
                    continue
                try:
                    path.unlink()
                except OSError as exc:
                    raise FsError(f"cannot remove {path}: {exc}") from exc
                self._prune_parents(path.parent)
                removed.append(rel)
        if removed:
            logger.info("Cleaned %d unreferenced file(s) from %s", len(removed), self.root)
        return removed

    def nuke(self) -> None:
        """Remove the whole ``arm`` area and every flat ``arm_*`` file."""
        try:
            for path in self.root.glob(f"{FLAT_PREFIX}*"):
                if path.is_file():
                    path.unlink()
            if self.arm_dir.exists():
                shutil.rmtree(self.arm_dir)
        except OSError as exc:
            raise FsError(f"cannot remove armkit files from {self.root}: {exc}") from exc

    # -- Internals ------------------------------------------------------------

    def _remove_files(self, rel_paths: list[str], strict: bool = True) -> None:
        """Delete sink-relative files and prune emptied directories.

        With *strict* off, a file that cannot be removed is logged and left
        for ``clean`` instead of failing the operation.
        """
        for rel in rel_paths:
            path = self.root / rel
            try:
                path.unlink()
            except FileNotFoundError:
                logger.debug("Already gone: %s", path)
                continue
            except OSError as exc:
                if strict:
                    raise FsError(f"cannot remove {path}: {exc}") from exc
                logger.warning("Cannot remove %s: %s", path, exc)
                continue
            self._prune_parents(path.parent)

    def _prune_parents(self, directory: Path) -> None:
        """Remove empty directories up to, but not including, the sink root."""
        root = self.root.resolve()
        current = directory
        while current.resolve() != root and root in current.resolve().parents:
            try:
                current.rmdir()
            except OSError:
                return
            current = current.parent

    def _write_priority_index(self, index: SinkIndex) -> None:
        path = self.root / self.priority_index_path()
        rulesets = index.rulesets()
        try:
            if not rulesets:
                path.unlink(missing_ok=True)
                return
            compiled = build_index_file(self.tool, rulesets)
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}")
            tmp.write_bytes(compiled.content)
            os.replace(tmp, path)
        except OSError as exc:
            raise FsError(f"cannot write priority index {path}: {exc}") from exc
