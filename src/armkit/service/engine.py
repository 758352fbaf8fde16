"""InstallEngine: reconcile manifest, lockfile, registries and sinks.

``install_all`` is the single entry point. For every declared dependency
it resolves a version (the lockfile pin when the declared constraint still
admits it, otherwise the best match among the versions the registry
offers), fetches the package through the caching adapter, checks the
integrity digest against the lockfile, compiles it for each sink's tool
and deploys it. Dependencies are independent and run in parallel on a
thread pool; lockfile updates happen on the calling thread once every
worker has finished.

The convenience operations (``install``, ``uninstall``, ``update``,
``upgrade``) change the manifest in memory and delegate to the same
reconciliation. ``info`` and ``cached_packages`` read local state only
and never contact a registry.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import timedelta
from pathlib import Path
from typing import TypeVar

from armkit.config.rc import RcFile
from armkit.config.settings import Settings
from armkit.core.cancel import CancelToken
from armkit.core.compiler import compile_package_files
from armkit.core.lockfile import LockedPackage, Lockfile
from armkit.core.manifest import (
    Dependency,
    Manifest,
    ManifestFile,
    ResourceType,
)
from armkit.core.request import PackageRequest
from armkit.core.version import (
    Constraint,
    ConstraintKind,
    ParseMode,
    Version,
    best_match,
    newest,
    parse_constraint,
    parse_version,
)
from armkit.exceptions import (
    ArmError,
    BackendError,
    CancelledError,
    IntegrityMismatchError,
    NoMatchError,
    NotFoundError,
)
from armkit.registry import OpenRegistry, Package, RegistryAdapter
from armkit.service.models import (
    CachedPackage,
    InstallFailure,
    InstallReport,
    InstallResult,
    OutdatedEntry,
    PackageInfo,
)
from armkit.sink import SinkDeployer
from armkit.storage import Store

logger = logging.getLogger(__name__)

DEFAULT_RULESET_PRIORITY = 100
RETRY_BASE_DELAY: float = 0.2

T = TypeVar("T")


class InstallEngine:
    """Top-level orchestrator bound to one manifest.

    Args:
        settings: Paths, worker pool size and retry/lock knobs.
        adapter: Registry adapter; built from *settings* when omitted.
    """

    def __init__(self, settings: Settings, adapter: RegistryAdapter | None = None) -> None:
        self.settings = settings
        self.manifest_file = ManifestFile(settings.manifest_path)
        if adapter is None:
            store = Store(settings.storage_root, settings.lock_timeout)
            adapter = RegistryAdapter(store, RcFile(settings.project_dir, Path.home()))
        self.adapter = adapter
        self.store = adapter.store

    @property
    def base_dir(self) -> Path:
        return self.settings.manifest_path.parent

    def load_manifest(self) -> Manifest:
        return self.manifest_file.load()

    def load_lockfile(self) -> Lockfile:
        return Lockfile.read(self.settings.lockfile_path)

    def deployer(self, manifest: Manifest, sink_name: str) -> SinkDeployer:
        return SinkDeployer(manifest.sink(sink_name), self.base_dir, self.settings.lock_timeout)

    # -----------------------------------------------------------------------
    # Reconciliation
    # -----------------------------------------------------------------------

    def install_all(self, cancel: CancelToken | None = None) -> InstallReport:
        """Install every manifest dependency, honouring lockfile pins.

        Returns:
            The per-package report; the lockfile is persisted even when some
            packages failed.

        Raises:
            ParseError: If the manifest or lockfile is malformed.
        """
        return self._reconcile(self.load_manifest(), cancel=cancel)

    def _reconcile(
        self,
        manifest: Manifest,
        *,
        unpinned: set[str] | None = None,
        use_latest: set[str] | None = None,
        cancel: CancelToken | None = None,
    ) -> InstallReport:
        """Run one install pass over *manifest*.

        Args:
            manifest: In-memory manifest to reconcile against.
            unpinned: Package ids whose lockfile pin is ignored; None means
                every pin is honoured.
            use_latest: Package ids resolved against ``latest`` instead of
                their declared constraint.
            cancel: Outer cancellation token.
        """
        lockfile = self.load_lockfile()
        unpinned = unpinned or set()
        use_latest = use_latest or set()
        token = CancelToken()
        if cancel is not None and cancel.cancelled:
            token.cancel()

        report = InstallReport()
        deps = [manifest.packages[k] for k in sorted(manifest.packages)]
        with ThreadPoolExecutor(max_workers=self.settings.workers) as pool:
            futures = {
                pool.submit(
                    self._install_one,
                    manifest,
                    lockfile,
                    dep,
                    dep.id in unpinned,
                    dep.id in use_latest,
                    token,
                    cancel,
                ): dep
                for dep in deps
            }
            for future in as_completed(futures):
                dep = futures[future]
                try:
                    report.installed.append(future.result())
                except ArmError as exc:
                    logger.error("Failed to install %s: %s", dep.id, exc)
                    report.failed.append(InstallFailure(dep.id, exc))
                    if self.settings.fail_fast:
                        token.cancel()

        report.installed.sort(key=lambda r: r.package_id)
        report.failed.sort(key=lambda f: f.package_id)
        self._apply_results(manifest, lockfile, report, cancel)
        lockfile.write(self.settings.lockfile_path)
        return report

    def _apply_results(
        self,
        manifest: Manifest,
        lockfile: Lockfile,
        report: InstallReport,
        cancel: CancelToken | None,
    ) -> None:
        """Record installs in the lockfile and prune what nothing references."""
        for result in report.installed:
            locked = result.locked
            for stale in lockfile.remove_package(locked.registry, locked.package):
                if stale.key != locked.key:
                    report.pruned.append(stale.key)
            lockfile.add(locked)
            dep = manifest.packages[result.package_id]
            for sink_name in sorted(set(manifest.sinks) - set(dep.sinks)):
                self.deployer(manifest, sink_name).uninstall(locked.registry, locked.package, cancel)

        orphans = sorted(
            {(e.registry, e.package) for e in lockfile.entries if e.package_id not in manifest.packages}
        )
        for registry, package in orphans:
            for entry in lockfile.remove_package(registry, package):
                report.pruned.append(entry.key)
                logger.info("Pruned %s", entry.key)
            for sink_name in sorted(manifest.sinks):
                self.deployer(manifest, sink_name).uninstall(registry, package, cancel)
        report.pruned.sort()

    def _install_one(
        self,
        manifest: Manifest,
        lockfile: Lockfile,
        dep: Dependency,
        ignore_pin: bool,
        use_latest: bool,
        token: CancelToken,
        outer: CancelToken | None,
    ) -> InstallResult:
        def check() -> None:
            if outer is not None and outer.cancelled:
                token.cancel()
            token.check()

        check()
        sinks = [manifest.sink(name) for name in dep.sinks]
        constraint = _constraint_for(dep, use_latest)
        request = PackageRequest.create(dep.package, dep.include, dep.exclude)
        reg = self.adapter.open_registry(manifest.registry(dep.registry), token)

        version = None if ignore_pin else _pinned_version(lockfile, dep, constraint)
        pinned = version is not None
        if version is None:
            check()
            version = self._resolve(reg, request, constraint, token)
            logger.debug("Resolved %s %s to %s", dep.id, constraint, version.raw)
        else:
            logger.debug("Using pinned %s@%s", dep.id, version.raw)

        check()
        package = self._fetch(reg, request, version, pinned, token)
        label = version.canonical
        locked = lockfile.get(dep.registry, dep.package, label)
        # A re-resolved branch may legitimately have moved.
        recheck = version.semantic or not ignore_pin
        if locked is not None and recheck and locked.integrity != package.integrity:
            raise IntegrityMismatchError(
                f"{locked.key}: lockfile has {locked.integrity}, registry content is "
                f"{package.integrity}"
            )

        priority = None
        if dep.resource_type is ResourceType.RULESET:
            priority = dep.priority if dep.priority is not None else DEFAULT_RULESET_PRIORITY
        for sink in sinks:
            check()
            compiled = compile_package_files(sink.tool, package.namespace, list(package.files))
            SinkDeployer(sink, self.base_dir, self.settings.lock_timeout).install(
                dep.registry, dep.package, label, compiled, priority, token
            )

        return InstallResult(
            package_id=dep.id,
            locked=LockedPackage(dep.registry, dep.package, label, package.integrity),
            sinks=tuple(dep.sinks),
            pinned=pinned,
        )

    def _resolve(
        self,
        reg: OpenRegistry,
        request: PackageRequest,
        constraint: Constraint,
        token: CancelToken,
    ) -> Version:
        """Pick the best version the registry offers for *constraint*.

        When the registry stays unreachable after retries, the versions
        already in the cache are used instead; if none of them satisfies
        *constraint* the original backend error is raised.
        """
        try:
            versions = self._retry(lambda: self.adapter.list_versions(reg, request, token), token)
        except BackendError as exc:
            try:
                version = best_match(self.adapter.cached_versions(reg, request), constraint)
            except NoMatchError:
                raise exc from None
            logger.warning("%s/%s: %s; resolving from cache to %s", reg.name, request.name, exc, version.raw)
            return version
        return best_match(versions, constraint)

    def _fetch(
        self,
        reg: OpenRegistry,
        request: PackageRequest,
        version: Version,
        pinned: bool,
        token: CancelToken,
    ) -> Package:
        """Fetch *version*, mapping a lockfile pin back to the registry's tag.

        Pins are recorded in canonical form (``1.2.0``) while registries may
        tag them differently (``v1.2.0``); the cache is tried first so that a
        cached pin never needs the registry.
        """
        try:
            return self._retry(lambda: self.adapter.get_package(reg, request, version, token), token)
        except NotFoundError:
            if not (pinned and version.semantic):
                raise
        listed = self._retry(lambda: self.adapter.list_versions(reg, request, token), token)
        for candidate in sorted(listed, key=lambda v: v.raw):
            if candidate.semantic and candidate.canonical == version.canonical and candidate.raw != version.raw:
                return self._retry(lambda: self.adapter.get_package(reg, request, candidate, token), token)
        raise NotFoundError(f"{reg.name}/{request.name}@{version.raw} is no longer available")

    def _retry(self, call: Callable[[], T], token: CancelToken) -> T:
        """Run *call*, retrying ``BackendError`` with exponential backoff."""
        attempts = max(1, self.settings.retries)
        delay = RETRY_BASE_DELAY
        for attempt in range(1, attempts + 1):
            try:
                return call()
            except BackendError as exc:
                if attempt == attempts:
                    raise
                logger.warning("Attempt %d/%d failed: %s; retrying in %.1fs", attempt, attempts, exc, delay)
                if token.wait(delay):
                    raise CancelledError("cancelled while waiting to retry") from exc
                delay *= 2
        raise AssertionError("unreachable")

    # -----------------------------------------------------------------------
    # Convenience operations
    # -----------------------------------------------------------------------

    def install(self, dep: Dependency, cancel: CancelToken | None = None) -> InstallReport:
        """Declare (or redeclare) *dep* and install it.

        The manifest is saved only if *dep* installed successfully.
        """
        manifest = self.load_manifest()
        manifest.registry(dep.registry)
        for sink_name in dep.sinks:
            manifest.sink(sink_name)
        manifest.put(dep)
        report = self._reconcile(manifest, unpinned={dep.id}, cancel=cancel)
        if report.result(dep.id) is not None:
            self.manifest_file.save(manifest)
        return report

    def uninstall(self, registry: str, package: str, cancel: CancelToken | None = None) -> InstallReport:
        """Remove ``registry/package`` from the manifest, sinks and lockfile."""
        manifest = self.load_manifest()
        manifest.remove(f"{registry}/{package}")
        self.manifest_file.save(manifest)
        return self._reconcile(manifest, cancel=cancel)

    def update(self, package_ids: list[str] | None = None, cancel: CancelToken | None = None) -> InstallReport:
        """Re-resolve dependencies within their declared constraints."""
        manifest = self.load_manifest()
        targets = self._targets(manifest, package_ids)
        return self._reconcile(manifest, unpinned=targets, cancel=cancel)

    def upgrade(
        self,
        package_ids: list[str] | None = None,
        latest: bool = False,
        cancel: CancelToken | None = None,
    ) -> InstallReport:
        """Ignore lockfile pins for *package_ids* (all when None).

        With *latest*, resolve against ``latest`` and rewrite each upgraded
        constraint in the manifest to ``^{version}``.
        """
        manifest = self.load_manifest()
        targets = self._targets(manifest, package_ids)
        report = self._reconcile(
            manifest,
            unpinned=targets,
            use_latest=targets if latest else set(),
            cancel=cancel,
        )
        if latest:
            changed = False
            for result in report.installed:
                if result.package_id not in targets:
                    continue
                version = parse_version(result.locked.version)
                if not version.semantic:
                    continue
                dep = manifest.packages[result.package_id]
                manifest.put(dataclasses.replace(dep, version=f"^{version.canonical}"))
                changed = True
            if changed:
                self.manifest_file.save(manifest)
        return report

    def outdated(self, cancel: CancelToken | None = None) -> list[OutdatedEntry]:
        """Report current, wanted and latest versions of every dependency."""
        manifest = self.load_manifest()
        lockfile = self.load_lockfile()
        token = cancel or CancelToken()
        entries = []
        for package_id in sorted(manifest.packages):
            dep = manifest.packages[package_id]
            constraint = _constraint_for(dep, use_latest=False)
            reg = self.adapter.open_registry(manifest.registry(dep.registry), token)
            request = PackageRequest.create(dep.package, dep.include, dep.exclude)
            versions = self._retry(lambda: self.adapter.list_versions(reg, request, token), token)
            current = _pinned_version(lockfile, dep, None)
            try:
                wanted: Version | None = best_match(versions, constraint)
            except NoMatchError:
                wanted = None
            latest = newest(versions) or wanted
            entries.append(
                OutdatedEntry(
                    package_id=package_id,
                    constraint=dep.version,
                    current=current.canonical if current else None,
                    wanted=wanted.canonical if wanted else None,
                    latest=latest.canonical if latest else None,
                )
            )
        return entries

    def info(self, package_ids: list[str] | None = None) -> list[PackageInfo]:
        """Describe declared dependencies from local state only.

        Nothing is fetched: versions come from the lockfile and the cache,
        deployed files from each sink's index.

        Raises:
            ConfigError: If a package id is not declared.
        """
        manifest = self.load_manifest()
        lockfile = self.load_lockfile()
        infos = []
        for package_id in sorted(self._targets(manifest, package_ids)):
            dep = manifest.packages[package_id]
            installed: dict[str, list[str]] = {}
            for sink_name in dep.sinks:
                files = [
                    path
                    for entry in self.deployer(manifest, sink_name).installed()
                    if (entry.registry, entry.package) == (dep.registry, dep.package)
                    for path in entry.files
                ]
                installed[sink_name] = sorted(files)
            priority = None
            if dep.resource_type is ResourceType.RULESET:
                priority = dep.priority if dep.priority is not None else DEFAULT_RULESET_PRIORITY
            infos.append(
                PackageInfo(
                    package_id=package_id,
                    resource_type=dep.resource_type.value,
                    constraint=dep.version,
                    locked=tuple(lockfile.find(dep.registry, dep.package)),
                    include=tuple(dep.include),
                    exclude=tuple(dep.exclude),
                    priority=priority,
                    installed=installed,
                    cached=tuple(v.canonical for v in self._cached_versions(manifest, dep)),
                )
            )
        return infos

    def _cached_versions(self, manifest: Manifest, dep: Dependency) -> list[Version]:
        handle = self.store.find_registry(manifest.registry(dep.registry).to_dict())
        if handle is None:
            return []
        request = PackageRequest.create(dep.package, dep.include, dep.exclude)
        return sorted(self.store.list_versions(handle, request), key=lambda v: v.key)

    def cached_packages(self) -> list[CachedPackage]:
        """List every package in the cache across all registries."""
        packages = []
        for handle in self.store.registries():
            meta = self.store.registry_metadata(handle)
            for stored in self.store.list_packages(handle):
                request = _stored_request(stored)
                if request is None:
                    logger.warning("Skipping cached package with malformed request in %s", handle.path)
                    continue
                versions = sorted(self.store.list_versions(handle, request), key=lambda v: v.key)
                packages.append(
                    CachedPackage(
                        registry_url=str(handle.config.get("url", "")),
                        registry_type=str(handle.config.get("type", "")),
                        name=request.name,
                        include=request.include,
                        exclude=request.exclude,
                        versions=tuple(v.canonical for v in versions),
                        last_updated=meta.get("lastUpdatedOn"),
                    )
                )
        return packages

    def remove_cached(
        self,
        package_id: str,
        version: str | None = None,
        cancel: CancelToken | None = None,
    ) -> bool:
        """Drop a declared package (or one of its versions) from the cache.

        The package's declared include/exclude globs select the cache
        entry, as they do on install.

        Returns:
            True if anything was removed.

        Raises:
            ConfigError: If *package_id* is not declared.
        """
        manifest = self.load_manifest()
        dep = manifest.dependency(package_id)
        handle = self.store.find_registry(manifest.registry(dep.registry).to_dict())
        if handle is None:
            return False
        request = PackageRequest.create(dep.package, dep.include, dep.exclude)
        if version is None:
            removed = self.store.remove_package(handle, request, cancel)
        else:
            parsed = parse_version(version)
            if not parsed.semantic:
                return False
            removed = self.store.remove_version(handle, request, parsed, cancel)
        if removed:
            logger.info("Removed %s%s from the cache", package_id, f"@{version}" if version else "")
        return removed

    def clean_sinks(self, cancel: CancelToken | None = None) -> dict[str, list[str]]:
        """Remove unreferenced files from every sink; returns removals per sink."""
        manifest = self.load_manifest()
        return {name: self.deployer(manifest, name).clean(cancel) for name in sorted(manifest.sinks)}

    def nuke_sinks(self) -> list[str]:
        """Delete every armkit file from every sink; returns the sink names."""
        manifest = self.load_manifest()
        for name in sorted(manifest.sinks):
            self.deployer(manifest, name).nuke()
            logger.info("Nuked sink %s", name)
        return sorted(manifest.sinks)

    def clean_cache(
        self,
        max_age: timedelta | None = None,
        max_idle: timedelta | None = None,
        cancel: CancelToken | None = None,
    ) -> list[Path]:
        removed: list[Path] = []
        if max_age is not None:
            removed += self.store.evict_by_age(max_age, cancel)
        if max_idle is not None:
            removed += self.store.evict_by_idle(max_idle, cancel)
        return removed

    def nuke_cache(self) -> None:
        self.store.wipe()

    def close(self) -> None:
        self.adapter.close()

    @staticmethod
    def _targets(manifest: Manifest, package_ids: list[str] | None) -> set[str]:
        if not package_ids:
            return set(manifest.packages)
        for package_id in package_ids:
            manifest.dependency(package_id)
        return set(package_ids)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _constraint_for(dep: Dependency, use_latest: bool) -> Constraint:
    if use_latest:
        return Constraint(ConstraintKind.LATEST)
    return parse_constraint(dep.version, ParseMode.LOOSE)


def _stored_request(stored: dict) -> PackageRequest | None:
    name = stored.get("name")
    include = stored.get("include", [])
    exclude = stored.get("exclude", [])
    if not isinstance(name, str) or not isinstance(include, list) or not isinstance(exclude, list):
        return None
    return PackageRequest.create(name, include, exclude)


def _pinned_version(lockfile: Lockfile, dep: Dependency, constraint: Constraint | None) -> Version | None:
    """Return the lockfile's pin for *dep* that *constraint* still admits."""
    pins = [parse_version(p.version) for p in lockfile.find(dep.registry, dep.package)]
    if not pins:
        return None
    try:
        return best_match(pins, constraint or Constraint(ConstraintKind.LATEST))
    except NoMatchError:
        if constraint is not None:
            logger.info("Pinned %s no longer satisfies %s; re-resolving", dep.id, dep.version)
        return None
