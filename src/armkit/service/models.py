"""Result types returned by the install engine."""

from __future__ import annotations

from dataclasses import dataclass, field

from armkit.core.lockfile import LockedPackage
from armkit.exceptions import ArmError, ParseError


@dataclass(frozen=True)
class InstallResult:
    """One dependency installed successfully.

    Attributes:
        package_id: ``registry/package``.
        locked: The lockfile entry recorded for it.
        sinks: Names of the sinks it was deployed to.
        pinned: True if the lockfile's version was reused.
    """

    package_id: str
    locked: LockedPackage
    sinks: tuple[str, ...] = ()
    pinned: bool = False


@dataclass(frozen=True)
class InstallFailure:
    package_id: str
    error: ArmError

    @property
    def message(self) -> str:
        return str(self.error)


@dataclass
class InstallReport:
    """Outcome of one reconciliation run.

    Attributes:
        installed: Successful installs, ordered by package id.
        failed: Per-package failures, ordered by package id.
        pruned: Lockfile keys removed because nothing references them.
    """

    installed: list[InstallResult] = field(default_factory=list)
    failed: list[InstallFailure] = field(default_factory=list)
    pruned: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def has_parse_errors(self) -> bool:
        return any(isinstance(f.error, ParseError) for f in self.failed)

    def result(self, package_id: str) -> InstallResult | None:
        for r in self.installed:
            if r.package_id == package_id:
                return r
        return None


@dataclass(frozen=True)
class OutdatedEntry:
    """Version status of one dependency.

    Attributes:
        package_id: ``registry/package``.
        constraint: Declared constraint string.
        current: Version pinned in the lockfile, if any.
        wanted: Best version the constraint admits, if any.
        latest: Newest version available, if any.
    """

    package_id: str
    constraint: str
    current: str | None
    wanted: str | None
    latest: str | None

    @property
    def is_outdated(self) -> bool:
        return self.current != self.wanted or self.current != self.latest


@dataclass(frozen=True)
class PackageInfo:
    """Everything known locally about one declared dependency.

    Attributes:
        package_id: ``registry/package``.
        resource_type: ``ruleset`` or ``promptset``.
        constraint: Declared constraint string.
        locked: Lockfile entries for the package.
        include: Declared include globs.
        exclude: Declared exclude globs.
        priority: Effective ruleset priority; None for promptsets.
        installed: Sink name to the sink-relative files deployed there.
        cached: Versions held in the package cache, canonical form.
    """

    package_id: str
    resource_type: str
    constraint: str
    locked: tuple[LockedPackage, ...] = ()
    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    priority: int | None = None
    installed: dict[str, list[str]] = field(default_factory=dict)
    cached: tuple[str, ...] = ()


@dataclass(frozen=True)
class CachedPackage:
    """One package directory in the cache, as ``arm cache list`` shows it."""

    registry_url: str
    registry_type: str
    name: str
    include: tuple[str, ...]
    exclude: tuple[str, ...]
    versions: tuple[str, ...]
    last_updated: str | None = None
