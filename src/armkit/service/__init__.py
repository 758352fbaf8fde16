"""Install orchestration: manifest, lockfile, registries and sinks."""

from armkit.service.engine import InstallEngine
from armkit.service.models import (
    CachedPackage,
    InstallFailure,
    InstallReport,
    InstallResult,
    OutdatedEntry,
    PackageInfo,
)

__all__ = [
    "CachedPackage",
    "InstallEngine",
    "InstallFailure",
    "InstallReport",
    "InstallResult",
    "OutdatedEntry",
    "PackageInfo",
]
