"""On-disk package cache with cross-process locking and eviction."""

from armkit.storage.keys import canonical_json, key_of, package_key, registry_key
from armkit.storage.lock import DEFAULT_TIMEOUT, FileLock, sentinel_path
from armkit.storage.package import PackageDir
from armkit.storage.registry import RegistryHandle
from armkit.storage.store import Store

__all__ = [
    "DEFAULT_TIMEOUT",
    "FileLock",
    "PackageDir",
    "RegistryHandle",
    "Store",
    "canonical_json",
    "key_of",
    "package_key",
    "registry_key",
    "sentinel_path",
]
