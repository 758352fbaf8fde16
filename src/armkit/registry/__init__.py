"""Registry backends (Git, GitLab, Cloudsmith) and the caching adapter."""

from armkit.registry.adapter import OpenRegistry, Package, RegistryAdapter
from armkit.registry.base import RegistryBackend
from armkit.registry.factory import create_backend

__all__ = [
    "OpenRegistry",
    "Package",
    "RegistryAdapter",
    "RegistryBackend",
    "create_backend",
]
