"""Backend selection by registry ``type``."""

from __future__ import annotations

from armkit.core.manifest import RegistryConfig
from armkit.exceptions import ConfigError
from armkit.registry.base import RegistryBackend
from armkit.registry.cloudsmith import CloudsmithBackend
from armkit.registry.git import GitBackend
from armkit.registry.gitlab import GitLabBackend
from armkit.storage import DEFAULT_TIMEOUT, RegistryHandle


def create_backend(
    config: RegistryConfig,
    handle: RegistryHandle,
    lock_timeout: float = DEFAULT_TIMEOUT,
) -> RegistryBackend:
    """Instantiate the backend for *config*.

    Args:
        config: Registry declaration from the manifest.
        handle: Opened cache directory; git backends keep their clone there.
        lock_timeout: Seconds to wait for the clone lock.

    Raises:
        ConfigError: If the type is unknown or required fields are missing.
    """
    if config.type == "git":
        return GitBackend(config, handle.repo_dir, lock_timeout)
    if config.type == "gitlab":
        return GitLabBackend(config)
    if config.type == "cloudsmith":
        return CloudsmithBackend(config)
    raise ConfigError(f"unsupported registry type {config.type!r}")
