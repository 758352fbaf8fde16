"""Runtime settings assembled from the environment and CLI options.

Environment variables:
    ARM_MANIFEST_PATH   Path of the manifest (default ``arm.json``).
    ARM_HOME            armkit home directory (default ``~/.arm``); the
                        package cache lives in ``$ARM_HOME/storage``.
    ARM_LOCK_TIMEOUT    Seconds to wait for cache and sink locks.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from armkit.exceptions import ConfigError
from armkit.storage.lock import DEFAULT_TIMEOUT

MANIFEST_ENV = "ARM_MANIFEST_PATH"
HOME_ENV = "ARM_HOME"
LOCK_TIMEOUT_ENV = "ARM_LOCK_TIMEOUT"

DEFAULT_MANIFEST = "arm.json"
LOCKFILE_NAME = "arm-lock.json"


def _default_workers() -> int:
    return os.cpu_count() or 1


@dataclass
class Settings:
    """Resolved configuration for one armkit invocation.

    Attributes:
        manifest_path: Location of ``arm.json``.
        arm_home: Directory holding the cache and the user ``.armrc``
            lookup root.
        workers: Size of the install worker pool.
        fail_fast: Abort remaining installs after the first failure.
        lock_timeout: Seconds to wait for file locks.
        retries: Attempts per registry call before a backend fault is
            surfaced.
        project_dir: Directory searched for the project ``.armrc``.
    """

    manifest_path: Path = field(default_factory=lambda: Path(DEFAULT_MANIFEST))
    arm_home: Path = field(default_factory=lambda: Path.home() / ".arm")
    workers: int = field(default_factory=_default_workers)
    fail_fast: bool = False
    lock_timeout: float = DEFAULT_TIMEOUT
    retries: int = 3
    project_dir: Path = field(default_factory=Path.cwd)

    @property
    def lockfile_path(self) -> Path:
        return self.manifest_path.with_name(LOCKFILE_NAME)

    @property
    def storage_root(self) -> Path:
        return self.arm_home / "storage"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None, **overrides: object) -> Settings:
        """Build settings from environment variables, then apply *overrides*.

        ``None`` values in *overrides* are ignored so that unset CLI options
        fall through to the environment.

        Raises:
            ConfigError: If ``ARM_LOCK_TIMEOUT`` is not a number.
        """
        env = os.environ if environ is None else environ
        settings = cls()
        if env.get(MANIFEST_ENV):
            settings.manifest_path = Path(env[MANIFEST_ENV])
            settings.project_dir = settings.manifest_path.parent.resolve()
        if env.get(HOME_ENV):
            settings.arm_home = Path(env[HOME_ENV]).expanduser()
        if env.get(LOCK_TIMEOUT_ENV):
            try:
                settings.lock_timeout = float(env[LOCK_TIMEOUT_ENV])
            except ValueError:
                raise ConfigError(f"{LOCK_TIMEOUT_ENV} must be a number of seconds") from None
        for name, value in overrides.items():
            if value is not None:
                setattr(settings, name, value)
        if overrides.get("manifest_path") is not None:
            settings.project_dir = settings.manifest_path.parent.resolve()
        if settings.workers < 1:
            raise ConfigError("workers must be at least 1")
        return settings
