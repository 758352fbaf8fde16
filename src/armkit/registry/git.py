"""Git repository backend, driven through the system ``git`` binary.

The registry keeps a working clone in the cache (``registries/{key}/repo``)
guarded by a ``FileLock``. Versions are the repository's tags plus any
remote branches matching the configured ``branches`` globs; branch heads
are opaque versions. A package is the full tree at the version's ref; the
adapter narrows it with the request's include/exclude globs.
"""

from __future__ import annotations

import fnmatch
import logging
import shutil
import subprocess
import threading
from pathlib import Path

from armkit.core.cancel import CancelToken, ensure_token
from armkit.core.files import File
from armkit.core.manifest import RegistryConfig
from armkit.core.request import PackageRequest
from armkit.core.version import Version, parse_version
from armkit.exceptions import BackendError, NotFoundError
from armkit.registry.base import RegistryBackend
from armkit.storage.lock import DEFAULT_TIMEOUT, FileLock

logger = logging.getLogger(__name__)

REMOTE = "origin"
GIT_TIMEOUT: float = 300.0


class GitBackend(RegistryBackend):
    """Tags and allowlisted branches of a Git repository.

    Args:
        config: Registry declaration (``url`` and optional ``branches``).
        repo_dir: Location of the cached working clone.
        lock_timeout: Seconds to wait for the clone lock.
    """

    def __init__(
        self,
        config: RegistryConfig,
        repo_dir: Path,
        lock_timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(config)
        self.repo_dir = repo_dir
        self.lock_timeout = lock_timeout
        branches = config.options.get("branches") or []
        self.branches: list[str] = [str(b) for b in branches]
        self._synced = False
        self._sync_guard = threading.Lock()

    # -- git plumbing ---------------------------------------------------------

    def _git(self, *args: str, cwd: Path | None = None) -> bytes:
        cmd = ["git", *args]
        try:
            proc = subprocess.run(
                cmd,
                cwd=cwd or self.repo_dir,
                capture_output=True,
                check=True,
                timeout=GIT_TIMEOUT,
            )
        except FileNotFoundError as exc:
            raise BackendError("git executable not found on PATH") from exc
        except subprocess.TimeoutExpired as exc:
            raise BackendError(f"git {args[0]} timed out") from exc
        except subprocess.CalledProcessError as exc:
            stderr = exc.stderr.decode("utf-8", "replace").strip()
            raise BackendError(f"git {args[0]} failed: {stderr}") from exc
        return proc.stdout

    def _lines(self, *args: str) -> list[str]:
        out = self._git(*args).decode("utf-8", "replace")
        return [line.strip() for line in out.splitlines() if line.strip()]

    def _sync(self, cancel: CancelToken) -> None:
        """Clone on first use, fetch once per backend instance afterwards."""
        with self._sync_guard:
            if self._synced:
                return
            cancel.check()
            if (self.repo_dir / ".git").is_dir():
                logger.debug("Fetching %s", self.config.url)
                self._git("fetch", "--all", "--tags", "--prune", "--quiet")
            else:
                if self.repo_dir.exists():
                    shutil.rmtree(self.repo_dir)
                self.repo_dir.parent.mkdir(parents=True, exist_ok=True)
                logger.info("Cloning %s", self.config.url)
                try:
                    self._git(
                        "clone", "--quiet", "--no-checkout", self.config.url, str(self.repo_dir),
                        cwd=self.repo_dir.parent,
                    )
                except BackendError:
                    shutil.rmtree(self.repo_dir, ignore_errors=True)
                    raise
            self._synced = True

    def _tags(self) -> list[str]:
        return self._lines("tag", "-l")

    def _remote_branches(self) -> list[str]:
        names = []
        prefix = f"{REMOTE}/"
        for ref in self._lines("branch", "-r", "--format=%(refname:short)"):
            if not ref.startswith(prefix):
                continue
            name = ref[len(prefix):]
            if name and name != "HEAD":
                names.append(name)
        return names

    def _resolve(self, version: Version) -> str:
        for ref in (f"refs/tags/{version.raw}", f"refs/remotes/{REMOTE}/{version.raw}"):
            try:
                return self._git("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}").decode().strip()
            except BackendError:
                continue
        raise NotFoundError(f"{self.name}: no tag or branch named {version.raw!r}")

    # -- RegistryBackend ------------------------------------------------------

    def list_versions(self, request: PackageRequest, cancel: CancelToken | None = None) -> list[Version]:
        token = ensure_token(cancel)
        with FileLock(self.repo_dir, timeout=self.lock_timeout, cancel=token):
            self._sync(token)
            versions = [parse_version(tag) for tag in self._tags()]
            if self.branches:
                seen = {v.raw for v in versions}
                for branch in self._remote_branches():
                    if branch in seen:
                        continue
                    if any(fnmatch.fnmatchcase(branch, pattern) for pattern in self.branches):
                        versions.append(parse_version(branch))
                        seen.add(branch)
        return versions

    def fetch(
        self,
        request: PackageRequest,
        version: Version,
        cancel: CancelToken | None = None,
    ) -> list[File]:
        token = ensure_token(cancel)
        with FileLock(self.repo_dir, timeout=self.lock_timeout, cancel=token):
            self._sync(token)
            commit = self._resolve(version)
            out = self._git("ls-tree", "-r", "-z", "--name-only", commit)
            files: list[File] = []
            for path in sorted(p for p in out.decode("utf-8").split("\0") if p):
                token.check()
                files.append(File(path=path, content=self._git("show", f"{commit}:{path}")))
        logger.debug("Read %d file(s) from %s at %s", len(files), self.config.url, version.raw)
        return files
