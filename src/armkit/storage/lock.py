"""Cross-process advisory locks built on ``{path}.lock`` sentinel files.

The sentinel is created with ``O_CREAT | O_EXCL`` so exactly one holder
wins; the holder writes its PID into it and deletes it on release. Waiters
poll with exponential backoff (10 ms doubling to 500 ms) until the
deadline. A sentinel whose PID is no longer running and which is older
than the grace period is treated as abandoned and removed. Removal is
serialized through a second ``{path}.reclaim.lock`` sentinel and repeats
the staleness check while holding it.

Locks are advisory: they coordinate armkit processes and threads, nothing
else.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from types import TracebackType

from armkit.core.cancel import CancelToken, ensure_token
from armkit.exceptions import CancelledError, FsError, LockTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT: float = 30.0
INITIAL_BACKOFF: float = 0.010
MAX_BACKOFF: float = 0.500
STALE_GRACE: float = 30.0
# A reclaim guard is held for microseconds; older ones belong to a dead reclaimer.
GUARD_GRACE: float = 10.0

LOCK_SUFFIX = ".lock"
RECLAIM_SUFFIX = ".reclaim" + LOCK_SUFFIX


def sentinel_path(path: Path) -> Path:
    """Return the sentinel guarding *path* (``{path}.lock``)."""
    return path.with_name(path.name + LOCK_SUFFIX)


def _pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    except OSError:
        return True
    return True


class FileLock:
    """Exclusive lock on a path, usable as a context manager.

    Args:
        path: The file or directory being guarded.
        timeout: Seconds to wait before raising ``LockTimeoutError``.
        cancel: Token whose cancellation aborts the wait.
        stale_grace: Minimum sentinel age before a dead holder's lock is
            reclaimed.
    """

    def __init__(
        self,
        path: Path,
        timeout: float = DEFAULT_TIMEOUT,
        cancel: CancelToken | None = None,
        stale_grace: float = STALE_GRACE,
    ) -> None:
        self.path = path
        self.lock_path = sentinel_path(path)
        self.reclaim_path = path.with_name(path.name + RECLAIM_SUFFIX)
        self.timeout = timeout
        self.cancel = ensure_token(cancel)
        self.stale_grace = stale_grace
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> None:
        """Block until the sentinel is created.

        Raises:
            CancelledError: If the token is cancelled before acquisition.
            LockTimeoutError: If the deadline elapses.
            FsError: If the sentinel cannot be created for another reason.
        """
        deadline = time.monotonic() + self.timeout
        delay = INITIAL_BACKOFF
        while True:
            self.cancel.check()
            try:
                fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
            except FileExistsError:
                if self._reclaim_stale():
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise LockTimeoutError(
                        f"timed out after {self.timeout:g}s waiting for {self.lock_path}"
                    ) from None
                if self.cancel.wait(min(delay, remaining)):
                    raise CancelledError(f"cancelled waiting for {self.lock_path}") from None
                delay = min(delay * 2, MAX_BACKOFF)
                continue
            except OSError as exc:
                raise FsError(f"cannot create lock {self.lock_path}: {exc}") from exc
            with os.fdopen(fd, "w", encoding="ascii") as fh:
                fh.write(str(os.getpid()))
            self._held = True
            return

    def release(self) -> None:
        if not self._held:
            return
        self._held = False
        try:
            self.lock_path.unlink()
        except FileNotFoundError:
            logger.warning("Lock sentinel %s vanished while held", self.lock_path)

    def _stale_holder(self) -> str | None:
        """Return the holder recorded in a stale sentinel, or None if it is live.

        Raises:
            FileNotFoundError: If there is no sentinel.
        """
        try:
            age = time.time() - self.lock_path.stat().st_mtime
            text = self.lock_path.read_text(encoding="ascii").strip()
        except FileNotFoundError:
            raise
        except (OSError, UnicodeDecodeError):
            return None
        if age < self.stale_grace:
            return None
        if text.isdigit() and _pid_alive(int(text)):
            return None
        return text or "unknown"

    def _reclaim_stale(self) -> bool:
        """Remove the sentinel if its holder is gone; return True to retry at once.

        Removal happens under a short-lived guard sentinel and only after the
        staleness check is repeated, so a waiter that judged an old sentinel
        stale can never delete the fresh one another waiter created after
        reclaiming it first.
        """
        try:
            if self._stale_holder() is None:
                return False
        except FileNotFoundError:
            return True

        guard = self.reclaim_path
        try:
            fd = os.open(guard, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            self._clear_abandoned_guard(guard)
            return False
        except OSError as exc:
            logger.warning("Cannot guard reclaim of %s: %s", self.lock_path, exc)
            return False
        os.close(fd)
        try:
            try:
                holder = self._stale_holder()
            except FileNotFoundError:
                return True
            if holder is None:
                return False
            logger.info("Reclaiming stale lock %s (holder %s)", self.lock_path, holder)
            try:
                self.lock_path.unlink()
            except FileNotFoundError:
                pass
            except OSError as exc:
                logger.warning("Cannot reclaim stale lock %s: %s", self.lock_path, exc)
                return False
            return True
        finally:
            guard.unlink(missing_ok=True)

    @staticmethod
    def _clear_abandoned_guard(guard: Path) -> None:
        try:
            age = time.time() - guard.stat().st_mtime
        except OSError:
            return
        if age >= GUARD_GRACE:
            logger.warning("Removing abandoned reclaim guard %s", guard)
            guard.unlink(missing_ok=True)

    def __enter__(self) -> FileLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
