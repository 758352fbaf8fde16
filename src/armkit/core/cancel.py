"""Cooperative cancellation handle shared by every public operation.

A ``CancelToken`` is passed down from the install engine to storage,
registry backends and sink deployment. Long-running work calls
``check()`` at each I/O boundary; blocking waits use ``wait()`` so that a
cancel wakes them immediately.
"""

from __future__ import annotations

import threading

from armkit.exceptions import CancelledError


class CancelToken:
    """Thread-safe cancellation flag."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Signal cancellation to every holder of this token."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def check(self) -> None:
        """Raise ``CancelledError`` if the token has been cancelled."""
        if self._event.is_set():
            raise CancelledError("operation cancelled")

    def wait(self, seconds: float) -> bool:
        """Sleep up to *seconds*, returning True early if cancelled."""
        return self._event.wait(seconds)


def ensure_token(token: CancelToken | None) -> CancelToken:
    """Return *token*, or a fresh never-cancelled token when None."""
    return token if token is not None else CancelToken()
