"""Per-request deadline checked before every database call."""

from __future__ import annotations

import time

from tablegate.core.errors import RequestCancelled


class Deadline:
    """A monotonic expiry time that can also be cancelled explicitly.

    Services call ``check()`` before each statement they send so an
    abandoned or overdue request stops issuing queries.
    """

    def __init__(self, expires_at: float | None = None):
        self._expires_at = expires_at
        self._cancelled = False

    @classmethod
    def after(cls, seconds: float | None) -> Deadline:
        """Deadline ``seconds`` from now; None or <= 0 means no time limit."""
        if seconds is None or seconds <= 0:
            return cls()
        return cls(time.monotonic() + seconds)

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def expired(self) -> bool:
        if self._cancelled:
            return True
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def check(self) -> None:
        """Raise RequestCancelled if the deadline has passed or was cancelled."""
        if self.expired:
            raise RequestCancelled()
