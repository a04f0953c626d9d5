"""Cooperative cancellation shared by every blocking wait in a crawl."""

import threading
from typing import Optional, Tuple


class CancelToken:
    """
    A cancellation signal that doubles as an interruptible sleep.

    Every pause in the crawler (per-page delay, retry backoff, inter-site
    delay) goes through wait(), so cancel() wakes all of them at once.
    """

    def __init__(self, parent: Optional['CancelToken'] = None, *others: 'CancelToken'):
        self._event = threading.Event()
        self._parents: Tuple['CancelToken', ...] = tuple(p for p in (parent,) + others if p is not None)

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return any(p.cancelled for p in self._parents)

    def wait(self, seconds: float) -> bool:
        """
        Sleep for up to `seconds`.

        Returns:
            True if the token was cancelled (the caller should stop), else False
        """
        if seconds <= 0:
            return self.cancelled
        if not self._parents:
            return self._event.wait(seconds)

        # Child tokens poll so a parent cancel is noticed promptly
        remaining = seconds
        while remaining > 0:
            step = min(remaining, 0.1)
            if self._event.wait(step) or any(p.cancelled for p in self._parents):
                return True
            remaining -= step
        return self.cancelled

    def child(self) -> 'CancelToken':
        """Token that is cancelled with this one but can also be cancelled alone."""
        return CancelToken(self)

    def linked(self, other: Optional['CancelToken']) -> 'CancelToken':
        """Child token cancelled when either this token or `other` is."""
        return CancelToken(self, other) if other is not None else self.child()
