"""Exponential backoff used between failed fetch attempts."""

from __future__ import annotations

import threading


class Backoff:
    """Doubling retry delay with a ceiling, resettable on success.

    ``current == 0`` means "unset": the next call to :meth:`next` returns
    ``initial``. Each further call doubles the delay up to ``maximum``.
    Durations are seconds.
    """

    def __init__(self, initial: float, maximum: float) -> None:
        if initial <= 0:
            raise ValueError(f"initial backoff must be positive, got {initial!r}")
        if initial > maximum:
            raise ValueError(
                f"initial backoff {initial!r} exceeds maximum backoff {maximum!r}"
            )
        self.initial = initial
        self.maximum = maximum
        self._current = 0.0
        self._lock = threading.Lock()

    @property
    def current(self) -> float:
        return self._current

    def next(self) -> float:
        """Return the next delay and advance the state."""
        with self._lock:
            if self._current == 0:
                self._current = self.initial
            else:
                self._current = min(self._current * 2, self.maximum)
            return self._current

    def reset(self) -> None:
        """Forget previous failures; the next delay is ``initial`` again."""
        with self._lock:
            self._current = 0.0
