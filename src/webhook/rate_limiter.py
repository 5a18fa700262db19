"""In-memory sliding window rate limiter for forwarding targets."""

from __future__ import annotations

import threading
import time

# WeCom group robots accept 60 messages per minute; stay under it.
DEFAULT_MAX_CALLS = 50
DEFAULT_WINDOW_MS = 60_000


def _now_ms() -> int:
    return int(time.time() * 1000)


class WindowRateLimiter:
    """Sliding window rate limiter keyed by target name.

    Every target gets its own budget of ``max_calls`` admissions per
    ``window_ms`` milliseconds. State lives only as long as the instance.
    """

    def __init__(
        self,
        max_calls: int = DEFAULT_MAX_CALLS,
        window_ms: int = DEFAULT_WINDOW_MS,
    ) -> None:
        self._max_calls = max_calls
        self._window_ms = window_ms
        self._calls: dict[str, list[int]] = {}
        self._lock = threading.Lock()

    @property
    def max_calls(self) -> int:
        return self._max_calls

    @property
    def window_ms(self) -> int:
        return self._window_ms

    def admit(self, target: str) -> bool:
        """Return True and record the call if ``target`` is within its budget."""
        with self._lock:
            now = _now_ms()
            timestamps = self._prune(target, now)

            if len(timestamps) >= self._max_calls:
                return False

            timestamps.append(now)
            self._calls[target] = timestamps
            return True

    def in_window(self, target: str) -> int:
        """Number of admissions currently counted against ``target``."""
        with self._lock:
            return len(self._prune(target, _now_ms()))

    def reset(self) -> None:
        with self._lock:
            self._calls.clear()

    def _prune(self, target: str, now: int) -> list[int]:
        timestamps = [
            t for t in self._calls.get(target, []) if now - t < self._window_ms
        ]
        if timestamps:
            self._calls[target] = timestamps
        else:
            self._calls.pop(target, None)
        return timestamps
