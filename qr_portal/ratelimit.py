"""In-memory fixed-window rate limiter.

Counts requests per key (e.g. "admin:users:<ip>") inside a fixed window.
State is process-local: with several workers/instances each keeps its own
table, so the effective limit scales with the number of processes. A shared
store would be needed for a global limit.

The table is bounded two ways: a periodic sweep drops expired windows, and
if it still holds more than `max_entries`, the oldest half (by insertion
order) is evicted outright.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from qr_portal.util import log


DEFAULT_MAX_ENTRIES = 10_000
DEFAULT_CLEANUP_INTERVAL_SECONDS = 30.0


def _debug(msg: str) -> None:
    log.debug("ratelimit", msg)


@dataclass
class _Entry:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float  # epoch seconds


class RateLimiter:
    def __init__(
        self,
        *,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        cleanup_interval: float = DEFAULT_CLEANUP_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._entries: Dict[str, _Entry] = {}
        self._lock = threading.Lock()
        self._max_entries = max(1, int(max_entries))
        self._cleanup_interval = float(cleanup_interval)
        self._clock = clock
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def check(self, key: str, max_requests: int = 10, window_seconds: float = 60.0) -> RateLimitResult:
        """Count one request for `key`. Rejected attempts are still counted."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)

            if entry is None or entry.reset_at < now:
                entry = _Entry(count=1, reset_at=now + window_seconds)
                # Re-insert so insertion order tracks window start for eviction.
                self._entries.pop(key, None)
                self._entries[key] = entry
                return RateLimitResult(allowed=True, remaining=max_requests - 1, reset_at=entry.reset_at)

            entry.count += 1
            return RateLimitResult(
                allowed=entry.count <= max_requests,
                remaining=max(0, max_requests - entry.count),
                reset_at=entry.reset_at,
            )

    def retry_after(self, result: RateLimitResult) -> int:
        """Whole seconds until the window resets (at least 1)."""
        return max(1, int(math.ceil(result.reset_at - self._clock())))

    def sweep(self) -> int:
        """Drop expired entries, then enforce the size cap. Returns entries removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.reset_at < now]
            for k in expired:
                del self._entries[k]
            removed = len(expired)

            if len(self._entries) > self._max_entries:
                target = self._max_entries // 2
                for k in list(self._entries)[:target]:
                    del self._entries[k]
                removed += target

        if removed:
            _debug(f"sweep removed {removed} entries")
        return removed

    # -----------------------------
    # Background cleanup
    # -----------------------------

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="rate-limit-sweeper", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None:
            thread.join(timeout=5)
        self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self._cleanup_interval):
            self.sweep()
