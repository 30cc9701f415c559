"""In-process fixed-window rate limiter for comment submissions.

Counters live in memory and reset on restart; this is abuse mitigation,
not a security boundary. Each identity gets a window that opens with its
first request. A request refused for exceeding the limit leaves the window
untouched.
"""

import asyncio
import contextlib
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime

from lawcomments.core.logging import get_logger

from .models import UNKNOWN_SUBMITTER


logger = get_logger(__name__)


@dataclass
class RateLimitEntry:
    """Submissions counted in the identity's current window."""

    count: int
    reset_at: float  # seconds since the epoch


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a rate limit check."""

    allowed: bool
    remaining: int
    reset_at: datetime
    limit: int
    current: int


class FixedWindowRateLimiter:
    """Fixed-window counter keyed by submitter identity.

    The read-check-increment of `check` runs under a lock, so concurrent
    requests for one identity never lose an update. `purge_expired` drops
    finished windows and runs on a background task started with `start()`.
    """

    def __init__(
        self,
        max_per_window: int,
        window_ms: int,
        cleanup_interval_ms: int = 5 * 60 * 1000,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the limiter.

        Args:
            max_per_window: Requests allowed per window
            window_ms: Window length in milliseconds
            cleanup_interval_ms: Interval between background sweeps
            clock: Returns the current time in seconds since the epoch
        """
        self.max_per_window = max_per_window
        self.window_seconds = window_ms / 1000
        self.cleanup_interval_seconds = cleanup_interval_ms / 1000
        self._clock = clock
        self._entries: dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()
        self._running = False
        self._task: asyncio.Task | None = None

    def _result(self, allowed: bool, entry: RateLimitEntry) -> RateLimitResult:
        return RateLimitResult(
            allowed=allowed,
            remaining=max(0, self.max_per_window - entry.count),
            reset_at=datetime.fromtimestamp(entry.reset_at, UTC),
            limit=self.max_per_window,
            current=entry.count,
        )

    def check(self, identity: str | None) -> RateLimitResult:
        """Count one request for identity and report whether it is allowed."""
        key = identity or UNKNOWN_SUBMITTER
        now = self._clock()

        with self._lock:
            entry = self._entries.get(key)

            if entry is None or now >= entry.reset_at:
                if self.max_per_window <= 0:
                    return self._result(
                        False, RateLimitEntry(0, now + self.window_seconds)
                    )
                entry = RateLimitEntry(count=1, reset_at=now + self.window_seconds)
                self._entries[key] = entry
                return self._result(True, entry)

            if entry.count >= self.max_per_window:
                return self._result(False, entry)

            entry.count += 1
            return self._result(True, entry)

    def peek(self, identity: str | None) -> RateLimitEntry | None:
        """Copy of the identity's current entry, without counting a request."""
        with self._lock:
            entry = self._entries.get(identity or UNKNOWN_SUBMITTER)
            return replace(entry) if entry else None

    def reset(self, identity: str | None = None) -> None:
        """Forget one identity's window, or every window."""
        with self._lock:
            if identity is None:
                self._entries.clear()
            else:
                self._entries.pop(identity, None)

    def purge_expired(self) -> int:
        """Drop expired windows. Returns the number removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now >= e.reset_at]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    async def start(self) -> None:
        """Start the background sweep."""
        if self._running:
            logger.warning("rate_limit_reaper_already_running")
            return

        self._running = True
        self._task = asyncio.create_task(
            self._reaper_loop(), name="comment_rate_limit_reaper"
        )
        logger.info(
            "rate_limit_reaper_started",
            interval_seconds=self.cleanup_interval_seconds,
        )

    async def stop(self) -> None:
        """Stop the background sweep."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

        logger.info("rate_limit_reaper_stopped")

    async def _reaper_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.cleanup_interval_seconds)
            removed = self.purge_expired()
            if removed:
                logger.debug("rate_limit_entries_purged", removed=removed)
