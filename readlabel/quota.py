"""Daily and burst admission control for outbound AI requests."""

from __future__ import annotations

import logging
import math
import sqlite3
from datetime import datetime, time, timedelta
from typing import Any, Callable

from .db import KeyValueStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "readlabel_api_usage"

DEFAULT_DAILY_LIMIT = 1500
DEFAULT_BURST_LIMIT = 10
DEFAULT_BURST_WINDOW = 60.0  # seconds
DEFAULT_RETENTION = 3600.0  # seconds of timestamp history kept

MIN_DELAY = 2.0
MAX_DELAY = 300.0


class QuotaTracker:
    """Tracks AI requests per calendar day in a key-value store.

    The persisted value has the shape
    ``{"date", "requests", "timestamps", "lastReset"}``; timestamps are epoch
    seconds. A stored state from an earlier day is ignored, which resets the
    counters at local midnight. A store that cannot be read or written is
    logged and treated as a fresh day; it never raises into the caller.

    ``record()`` must be called exactly once for every request that was
    actually dispatched.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        daily_limit: int = DEFAULT_DAILY_LIMIT,
        burst_limit: int = DEFAULT_BURST_LIMIT,
        burst_window: float = DEFAULT_BURST_WINDOW,
        retention: float = DEFAULT_RETENTION,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._daily_limit = daily_limit
        self._burst_limit = burst_limit
        self._burst_window = burst_window
        self._retention = max(retention, burst_window)
        self._clock = clock or datetime.now

    @property
    def daily_limit(self) -> int:
        return self._daily_limit

    def _fresh_state(self, now: datetime) -> dict[str, Any]:
        return {
            "date": now.date().isoformat(),
            "requests": 0,
            "timestamps": [],
            "lastReset": now.timestamp(),
        }

    def _load(self, now: datetime) -> dict[str, Any]:
        try:
            data = self._store.get(STORAGE_KEY)
        except (ValueError, sqlite3.Error, OSError) as e:
            logger.error("Stored API usage is unreadable, starting fresh: %s", e)
            return self._fresh_state(now)

        if not _is_valid_state(data):
            if data is not None:
                logger.error("Stored API usage has an unexpected shape, starting fresh")
            return self._fresh_state(now)
        if data["date"] != now.date().isoformat():
            logger.info("New day detected, resetting API usage")
            return self._fresh_state(now)
        return data

    def _save(self, data: dict[str, Any]) -> None:
        try:
            self._store.set(STORAGE_KEY, data)
        except (sqlite3.Error, OSError) as e:
            logger.error("Failed to persist API usage: %s", e)

    def can_proceed(self) -> bool:
        """Return True if another AI request may be dispatched now."""
        now = self._clock()
        usage = self._load(now)

        if usage["requests"] >= self._daily_limit:
            logger.warning(
                "Daily API limit reached: %d/%d", usage["requests"], self._daily_limit
            )
            return False

        window_start = now.timestamp() - self._burst_window
        recent = [t for t in usage["timestamps"] if t > window_start]
        if len(recent) >= self._burst_limit:
            logger.warning(
                "Burst limit reached: %d requests in %.0f seconds",
                len(recent),
                self._burst_window,
            )
            return False

        return True

    def record(self) -> None:
        """Count one dispatched request."""
        now = self._clock()
        usage = self._load(now)
        ts = now.timestamp()

        usage["requests"] += 1
        usage["timestamps"].append(ts)
        cutoff = ts - self._retention
        usage["timestamps"] = [t for t in usage["timestamps"] if t > cutoff]

        self._save(usage)
        logger.debug("API request recorded. Usage: %d/%d", usage["requests"], self._daily_limit)

    def count(self) -> int:
        return self._load(self._clock())["requests"]

    def remaining(self) -> int:
        return max(0, self._daily_limit - self.count())

    def percentage(self) -> int:
        if self._daily_limit <= 0:
            return 100
        return int(self.count() / self._daily_limit * 100 + 0.5)

    def time_until_reset(self) -> float:
        """Seconds until the counters roll over at local midnight."""
        now = self._clock()
        midnight = datetime.combine(
            now.date() + timedelta(days=1), time.min, tzinfo=now.tzinfo
        )
        return (midnight - now).total_seconds()

    def stats(self) -> dict[str, Any]:
        usage = self._load(self._clock())
        timestamps = usage["timestamps"]
        return {
            "count": usage["requests"],
            "daily_limit": self._daily_limit,
            "remaining": self.remaining(),
            "percentage": self.percentage(),
            "reset_eta": self.time_until_reset(),
            "can_proceed": self.can_proceed(),
            "last_request_at": timestamps[-1] if timestamps else None,
        }

    def is_approaching_limit(self, threshold: float = 0.9) -> bool:
        return self.percentage() >= threshold * 100

    def recommended_delay(self) -> float:
        """Seconds to wait between requests to last until the reset.

        Returns ``math.inf`` when the day's budget is spent.
        """
        remaining = self.remaining()
        if remaining <= 0:
            return math.inf
        spread = self.time_until_reset() / remaining
        return max(MIN_DELAY, min(MAX_DELAY, spread))

    def reset(self) -> None:
        self._save(self._fresh_state(self._clock()))
        logger.info("API usage reset")

    def emergency_stop(self) -> None:
        """Disable AI requests for the rest of the day."""
        now = self._clock()
        usage = self._load(now)
        usage["requests"] = max(usage["requests"], self._daily_limit + 1000)
        self._save(usage)
        logger.error("Emergency stop activated - API disabled for today")


def _is_valid_state(data: Any) -> bool:
    return (
        isinstance(data, dict)
        and isinstance(data.get("date"), str)
        and isinstance(data.get("requests"), int)
        and isinstance(data.get("timestamps"), list)
        and all(isinstance(t, (int, float)) for t in data["timestamps"])
    )
