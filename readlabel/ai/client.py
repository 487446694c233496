"""Quota-gated AI ingredient analysis with offline fallback."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

from ..errors import AnalysisUnavailable, ConfigurationError, NetworkError, QuotaExceeded
from ..ingredients import IngredientDatabase
from ..models import AnalysisReport
from ..quota import QuotaTracker
from ..scoring import OfflineRiskScorer
from . import CompletionBackend
from .parsing import parse_response
from .prompts import ingredient_analysis

logger = logging.getLogger(__name__)


class AIAnalysisClient:
    """Analyze cleaned label text, preferring the AI backend.

    The AI path is best-effort. Quota denial, missing credentials, network
    failures, timeouts and unexpected errors all produce an offline report
    instead of an exception; ``report.source`` tells the two apart.

    Args:
        backend: Completion backend, or None to always analyze offline.
        quota: Admission control shared by every scan.
        scorer: Offline fallback.
        db: Ingredient database used by the heuristic reply parser.
        min_request_interval: Minimum seconds between dispatched requests.
        timeout: Seconds to wait for a reply before giving up.
    """

    def __init__(
        self,
        backend: CompletionBackend | None,
        quota: QuotaTracker,
        scorer: OfflineRiskScorer,
        db: IngredientDatabase,
        *,
        min_request_interval: float = 2.0,
        timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._backend = backend
        self._quota = quota
        self._scorer = scorer
        self._db = db
        self._min_interval = min_request_interval
        self._timeout = timeout
        self._clock = clock
        self._sleep = sleep
        self._last_request_at: float | None = None
        self._dispatch_lock = asyncio.Lock()

    async def analyze(self, text: str) -> AnalysisReport:
        try:
            admitted = self._quota.can_proceed()
        except Exception:
            logger.exception("Quota check failed, using offline analysis")
            return self._scorer.score(text, reason="error")
        if not admitted:
            logger.warning("Rate limit exceeded, using offline analysis")
            return self._scorer.score(text, reason=QuotaExceeded.reason)

        try:
            report = await self._analyze_remote(text)
        except ConfigurationError as e:
            logger.info("AI analysis not configured (%s), using offline analysis", e)
            return self._scorer.score(text, reason=e.reason)
        except AnalysisUnavailable as e:
            logger.warning("AI analysis unavailable (%s), using offline analysis", e)
            return self._scorer.score(text, reason=e.reason)
        except Exception:
            logger.exception("Unexpected AI analysis failure, using offline analysis")
            return self._scorer.score(text, reason="error")

        logger.info("AI analysis completed successfully")
        return report

    async def _analyze_remote(self, text: str) -> AnalysisReport:
        if self._backend is None:
            raise ConfigurationError("no AI backend configured")
        await self._backend.connect()
        # Concurrent scans share one slot
        async with self._dispatch_lock:
            await self._enforce_spacing()
            self._last_request_at = self._clock()

        prompt = ingredient_analysis(text)
        logger.info("Sending request to %s...", self._backend.name)
        try:
            reply = await asyncio.wait_for(
                self._backend.complete(prompt), timeout=self._timeout
            )
        except asyncio.TimeoutError as e:
            raise NetworkError(
                f"no reply within {self._timeout:.0f} seconds"
            ) from e
        self._quota.record()

        return parse_response(reply, text, self._db)

    async def _enforce_spacing(self) -> None:
        if self._last_request_at is None:
            return
        elapsed = self._clock() - self._last_request_at
        if elapsed < self._min_interval:
            wait = self._min_interval - elapsed
            logger.debug("Rate limiting: waiting %.2fs before next request", wait)
            await self._sleep(wait)

    def usage_stats(self) -> dict[str, int | bool]:
        return {
            "requests_today": self._quota.count(),
            "remaining_requests": self._quota.remaining(),
            "can_make_request": self._quota.can_proceed(),
        }
