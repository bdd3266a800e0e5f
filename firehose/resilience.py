"""Caching and retry policy wrapped around every feed read."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from tenacity import Retrying, retry_if_result, stop_after_attempt

from .models import FetchResult

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = 3600.0
DEFAULT_RETRIES = 2


class TTLCache:
    """Thread-safe in-memory cache whose entries expire after a fixed time."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: Hashable, value: Any, ttl: float) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def backoff_delay(attempt: int) -> float:
    """Seconds to wait before retry number ``attempt`` (1-based)."""
    return attempt * 1.2**attempt


def _is_retryable(result: Any) -> bool:
    return (
        isinstance(result, FetchResult)
        and result.failure is not None
        and result.failure.retryable
    )


def _wait_backoff(retry_state) -> float:
    return backoff_delay(retry_state.attempt_number)


def _last_result(retry_state) -> FetchResult:
    return retry_state.outcome.result()


class ResiliencePolicy:
    """Serve feed reads from cache, otherwise run them with bounded retries.

    Only successful results are cached. A failure that is still failing after
    the last retry is handed back to the caller and the next call for the same
    key will try the source again.
    """

    def __init__(
        self,
        cache: Optional[TTLCache] = None,
        ttl: float = DEFAULT_CACHE_TTL,
        retries: int = DEFAULT_RETRIES,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if retries < 0:
            raise ValueError("retries must not be negative.")
        self.cache = cache if cache is not None else TTLCache()
        self.ttl = ttl
        self.retries = retries
        self._sleep = sleep

    def execute(self, key: str, operation: Callable[[], FetchResult]) -> FetchResult:
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return cached

        result = self._retrying(key)(operation)
        if result.ok:
            self.cache.set(key, result, self.ttl)
        return result

    def _retrying(self, key: str) -> Retrying:
        def log_retry(retry_state) -> None:
            failure = retry_state.outcome.result().failure
            logger.warning(
                "Attempt %d for %s failed (%s); retrying in %.2fs",
                retry_state.attempt_number,
                key,
                failure.describe(),
                retry_state.next_action.sleep,
            )

        return Retrying(
            stop=stop_after_attempt(self.retries + 1),
            wait=_wait_backoff,
            retry=retry_if_result(_is_retryable),
            retry_error_callback=_last_result,
            before_sleep=log_retry,
            sleep=self._sleep,
        )
