"""
In-process query cache.

Read calls go through `QueryCache.fetch` with a staleness preset; mutations
call `invalidate` with a key prefix so the next read goes back to the API.
Concurrent fetches of one key share a single load.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from .api.exceptions import AuthenticationError, NetworkError
from .utils.logger import get_logger

logger = get_logger(__name__)

QueryKey = Tuple[Hashable, ...]

# Milliseconds
STALE_TIMES: Dict[str, int] = {
    # profile, settings
    "static": 30 * 60 * 1000,
    # stylists, services, properties
    "standard": 5 * 60 * 1000,
    # bookings, availability
    "dynamic": 60 * 1000,
    # session progress, notifications
    "realtime": 10 * 1000,
    "none": 0,
}

NETWORK_MAX_RETRIES = 3
DEFAULT_MAX_RETRIES = 2
RETRY_BASE_DELAY_MS = 1000
RETRY_MAX_DELAY_MS = 30000


def should_retry_query(failure_count: int, error: BaseException) -> bool:
    """
    Decide whether a failed read is retried.

    Args:
        failure_count: Failures before this one (0 on the first failure)
        error: The exception the loader raised
    """
    if isinstance(error, AuthenticationError):
        return False
    if isinstance(error, NetworkError):
        return failure_count < NETWORK_MAX_RETRIES
    return failure_count < DEFAULT_MAX_RETRIES


def retry_delay_ms(attempt: int) -> int:
    return min(RETRY_BASE_DELAY_MS * 2**attempt, RETRY_MAX_DELAY_MS)


@dataclass
class _Entry:
    value: Any
    stored_at: float


@dataclass
class _InFlight:
    done: threading.Event = field(default_factory=threading.Event)
    value: Any = None
    error: Optional[BaseException] = None
    invalidated: bool = False


class QueryCache:
    """
    Keyed cache with per-call staleness.

    Keys are tuples such as ("bookings", "list", status, page). A prefix
    passed to `invalidate` matches every key that starts with it.
    """

    def __init__(
        self,
        stale_times: Optional[Dict[str, int]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.stale_times = dict(STALE_TIMES)
        if stale_times:
            self.stale_times.update(stale_times)
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[QueryKey, _Entry] = {}
        self._inflight: Dict[QueryKey, _InFlight] = {}

    def _stale_ms(self, stale: str) -> int:
        try:
            return self.stale_times[stale]
        except KeyError:
            raise ValueError(f"Unknown stale time preset: {stale}") from None

    def _is_fresh(self, entry: _Entry, stale_ms: int) -> bool:
        return (self._clock() - entry.stored_at) * 1000 < stale_ms

    def get(self, key: QueryKey, stale: str = "standard") -> Optional[Any]:
        """Return the cached value when it is still fresh, else None."""
        stale_ms = self._stale_ms(stale)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._is_fresh(entry, stale_ms):
                return entry.value
        return None

    def set(self, key: QueryKey, value: Any) -> None:
        with self._lock:
            self._entries[key] = _Entry(value, self._clock())

    def fetch(
        self,
        key: QueryKey,
        loader: Callable[[], Any],
        stale: str = "standard",
        retry: bool = True,
    ) -> Any:
        """
        Return fresh cached data or load it.

        Args:
            key: Query key
            loader: Zero-argument callable hitting the API
            stale: Stale time preset name
            retry: Apply the query retry policy to loader failures

        Raises:
            Whatever the loader raised once retries are exhausted
        """
        stale_ms = self._stale_ms(stale)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._is_fresh(entry, stale_ms):
                return entry.value
            inflight = self._inflight.get(key)
            owner = inflight is None
            if owner:
                inflight = _InFlight()
                self._inflight[key] = inflight

        if not owner:
            inflight.done.wait()
            if inflight.error is not None:
                raise inflight.error
            return inflight.value

        try:
            value = self._load(key, loader, retry)
        except Exception as e:
            inflight.error = e
            raise
        else:
            inflight.value = value
            with self._lock:
                if not inflight.invalidated:
                    self._entries[key] = _Entry(value, self._clock())
            return value
        finally:
            with self._lock:
                if self._inflight.get(key) is inflight:
                    del self._inflight[key]
            inflight.done.set()

    def _load(self, key: QueryKey, loader: Callable[[], Any], retry: bool) -> Any:
        failure_count = 0
        while True:
            try:
                return loader()
            except Exception as e:
                if not retry or not should_retry_query(failure_count, e):
                    raise
                delay = retry_delay_ms(failure_count)
                logger.warning(
                    "Query failed; retrying",
                    operation="query_fetch",
                    context={"key": list(key), "failure_count": failure_count, "delay_ms": delay},
                    error=str(e),
                )
                time.sleep(delay / 1000)
                failure_count += 1

    def invalidate(self, prefix: QueryKey = ()) -> int:
        """
        Drop every entry whose key starts with `prefix`.

        Loads already in flight for a matching key still return to their
        callers but are not stored, and later reads start a fresh load.

        Returns:
            Number of cached entries removed
        """
        n = len(prefix)
        with self._lock:
            doomed = [k for k in self._entries if k[:n] == prefix]
            for k in doomed:
                del self._entries[k]
            for k in [k for k in self._inflight if k[:n] == prefix]:
                self._inflight.pop(k).invalidated = True
        if doomed:
            logger.debug(
                f"Invalidated {len(doomed)} cached queries",
                operation="query_invalidate",
                context={"prefix": list(prefix)},
            )
        return len(doomed)

    def clear(self) -> None:
        self.invalidate(())
