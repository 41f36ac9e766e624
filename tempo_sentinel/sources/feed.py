"""
feed.py — Snapshot acquisition policy: TTL cache, failure counting, fallback

    live fetch OK          → cache it, reset the failure counter
    cache younger than TTL → serve it without fetching
    live fetch failed      → count it; after MAX_FAILURES consecutive
                             failures switch to the simulator, before that
                             serve the last good snapshot marked stale
                             (or raise FeedUnavailable if there is none)

Only acquisition errors (RPC, network, OS) are absorbed; anything else is a
bug and propagates.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable

import httpx
from web3.exceptions import Web3Exception

from tempo_sentinel.metrics.models import OrderbookSnapshot
from tempo_sentinel.sources.mock import MockOrderbookSource
from tempo_sentinel.sources.tempo import TempoRpcError

logger = logging.getLogger(__name__)

ACQUISITION_ERRORS = (TempoRpcError, Web3Exception, httpx.HTTPError, OSError, TimeoutError)


class FeedUnavailable(Exception):
    """Live source failed and there is no cached snapshot to fall back on."""


@dataclass(frozen=True)
class FeedResult:
    snapshot: OrderbookSnapshot
    source: str          # "live" | "mock"
    cached: bool = False
    stale: bool = False


class OrderbookFeed:

    def __init__(
        self,
        live_fetch: Callable[[], OrderbookSnapshot] | None,
        mock: MockOrderbookSource | None = None,
        cache_ttl: float = 2.0,
        max_failures: int = 3,
        mode: str = "live",
        clock: Callable[[], float] = time.monotonic,
    ):
        if mode not in ("live", "mock"):
            raise ValueError(f"Unknown data source mode: {mode!r}")
        self.live_fetch = live_fetch
        self.mock = mock or MockOrderbookSource()
        self.cache_ttl = cache_ttl
        self.max_failures = max_failures
        self.mode = mode if live_fetch is not None else "mock"
        self.clock = clock

        self.consecutive_failures = 0
        self._cached: OrderbookSnapshot | None = None
        self._cached_at = 0.0

    def use_live(self) -> None:
        if self.live_fetch is None:
            raise ValueError("No live fetcher configured")
        self.mode = "live"
        self.consecutive_failures = 0

    def use_mock(self) -> None:
        self.mode = "mock"

    def get_snapshot(self) -> FeedResult:
        if self.mode == "mock":
            return FeedResult(self.mock.snapshot(), source="mock")

        now = self.clock()
        if self._cached is not None and now - self._cached_at < self.cache_ttl:
            logger.debug("Serving cached live snapshot")
            return FeedResult(self._cached, source="live", cached=True)

        try:
            snapshot = self.live_fetch()
        except ACQUISITION_ERRORS as e:
            return self._on_failure(e)

        self.consecutive_failures = 0
        self._cached = snapshot
        self._cached_at = now
        return FeedResult(snapshot, source="live")

    def _on_failure(self, error: Exception) -> FeedResult:
        self.consecutive_failures += 1
        logger.warning(f"Live orderbook fetch failed "
                       f"({self.consecutive_failures}/{self.max_failures}): {error}")

        if self.consecutive_failures >= self.max_failures:
            logger.warning("Too many consecutive failures, switching to simulated orderbook")
            self.mode = "mock"
            return FeedResult(self.mock.snapshot(), source="mock")

        if self._cached is not None:
            return FeedResult(self._cached, source="live", cached=True, stale=True)

        raise FeedUnavailable(str(error)) from error
