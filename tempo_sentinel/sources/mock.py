"""
mock.py — Simulated Tempo DEX orderbook

Produces realistic-looking AlphaUSD/pathUSD books for demos, tests and as
the fallback when the live RPC keeps failing.

Shape of each generated book:
    - 120 levels per side, one every 5 ticks (out to ±600 ticks)
    - liquidity ~ 500k × exp(-|tick| / 300) × volatility × noise(0.5–1.5)
    - whale walls (×3–6) at ±50 ticks and at -250
    - a thin bid zone (×0.15) between 400 and 500 ticks → liquidity cliff
    - flip orders on ~25% of levels inside ±100 ticks, ~5% further out
    - volatility breathes as 0.8 + 0.4·sin(n·0.3) over successive snapshots
    - mid price wobbles around the peg by 0.0001·sin(n·0.5)

The generator is deterministic: snapshot n is always the same book.
"""

import math
import time

from tempo_sentinel.metrics.models import OrderbookLevel, OrderbookSnapshot
from tempo_sentinel.metrics.tick_math import round_half_up, tick_to_price

_MODULUS = 2147483647
_MULTIPLIER = 16807
_BASE_SEED = 42

LEVELS_PER_SIDE = 120
TICK_STEP = 5
WHALE_TICKS = {-250, -50, 50}


class MockOrderbookSource:
    """Seeded orderbook simulator; each call advances one snapshot."""

    def __init__(self, base_seed: int = _BASE_SEED, clock=time.time):
        self.base_seed = base_seed
        self.snapshot_count = 0
        self.clock = clock
        self._seed = base_seed

    # ── RNG (Park–Miller minimal standard) ──

    def _random(self) -> float:
        self._seed = (self._seed * _MULTIPLIER) % _MODULUS
        return (self._seed - 1) / (_MODULUS - 1)

    def _uniform(self, lo: float, hi: float) -> float:
        return lo + self._random() * (hi - lo)

    # ── Books ──

    def _levels(self, side: str, volatility: float) -> list[OrderbookLevel]:
        direction = -1 if side == "bid" else 1
        levels = []

        for i in range(1, LEVELS_PER_SIDE + 1):
            tick = direction * i * TICK_STEP
            distance = abs(tick)

            liquidity = 500_000 * math.exp(-distance / 300) * volatility
            liquidity *= self._uniform(0.5, 1.5)
            if tick in WHALE_TICKS:
                liquidity *= self._uniform(3, 6)
            if side == "bid" and 400 < distance < 500:
                liquidity *= 0.15

            is_flip = self._random() < (0.25 if distance < 100 else 0.05)
            order_count = max(1, math.floor(self._uniform(1, 15 if distance < 50 else 5)))

            levels.append(OrderbookLevel(
                tick=tick,
                price=tick_to_price(tick),
                liquidity=float(round_half_up(liquidity)),
                side=side,
                is_flip_order=is_flip,
                order_count=order_count,
            ))

        return levels

    def snapshot(self) -> OrderbookSnapshot:
        self.snapshot_count += 1
        n = self.snapshot_count
        self._seed = self.base_seed + n * 7

        volatility = 0.8 + 0.4 * math.sin(n * 0.3)
        bids = self._levels("bid", volatility)
        asks = self._levels("ask", volatility)

        return OrderbookSnapshot.from_levels(
            bids, asks,
            timestamp=int(self.clock() * 1000),
            peg_offset=0.0001 * math.sin(n * 0.5),
        )

    # ── Seed series for charts ──

    def historical_psi(self, points: int = 60) -> list[dict]:
        """Synthetic one-minute PSI history ending now, as {t, v} points."""
        now = int(self.clock() * 1000)
        series = []
        for i in range(points, -1, -1):
            base = 22 + 8 * math.sin(i * 0.15) + 5 * math.cos(i * 0.07)
            noise = (self._random() - 0.5) * 10
            series.append({"t": now - i * 60_000, "v": max(0, min(100, round_half_up(base + noise)))})
        return series

    def historical_spread(self, points: int = 60) -> list[dict]:
        """Synthetic one-minute spread (%) history ending now."""
        now = int(self.clock() * 1000)
        series = []
        for i in range(points, -1, -1):
            base = 0.04 + 0.02 * math.sin(i * 0.12) + 0.01 * math.cos(i * 0.08)
            noise = (self._random() - 0.5) * 0.02
            series.append({"t": now - i * 60_000, "v": max(0.005, base + noise)})
        return series
