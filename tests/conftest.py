"""Shared orderbook builders for the metrics tests."""

import pytest

from tempo_sentinel.metrics.models import (
    OrderbookLevel, OrderbookSnapshot, PSIComponents, PSIResult,
)
from tempo_sentinel.metrics.tick_math import tick_to_price

TS = 1_700_000_000_000


@pytest.fixture
def make_level():
    def _make(tick, liquidity, side=None, flip=False, orders=1):
        side = side or ("bid" if tick < 0 else "ask")
        return OrderbookLevel(
            tick=tick,
            price=tick_to_price(tick),
            liquidity=liquidity,
            side=side,
            is_flip_order=flip,
            order_count=orders,
        )
    return _make


@pytest.fixture
def make_book(make_level):
    """Build a snapshot from {tick: liquidity} maps."""
    def _make(bids=None, asks=None, peg_offset=0.0, timestamp=TS):
        bid_levels = [make_level(t, l, "bid") for t, l in (bids or {}).items()]
        ask_levels = [make_level(t, l, "ask") for t, l in (asks or {}).items()]
        return OrderbookSnapshot.from_levels(
            bid_levels, ask_levels, timestamp=timestamp, peg_offset=peg_offset
        )
    return _make


@pytest.fixture
def make_psi():
    def _make(value, trend="stable", level=None):
        if level is None:
            level = "stable" if value <= 30 else "moderate" if value <= 60 else "critical"
        return PSIResult(
            value=value,
            level=level,
            components=PSIComponents(0, 0, 0),
            trend=trend,
            previous_value=25,
        )
    return _make
