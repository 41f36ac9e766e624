"""flips.py — Flip order activity (orders that re-post on the opposite side once filled)."""

from tempo_sentinel.metrics.models import FlipOrderMetrics, OrderbookSnapshot
from tempo_sentinel.metrics.tick_math import NEAR_PEG_TICKS

# Flip spread capture needs fill-level trade data, which snapshots do not
# carry. Reported as a fixed placeholder (bps) until trades are an input.
FLIP_SPREAD_CAPTURE_PLACEHOLDER = 0.015


def analyze_flip_orders(snapshot: OrderbookSnapshot) -> FlipOrderMetrics:
    """
    Aggregate flip-order statistics over the whole book.

    total_flip_orders and flip_percentage count orders (order_count);
    near-peg density and the bid/ask split count flip *levels*. With no flip
    levels at all the bid/ask split defaults to 50/50.
    """
    levels = snapshot.levels
    flip_levels = [l for l in levels if l.is_flip_order]

    total_orders = sum(l.order_count for l in levels)
    total_flip_orders = sum(l.order_count for l in flip_levels)

    near_peg = [l for l in levels if abs(l.tick) <= NEAR_PEG_TICKS]
    flip_near_peg = [l for l in flip_levels if abs(l.tick) <= NEAR_PEG_TICKS]
    density = len(flip_near_peg) / len(near_peg) if near_peg else 0.0

    flip_bids = sum(1 for l in flip_levels if l.side == "bid")
    flip_asks = sum(1 for l in flip_levels if l.side == "ask")
    flip_count = flip_bids + flip_asks

    return FlipOrderMetrics(
        total_flip_orders=total_flip_orders,
        flip_percentage=total_flip_orders / total_orders * 100 if total_orders > 0 else 0.0,
        flip_density_near_peg=density * 100,
        flip_bid_ratio=flip_bids / flip_count * 100 if flip_count > 0 else 50.0,
        flip_ask_ratio=flip_asks / flip_count * 100 if flip_count > 0 else 50.0,
        avg_flip_spread_capture=FLIP_SPREAD_CAPTURE_PLACEHOLDER,
    )
