"""
liquidity.py — Liquidity cliff & whale wall detection

Liquidity cliffs:
    Walk each side of the book outward from the peg (by |tick|) and compare
    neighbouring levels. A cliff is a level whose liquidity is at least
    `drop_threshold` (fraction) below the level just inside it:

        drop = (prev.liquidity - curr.liquidity) / prev.liquidity

    drop ≥ 0.8 is CRITICAL, anything above the threshold a WARNING. A level
    with zero liquidity never serves as the reference (no division by zero).
    A cliff on the bid side leaves the peg exposed to the downside, on the
    ask side to the upside.

Whale walls:
    Any single level holding at least `threshold` (fraction) of the combined
    bid + ask liquidity. Classified by where it sits:

        bid within ±100 ticks   → defense       (propping the peg up)
        ask within ±100 ticks   → distribution  (capping the peg)
        beyond ±100 ticks       → accumulation  (resting far from the peg)
"""

import logging

from tempo_sentinel.metrics.models import LiquidityCliff, OrderbookSnapshot, WhaleWall
from tempo_sentinel.metrics.tick_math import WALL_ZONE_TICKS, round_half_up

logger = logging.getLogger(__name__)

CRITICAL_DROP = 0.8


# ── Cliffs ────────────────────────────────────────────────────────────────

def detect_liquidity_cliffs(
    snapshot: OrderbookSnapshot,
    drop_threshold: float,
) -> list[LiquidityCliff]:
    """
    Flag sharp liquidity drops between adjacent levels on each side.

    Args:
        snapshot       : Orderbook snapshot.
        drop_threshold : Fractional drop (0–1) that counts as a cliff,
                         e.g. AlertThresholds.cliff_drop_fraction.

    Returns:
        Cliffs from both sides, sorted by drop_percent descending.
    """
    cliffs = (
        _side_cliffs(snapshot.bids, "bid", drop_threshold)
        + _side_cliffs(snapshot.asks, "ask", drop_threshold)
    )
    if cliffs:
        logger.debug(f"Detected {len(cliffs)} liquidity cliffs "
                     f"({sum(1 for c in cliffs if c.severity == 'critical')} critical)")
    return sorted(cliffs, key=lambda c: c.drop_percent, reverse=True)


def _side_cliffs(levels, side: str, drop_threshold: float) -> list[LiquidityCliff]:
    ordered = sorted(levels, key=lambda l: abs(l.tick))
    cliffs = []

    for prev, curr in zip(ordered, ordered[1:]):
        if prev.liquidity <= 0:
            continue
        drop = (prev.liquidity - curr.liquidity) / prev.liquidity
        if drop < drop_threshold:
            continue
        cliffs.append(LiquidityCliff(
            tick=curr.tick,
            price=curr.price,
            side=side,
            drop_percent=round_half_up(drop * 100),
            liquidity_before=prev.liquidity,
            liquidity_after=curr.liquidity,
            severity="critical" if drop >= CRITICAL_DROP else "warning",
        ))

    return cliffs


# ── Whale walls ───────────────────────────────────────────────────────────

def detect_whale_walls(
    snapshot: OrderbookSnapshot,
    threshold: float,
) -> list[WhaleWall]:
    """
    Flag levels holding an outsized share of total book depth.

    Args:
        snapshot  : Orderbook snapshot.
        threshold : Share of total liquidity (0–1) that makes a wall,
                    e.g. AlertThresholds.whale_fraction.

    Returns:
        Whale walls sorted by absolute liquidity, largest first.
    """
    total = snapshot.total_liquidity
    if total <= 0:
        return []

    walls = []
    for level in snapshot.levels:
        share = level.liquidity / total
        if share < threshold:
            continue
        walls.append(WhaleWall(
            tick=level.tick,
            price=level.price,
            side=level.side,
            liquidity=level.liquidity,
            percent_of_total=round_half_up(share * 100),
            classification=_classify_wall(level.side, level.tick),
        ))

    if walls:
        logger.debug(f"Detected {len(walls)} whale walls at >= {threshold:.0%} of depth")
    return sorted(walls, key=lambda w: w.liquidity, reverse=True)


def _classify_wall(side: str, tick: int) -> str:
    if abs(tick) <= WALL_ZONE_TICKS:
        return "defense" if side == "bid" else "distribution"
    return "accumulation"
