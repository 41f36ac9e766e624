"""
concentration.py — Liquidity concentration risk (Herfindahl-Hirschman Index)

Every tick on either side is treated as a "market participant" whose share
is its fraction of total resting liquidity, in percent:

    HHI = Σ (100 × liquidity_i / totalLiquidity)²        range 0 – 10000

A book spread evenly over 240 ticks scores ~40; a single tick holding
everything scores 10000. In practice the book rarely goes above ~5000.

    HHI < 1500  → low
    HHI < 2500  → moderate
    otherwise   → high

Bid-only and ask-only HHIs are computed against each side's own total.
"""

from tempo_sentinel.metrics.models import ConcentrationRisk, OrderbookSnapshot
from tempo_sentinel.metrics.tick_math import round_half_up

_EMPTY = ConcentrationRisk(
    hhi=0, level="low", top_tick_share=0, top5_tick_share=0,
    bid_concentration=0, ask_concentration=0,
)


def calculate_concentration_risk(snapshot: OrderbookSnapshot) -> ConcentrationRisk:
    levels = snapshot.levels
    total = sum(l.liquidity for l in levels)
    if total == 0:
        return _EMPTY

    hhi = round_half_up(sum((l.liquidity / total * 100) ** 2 for l in levels))

    ranked = sorted((l.liquidity for l in levels), reverse=True)
    top_share  = ranked[0] / total * 100 if ranked else 0.0
    top5_share = sum(ranked[:5]) / total * 100

    return ConcentrationRisk(
        hhi=hhi,
        level=_hhi_level(hhi),
        top_tick_share=round_half_up(top_share, 1),
        top5_tick_share=round_half_up(top5_share, 1),
        bid_concentration=_side_hhi(snapshot.bids),
        ask_concentration=_side_hhi(snapshot.asks),
    )


def _side_hhi(levels) -> int:
    total = sum(l.liquidity for l in levels)
    if total == 0:
        return 0
    return round_half_up(sum((l.liquidity / total * 100) ** 2 for l in levels))


def _hhi_level(hhi: float) -> str:
    if hhi < 1500:  return "low"
    if hhi < 2500:  return "moderate"
    return "high"
