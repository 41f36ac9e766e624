"""
psi.py — Peg Stress Index (PSI)

Methodology:
    PSI = 0.30 × SpreadStress + 0.40 × LiquidityThinness + 0.30 × OrderImbalance

    SpreadStress      : normalize(spread %, 0.01, 0.5)
                        0.01% spread = no stress, 0.5%+ = full stress
    LiquidityThinness : normalize(1 - nearPegLiquidity / totalLiquidity, 0.2, 0.8)
                        80%+ of depth within ±50 ticks = no stress, <20% = full
    OrderImbalance    : normalize(|bids - asks| / (bids + asks), 0, 0.5)
                        balanced book = no stress, 50%+ one-sided = full

    Each component is rounded to an integer before weighting; the weighted
    sum is rounded and clamped to [0, 100]. Ties (x.5) round up.

    Levels:  ≤30 stable, ≤60 moderate, >60 critical.
    Trend:   compared to the previous PSI of the same pair, a move of more
             than 3 points counts as improving / worsening.

The trend baseline is per trading pair and lives in a PSITracker, so several
pairs monitored by one process never share a baseline.
"""

import logging

from tempo_sentinel.metrics.models import OrderbookSnapshot, PSIComponents, PSIResult
from tempo_sentinel.metrics.tick_math import (
    NEAR_PEG_TICKS, normalize, round_half_up, spread_percent,
)

logger = logging.getLogger(__name__)

PSI_SEED = 25
TREND_DEADBAND = 3

WEIGHT_SPREAD    = 0.3
WEIGHT_THINNESS  = 0.4
WEIGHT_IMBALANCE = 0.3


# ── Pure computation ──────────────────────────────────────────────────────

def calculate_psi(snapshot: OrderbookSnapshot, previous_value: int = PSI_SEED) -> PSIResult:
    """
    Compute the Peg Stress Index for one snapshot.

    Args:
        snapshot       : Orderbook snapshot.
        previous_value : PSI of the previous snapshot of the same pair,
                         used only for the trend.

    Returns:
        PSIResult with value, level, components, trend and previous_value.
    """
    components = calculate_psi_components(snapshot)

    value = round_half_up(
        components.spread_stress * WEIGHT_SPREAD
        + components.liquidity_thinness * WEIGHT_THINNESS
        + components.order_imbalance * WEIGHT_IMBALANCE
    )
    value = max(0, min(100, value))

    return PSIResult(
        value=value,
        level=_psi_level(value),
        components=components,
        trend=_trend(value, previous_value),
        previous_value=previous_value,
    )


def calculate_psi_components(snapshot: OrderbookSnapshot) -> PSIComponents:
    spread = spread_percent(snapshot.best_bid.price, snapshot.best_ask.price)
    spread_stress = normalize(spread, 0.01, 0.5)

    total_bids = snapshot.total_bid_liquidity
    total_asks = snapshot.total_ask_liquidity
    total = total_bids + total_asks

    near_peg_ratio = snapshot.near_peg_liquidity(NEAR_PEG_TICKS) / total if total > 0 else 0.0
    liquidity_thinness = normalize(1 - near_peg_ratio, 0.2, 0.8)

    imbalance_ratio = abs(total_bids - total_asks) / total if total > 0 else 0.0
    order_imbalance = normalize(imbalance_ratio, 0, 0.5)

    return PSIComponents(
        spread_stress=round_half_up(spread_stress),
        liquidity_thinness=round_half_up(liquidity_thinness),
        order_imbalance=round_half_up(order_imbalance),
    )


# ── Per-pair trend state ──────────────────────────────────────────────────

class PSITracker:
    """
    Holds the previous PSI value of every monitored pair.

    calculate() reads the pair's baseline, computes the PSI and stores the
    new value as the next baseline. Pairs never see each other's values.
    """

    def __init__(self, seed: int = PSI_SEED):
        self.seed = seed
        self._previous: dict[str, int] = {}

    def previous(self, pair_id: str) -> int:
        return self._previous.get(pair_id, self.seed)

    def calculate(self, pair_id: str, snapshot: OrderbookSnapshot) -> PSIResult:
        result = calculate_psi(snapshot, previous_value=self.previous(pair_id))
        self._previous[pair_id] = result.value
        if result.trend != "stable":
            logger.debug(f"PSI {pair_id}: {result.previous_value} -> {result.value} ({result.trend})")
        return result

    def reset(self, pair_id: str | None = None) -> None:
        if pair_id is None:
            self._previous.clear()
        else:
            self._previous.pop(pair_id, None)


# ── Helpers ───────────────────────────────────────────────────────────────

def _psi_level(value: int) -> str:
    if value <= 30:  return "stable"
    if value <= 60:  return "moderate"
    return "critical"


def _trend(value: int, previous: int) -> str:
    if value < previous - TREND_DEADBAND:  return "improving"
    if value > previous + TREND_DEADBAND:  return "worsening"
    return "stable"
