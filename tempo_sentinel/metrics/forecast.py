"""
forecast.py — Short-term peg stability forecast

Penalty score starting at 100:
    - PSI × 0.4
    - 15 per critical liquidity cliff, 5 per warning cliff
    - 15 if the spread is widening (> 0.2%)
    - 10 if the PSI trend is worsening
clamped to [0, 100] and reported as `confidence`.

    confidence ≥ 70 → high, ≥ 40 → moderate, otherwise low

`liquidity_velocity` is the share of depth within ±50 ticks of the peg
(percent). It is a point-in-time proxy for how quickly liquidity could be
consumed near the peg, not a rate of change between snapshots.
"""

from tempo_sentinel.metrics.models import (
    ForecastFactors, LiquidityCliff, OrderbookSnapshot, PSIResult, StabilityForecast,
)
from tempo_sentinel.metrics.tick_math import NEAR_PEG_TICKS, round_half_up, spread_percent

OUTLOOKS = {
    "high": "Strong peg stability. Liquidity well-distributed with tight spreads.",
    "moderate": "Moderate stability. Monitor for deterioration in key metrics.",
    "low": "Elevated peg risk. Liquidity gaps and widening spreads detected.",
}


def calculate_stability_forecast(
    psi: PSIResult,
    snapshot: OrderbookSnapshot,
    cliffs: list[LiquidityCliff],
) -> StabilityForecast:
    total = snapshot.total_liquidity
    near_peg_ratio = snapshot.near_peg_liquidity(NEAR_PEG_TICKS) / total if total > 0 else 0.0

    spread = spread_percent(snapshot.best_bid.price, snapshot.best_ask.price)
    spread_trend = _spread_trend(spread)

    score = 100.0
    score -= psi.value * 0.4
    score -= sum(1 for c in cliffs if c.severity == "critical") * 15
    score -= sum(1 for c in cliffs if c.severity == "warning") * 5
    if spread_trend == "widening":
        score -= 15
    if psi.trend == "worsening":
        score -= 10
    score = max(0.0, min(100.0, score))

    probability = _probability(score)

    return StabilityForecast(
        probability=probability,
        confidence=round_half_up(score),
        factors=ForecastFactors(
            stress_trend=psi.trend,
            liquidity_velocity=round_half_up(near_peg_ratio * 100),
            spread_trend=spread_trend,
        ),
        short_term_outlook=OUTLOOKS[probability],
    )


def _spread_trend(spread_pct: float) -> str:
    if spread_pct < 0.05:  return "tightening"
    if spread_pct > 0.2:   return "widening"
    return "stable"


def _probability(score: float) -> str:
    if score >= 70:  return "high"
    if score >= 40:  return "moderate"
    return "low"
