"""
tick_math.py — Tick/price conversions for the Tempo stablecoin DEX

Tempo quotes stablecoin pairs on integer ticks within ±2% of the peg:
    price = peg × (1 + tick × 0.00001)
so one tick is 0.001% (a tenth of a basis point).

The clamped-linear normalize() is what turns raw stress magnitudes into the
0–100 component scores used by the PSI; the classification thresholds
downstream assume exactly this mapping.
"""

import math

from tempo_sentinel.metrics.models import PegDeviation

TICK_UNIT = 1e-5
PEG_PRICE = 1.0

NEAR_PEG_TICKS = 50    # "near peg" band used by PSI, flips, forecast, depth
WALL_ZONE_TICKS = 100  # whale walls inside this band defend / distribute


def tick_to_price(tick: int) -> float:
    return PEG_PRICE * (1 + tick * TICK_UNIT)


def price_to_tick(price: float) -> int:
    pct = (price - PEG_PRICE) / PEG_PRICE
    return round_half_up(pct / TICK_UNIT)


def spread_percent(bid_price: float, ask_price: float) -> float:
    """Spread as a percentage of the mid price."""
    mid = (bid_price + ask_price) / 2
    if mid == 0:
        return 0.0
    return (ask_price - bid_price) / mid * 100


def peg_deviation(mid_price: float) -> PegDeviation:
    absolute = mid_price - PEG_PRICE
    percentage = absolute / PEG_PRICE * 100
    if abs(percentage) < 0.001:
        direction = "on_peg"
    elif percentage > 0:
        direction = "above"
    else:
        direction = "below"
    return PegDeviation(absolute=absolute, percentage=percentage, direction=direction)


def normalize(value: float, min_value: float, max_value: float) -> float:
    """Map [min_value, max_value] linearly onto [0, 100], clamped at both ends."""
    if max_value == min_value:
        return 100.0 if value >= max_value else 0.0
    scaled = (value - min_value) / (max_value - min_value) * 100
    return max(0.0, min(100.0, scaled))


def round_half_up(value: float, digits: int = 0):
    """Round with exact .5 ties going up (2.5 → 3, -2.5 → -2); int when digits == 0."""
    if digits:
        scale = 10 ** digits
        return math.floor(value * scale + 0.5) / scale
    return math.floor(value + 0.5)


# ── Display helpers ───────────────────────────────────────────────────────

def format_price(price: float, decimals: int = 6) -> str:
    return f"{price:.{decimals}f}"


def format_liquidity(value: float) -> str:
    if value >= 1_000_000:
        return f"${value / 1_000_000:.2f}M"
    if value >= 1_000:
        return f"${value / 1_000:.1f}K"
    return f"${value:.0f}"


def format_percent(value: float, decimals: int = 3) -> str:
    sign = "+" if value >= 0 else ""
    return f"{sign}{value:.{decimals}f}%"
