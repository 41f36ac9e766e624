"""
alerts.py — Alert generation against configurable thresholds

Rules (evaluated independently, several may fire for one snapshot):
    PSI        : > psi_critical → critical, else > psi_warning → warning
    Cliffs     : the 3 largest drops, each at its own severity
    Whale walls: the 2 largest walls, info
    Spread     : > spread_warning → warning, escalated to critical above
                 spread_critical
    Peg        : |mid - 1.0| > 0.1% → warning, > 0.5% → critical

Alert ids come from a caller-supplied factory. The default hashes
(timestamp, type, key) so the same snapshot always yields the same ids,
independent of process or instance.
"""

import hashlib
import logging
import uuid
from typing import Callable

from tempo_sentinel.metrics.models import (
    AlertThresholds, LiquidityCliff, OrderbookSnapshot, PSIResult, SentinelAlert, WhaleWall,
)
from tempo_sentinel.metrics.tick_math import format_liquidity, format_price, spread_percent

logger = logging.getLogger(__name__)

MAX_CLIFF_ALERTS = 3
MAX_WHALE_ALERTS = 2
PEG_WARN_PCT     = 0.1
PEG_CRITICAL_PCT = 0.5

AlertIdFactory = Callable[[int, str, str], str]


# ── Id factories ──────────────────────────────────────────────────────────

def content_alert_id(timestamp: int, alert_type: str, key: str) -> str:
    digest = hashlib.sha1(f"{timestamp}:{alert_type}:{key}".encode()).hexdigest()
    return f"alert-{digest[:16]}"


def uuid_alert_id(timestamp: int, alert_type: str, key: str) -> str:
    return f"alert-{uuid.uuid4().hex}"


# ── Generator ─────────────────────────────────────────────────────────────

def generate_alerts(
    psi: PSIResult,
    cliffs: list[LiquidityCliff],
    whale_walls: list[WhaleWall],
    snapshot: OrderbookSnapshot,
    thresholds: AlertThresholds,
    id_factory: AlertIdFactory = content_alert_id,
) -> list[SentinelAlert]:
    """
    Turn the snapshot's metrics into alerts.

    Args:
        psi         : PSI result for this snapshot.
        cliffs      : Output of detect_liquidity_cliffs() (sorted by drop).
        whale_walls : Output of detect_whale_walls() (sorted by liquidity).
        snapshot    : The snapshot itself (spread, mid price, timestamp).
        thresholds  : Alert thresholds; always passed explicitly.
        id_factory  : (timestamp, type, key) -> alert id.

    Returns:
        List of SentinelAlert, PSI first, then cliffs, whales, spread, peg.
    """
    ts = snapshot.timestamp
    alerts = []

    def emit(alert_type, key, severity, title, message, data=None):
        alerts.append(SentinelAlert(
            id=id_factory(ts, alert_type, key),
            timestamp=ts,
            type=alert_type,
            severity=severity,
            title=title,
            message=message,
            data=data,
        ))

    # ── PSI ──
    if psi.value > thresholds.psi_critical:
        emit("psi_critical", "psi", "critical", "Peg Stress Index Critical",
             f"PSI at {psi.value}/100 (threshold: {thresholds.psi_critical:g}). "
             f"Elevated peg risk detected across multiple indicators.")
    elif psi.value > thresholds.psi_warning:
        emit("psi_critical", "psi", "warning", "Peg Stress Elevated",
             f"PSI at {psi.value}/100 (threshold: {thresholds.psi_warning:g}). "
             f"Monitoring recommended.")

    # ── Liquidity cliffs ──
    for cliff in cliffs[:MAX_CLIFF_ALERTS]:
        exposure = "downside" if cliff.side == "bid" else "upside"
        emit("liquidity_cliff", f"{cliff.side}:{cliff.tick}", cliff.severity,
             "Liquidity Cliff Detected",
             f"{cliff.drop_percent}% liquidity drop at tick {cliff.tick} "
             f"({cliff.side} side). Peg {exposure} vulnerable.",
             {"tick": cliff.tick, "drop_percent": cliff.drop_percent})

    # ── Whale walls ──
    for wall in whale_walls[:MAX_WHALE_ALERTS]:
        emit("whale_wall", f"{wall.side}:{wall.tick}", "info", "Whale Wall Detected",
             f"{wall.classification} wall at tick {wall.tick} - "
             f"{format_liquidity(wall.liquidity)} ({wall.percent_of_total}% of total depth).",
             {"tick": wall.tick, "liquidity": wall.liquidity})

    # ── Spread ──
    spread = spread_percent(snapshot.best_bid.price, snapshot.best_ask.price)
    if spread > thresholds.spread_warning:
        emit("spread_warning", "spread",
             "critical" if spread > thresholds.spread_critical else "warning",
             "Spread Widening",
             f"Current spread at {spread:.3f}%. Market efficiency degrading.")

    # ── Peg deviation ──
    dev_pct = abs(snapshot.mid_price - 1.0) * 100
    if dev_pct > PEG_WARN_PCT:
        emit("peg_deviation", "peg",
             "critical" if dev_pct > PEG_CRITICAL_PCT else "warning",
             "Peg Deviation Alert",
             f"Mid price at {format_price(snapshot.mid_price)}. "
             f"Deviation of {dev_pct:.3f}% from peg.")

    if alerts:
        logger.info(f"Generated {len(alerts)} alerts "
                    f"({sum(1 for a in alerts if a.severity == 'critical')} critical)")
    return alerts
