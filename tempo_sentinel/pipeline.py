"""
pipeline.py — Tempo Sentinel polling pipeline

Usage:
    python -m tempo_sentinel.pipeline                 # poll the live book every REFRESH_INTERVAL
    python -m tempo_sentinel.pipeline --mock --once   # one simulated snapshot
    python -m tempo_sentinel.pipeline --iterations 20 --export
"""

import argparse
import logging
import time
from datetime import datetime, timezone

from tempo_sentinel.config import Config, cfg
from tempo_sentinel.history import HistoryStore
from tempo_sentinel.metrics.alerts import AlertIdFactory, content_alert_id, generate_alerts
from tempo_sentinel.metrics.concentration import calculate_concentration_risk
from tempo_sentinel.metrics.flips import analyze_flip_orders
from tempo_sentinel.metrics.forecast import calculate_stability_forecast
from tempo_sentinel.metrics.liquidity import detect_liquidity_cliffs, detect_whale_walls
from tempo_sentinel.metrics.models import (
    AlertThresholds, DashboardState, LiquidityDepth, OrderbookSnapshot, SpreadFigures,
)
from tempo_sentinel.metrics.psi import PSITracker
from tempo_sentinel.metrics.report import generate_report
from tempo_sentinel.metrics.tick_math import NEAR_PEG_TICKS, peg_deviation, spread_percent
from tempo_sentinel.publish import publish_latest, publish_report
from tempo_sentinel.sources.feed import FeedUnavailable, OrderbookFeed
from tempo_sentinel.sources.mock import MockOrderbookSource

logger = logging.getLogger("tempo-sentinel")


# ── Dashboard assembly ────────────────────────────────────────────────────

def build_dashboard(
    snapshot: OrderbookSnapshot,
    tracker: PSITracker,
    thresholds: AlertThresholds,
    pair_id: str,
    id_factory: AlertIdFactory = content_alert_id,
) -> DashboardState:
    """Run the metrics engine over one snapshot and add the depth/spread figures."""
    psi = tracker.calculate(pair_id, snapshot)
    cliffs = detect_liquidity_cliffs(snapshot, thresholds.cliff_drop_fraction)
    whale_walls = detect_whale_walls(snapshot, thresholds.whale_fraction)
    flip_metrics = analyze_flip_orders(snapshot)
    concentration = calculate_concentration_risk(snapshot)
    forecast = calculate_stability_forecast(psi, snapshot, cliffs)
    alerts = generate_alerts(psi, cliffs, whale_walls, snapshot, thresholds, id_factory=id_factory)

    bid, ask = snapshot.best_bid.price, snapshot.best_ask.price
    total_bid = snapshot.total_bid_liquidity
    total_ask = snapshot.total_ask_liquidity

    return DashboardState(
        orderbook=snapshot,
        psi=psi,
        cliffs=tuple(cliffs),
        whale_walls=tuple(whale_walls),
        flip_metrics=flip_metrics,
        forecast=forecast,
        alerts=tuple(alerts),
        concentration=concentration,
        spread=SpreadFigures(absolute=ask - bid, percentage=spread_percent(bid, ask)),
        peg_deviation=peg_deviation(snapshot.mid_price),
        liquidity_depth=LiquidityDepth(
            total_bid=total_bid,
            total_ask=total_ask,
            ratio=total_bid / total_ask if total_ask > 0 else 1,
            near_peg=snapshot.near_peg_liquidity(NEAR_PEG_TICKS),
        ),
    )


def history_point(dashboard: DashboardState) -> dict:
    """Scalar series appended to the history store after every poll."""
    depth = dashboard.liquidity_depth
    return {
        "psi": dashboard.psi.value,
        "spread": dashboard.spread.percentage,
        "bid_depth": depth.total_bid,
        "ask_depth": depth.total_ask,
        "imbalance": depth.ratio,
        "near_peg_liq": depth.near_peg,
        "peg_dev": dashboard.peg_deviation.percentage,
    }


# ── Runner ────────────────────────────────────────────────────────────────

def make_feed(config: Config = cfg, force_mock: bool = False) -> OrderbookFeed:
    live_fetch = None
    mode = "mock" if force_mock else config.data_source
    if mode == "live":
        from tempo_sentinel.sources.tempo import TempoOrderbookClient
        live_fetch = TempoOrderbookClient(config).fetch
    return OrderbookFeed(
        live_fetch,
        mock=MockOrderbookSource(),
        cache_ttl=config.cache_ttl,
        max_failures=config.max_failures,
        mode=mode,
    )


def seed_history(history: HistoryStore, mock: MockOrderbookSource, pair_id: str) -> list[str]:
    """Pre-fill empty PSI / spread charts with an hour of simulated points."""
    seeded = [
        metric
        for metric, points in (("psi", mock.historical_psi()), ("spread", mock.historical_spread()))
        if history.seed(pair_id, metric, points)
    ]
    if seeded:
        logger.info(f"Seeded simulated history for {pair_id}: {', '.join(seeded)}")
    return seeded


def run_once(
    feed: OrderbookFeed,
    tracker: PSITracker,
    history: HistoryStore,
    config: Config = cfg,
    export: bool = False,
) -> dict | None:
    """One poll: fetch, compute, record history, publish. Returns the report."""
    try:
        result = feed.get_snapshot()
    except FeedUnavailable as e:
        logger.warning(f"No orderbook available this cycle: {e}")
        return None

    dashboard = build_dashboard(result.snapshot, tracker, config.thresholds, config.pair_id)
    history.append_metrics(config.pair_id, history_point(dashboard))

    report = generate_report(dashboard, config.pair_label)
    report["source"] = {"type": result.source, "cached": result.cached, "stale": result.stale}
    publish_latest(report, config.data_dir)
    if export:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        publish_report(report, stamp, config.data_dir)

    logger.info(f"[{result.source}{' stale' if result.stale else ''}] "
                f"PSI {dashboard.psi.value} ({dashboard.psi.level}, {dashboard.psi.trend}) | "
                f"spread {dashboard.spread.percentage:.4f}% | "
                f"forecast {dashboard.forecast.probability} | alerts {len(dashboard.alerts)}")
    return report


def run_loop(
    feed: OrderbookFeed,
    tracker: PSITracker,
    history: HistoryStore,
    config: Config = cfg,
    interval: float | None = None,
    iterations: int | None = None,
    export: bool = False,
) -> None:
    interval = config.refresh_interval if interval is None else interval
    logger.info(f"=== Tempo Sentinel  pair={config.pair_label}  interval={interval}s ===")
    n = 0
    while iterations is None or n < iterations:
        run_once(feed, tracker, history, config, export=export)
        n += 1
        if iterations is None or n < iterations:
            time.sleep(interval)


def main():
    parser = argparse.ArgumentParser(description="Tempo stablecoin peg monitor")
    parser.add_argument("--mock", action="store_true", help="use the simulated orderbook")
    parser.add_argument("--once", action="store_true", help="run a single poll and exit")
    parser.add_argument("--iterations", type=int, default=None)
    parser.add_argument("--interval", type=float, default=None)
    parser.add_argument("--export", action="store_true", help="also write a timestamped report")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO,
                        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    feed = make_feed(cfg, force_mock=args.mock)
    tracker = PSITracker()
    history = HistoryStore(f"{cfg.data_dir}/history", cfg.history_max_points, cfg.history_cleanup)
    if feed.mode == "mock":
        seed_history(history, feed.mock, cfg.pair_id)

    iterations = 1 if args.once else args.iterations
    run_loop(feed, tracker, history, cfg, interval=args.interval,
             iterations=iterations, export=args.export)


if __name__ == "__main__":
    main()
