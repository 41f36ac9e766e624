"""
server.py — Tempo Sentinel MCP Server (FastAPI + SSE transport)

Exposes the latest peg stability report, metric history and the live
orderbook via the Model Context Protocol and plain HTTP.
Transport: HTTP/SSE. Default: http://0.0.0.0:8001

Run:
    python -m tempo_sentinel.server
    uvicorn tempo_sentinel.server:app --host 0.0.0.0 --port 8001
"""

import json
import logging
from pathlib import Path

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from mcp.server.fastmcp import FastMCP
from mcp.server.sse import SseServerTransport

from tempo_sentinel.config import cfg
from tempo_sentinel.history import METRICS, HistoryStore
from tempo_sentinel.metrics.report import camelize
from tempo_sentinel.sources.feed import FeedUnavailable, OrderbookFeed

logger = logging.getLogger("tempo-sentinel-mcp")

mcp = FastMCP(
    name="tempo-sentinel",
    instructions=(
        "Peg stability metrics for a Tempo DEX stablecoin pair: Peg Stress "
        "Index, liquidity cliffs, whale walls, flip orders, HHI concentration, "
        "stability forecast and alerts."
    ),
)

DATA_DIR = Path(cfg.data_dir)

_feed: OrderbookFeed | None = None


def _load_latest() -> dict:
    local = DATA_DIR / "latest.json"
    if local.exists():
        return json.loads(local.read_text(encoding="utf-8"))
    base = cfg.raw_base_url()
    if base:
        try:
            return httpx.get(f"{base}/data/latest.json", timeout=10).json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Remote fetch failed: {e}")
    return {}


def _history() -> HistoryStore:
    return HistoryStore(DATA_DIR / "history", cfg.history_max_points, cfg.history_cleanup)


def get_feed() -> OrderbookFeed:
    global _feed
    if _feed is None:
        from tempo_sentinel.pipeline import make_feed
        _feed = make_feed(cfg)
    return _feed


# ── MCP Tools ─────────────────────────────────────────────────────────────

@mcp.tool()
def get_peg_overview() -> dict:
    """
    Headline peg health: PSI value/level, stability forecast, spread,
    peg deviation and concentration level of the latest snapshot.
    """
    data = _load_latest()
    if not data:
        return {"error": "No data available. Run the pipeline first."}
    return {
        "pair": data.get("pair"),
        "generatedAt": data.get("generatedAt"),
        "source": data.get("source"),
        **data.get("summary", {}),
    }


@mcp.tool()
def get_peg_stress() -> dict:
    """
    Full Peg Stress Index detail (components, trend) plus the stability
    forecast and liquidity depth figures.
    """
    data = _load_latest()
    metrics = data.get("metrics", {})
    if not metrics:
        return {"error": "No PSI data available."}
    return {
        "psi": metrics.get("psi"),
        "forecast": metrics.get("forecast"),
        "liquidityDepth": metrics.get("liquidityDepth"),
        "spread": metrics.get("spread"),
    }


@mcp.tool()
def get_alerts(severity: str | None = None) -> dict:
    """
    Alerts raised for the latest snapshot.

    Args:
        severity : Filter: info | warning | critical. Default: all.
    """
    data = _load_latest()
    alerts = data.get("alerts", [])
    if severity:
        alerts = [a for a in alerts if a.get("severity") == severity.lower()]
    return {"generatedAt": data.get("generatedAt"), "count": len(alerts), "alerts": alerts}


@mcp.tool()
def get_detections(kind: str | None = None, limit: int = 10) -> dict:
    """
    Whale walls and liquidity cliffs detected in the latest snapshot.

    Args:
        kind  : 'whale_walls' or 'liquidity_cliffs'. Default: both.
        limit : Max entries per detection list.
    """
    detections = _load_latest().get("detections", {})
    if not detections:
        return {"error": "No detection data available."}
    mapping = {"whale_walls": "whaleWalls", "liquidity_cliffs": "liquidityCliffs"}
    if kind:
        key = mapping.get(kind)
        if key is None:
            return {"error": f"Unknown kind '{kind}'. Available: {list(mapping)}"}
        return {key: detections.get(key, [])[:limit]}
    return {k: v[:limit] for k, v in detections.items()}


@mcp.tool()
def get_metric_history(metric: str = "psi", minutes: float = 60) -> dict:
    """
    Recent time series of one dashboard metric.

    Args:
        metric  : psi | spread | bid_depth | ask_depth | imbalance | near_peg_liq | peg_dev
        minutes : Look-back window.
    """
    if metric not in METRICS:
        return {"error": f"Unknown metric '{metric}'. Available: {list(METRICS)}"}
    points = _history().recent(cfg.pair_id, metric, minutes)
    return {"pair": cfg.pair_id, "metric": metric, "minutes": minutes, "points": points}


@mcp.tool()
def get_methodology() -> dict:
    """Return methodology documentation for all peg stability metrics."""
    t = cfg.thresholds
    return {
        "title": "Tempo Sentinel - Methodology",
        "version": "1.0",
        "metrics": {
            "Peg Stress Index": {
                "formula": "0.3 × SpreadStress + 0.4 × LiquidityThinness + 0.3 × OrderImbalance",
                "components": {
                    "SpreadStress": "normalize(spread %, 0.01, 0.5)",
                    "LiquidityThinness": "normalize(1 - liquidity within ±50 ticks / total, 0.2, 0.8)",
                    "OrderImbalance": "normalize(|bids - asks| / (bids + asks), 0, 0.5)",
                },
                "levels": {"stable": "≤30", "moderate": "≤60", "critical": ">60"},
            },
            "Liquidity Cliffs": {
                "formula": "(prev - curr) / prev between adjacent levels, walking out from peg",
                "severity": {"warning": f"≥{t.cliff_drop_percent:g}%", "critical": "≥80%"},
            },
            "Whale Walls": {
                "formula": "level liquidity / total book liquidity",
                "threshold": f"≥{t.whale_percent:g}%",
                "classification": {
                    "defense": "bid within ±100 ticks",
                    "distribution": "ask within ±100 ticks",
                    "accumulation": "beyond ±100 ticks",
                },
            },
            "Concentration (HHI)": {
                "formula": "Σ (100 × liquidity_tick / total)²",
                "thresholds": {"low": "<1500", "moderate": "<2500", "high": "≥2500"},
            },
            "Stability Forecast": {
                "formula": "100 - 0.4×PSI - 15×critical cliffs - 5×warning cliffs "
                           "- 15 if spread > 0.2% - 10 if PSI worsening",
                "probability": {"high": "≥70", "moderate": "≥40", "low": "<40"},
            },
            "Flip Orders": {
                "description": "Share of orders that re-post on the opposite side after fill.",
                "note": "avgFlipSpreadCapture is a fixed placeholder until trade data is ingested.",
            },
        },
        "parameters": {
            "pair": cfg.pair_label,
            "tick_unit": "0.001% of peg",
            "thresholds": t.to_dict(),
            "refresh_interval_s": cfg.refresh_interval,
        },
    }


# ── FastAPI app ────────────────────────────────────────────────────────────

app = FastAPI(title="Tempo Sentinel MCP", version="1.0.0")
app.add_middleware(CORSMiddleware, allow_origins=["*"],
                   allow_methods=["*"], allow_headers=["*"])

sse = SseServerTransport("/messages")


@app.get("/sse")
async def sse_endpoint(request: Request):
    async with sse.connect_sse(request.scope, request.receive, request._send) as streams:
        await mcp._mcp_server.run(
            streams[0], streams[1], mcp._mcp_server.create_initialization_options()
        )


@app.post("/messages")
async def messages_endpoint(request: Request):
    await sse.handle_post_message(request.scope, request.receive, request._send)


@app.get("/api/orderbook")
def orderbook():
    try:
        result = get_feed().get_snapshot()
    except FeedUnavailable as e:
        logger.error(f"Orderbook fetch error: {e}")
        return JSONResponse(status_code=500, content={
            "source": "error",
            "error": "Failed to fetch live orderbook",
            "message": str(e),
        })

    body = {"source": result.source, "cached": result.cached,
            "data": camelize(result.snapshot.to_dict())}
    if result.stale:
        body["stale"] = True
    return body


@app.get("/health")
async def health():
    return {"status": "ok", "server": "tempo-sentinel-mcp", "version": "1.0.0"}


@app.get("/")
async def root():
    return {"name": "Tempo Sentinel MCP Server", "mcp_endpoint": "/sse",
            "orderbook": "/api/orderbook", "docs": "/docs", "health": "/health"}


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    uvicorn.run("tempo_sentinel.server:app", host=cfg.mcp_host, port=cfg.mcp_port, reload=False)
