"""
config.py — Tempo Sentinel: Central configuration (env-var overridable)
"""

import os
from dataclasses import dataclass

from tempo_sentinel.metrics.models import AlertThresholds, DEFAULT_THRESHOLDS


def _float(env, default): return float(os.environ.get(env, default))
def _int(env, default):   return int(os.environ.get(env, default))
def _str(env, default):   return os.environ.get(env, default)


@dataclass
class Config:
    # ── Alert thresholds ──────────────────────────────────────────────────
    thresholds: AlertThresholds = None   # set in __post_init__
    """PSI / spread / cliff / whale alert knobs (PSI_WARNING, PSI_CRITICAL, ...)."""

    # ── Monitored pair ────────────────────────────────────────────────────
    pair_id: str    = _str("PAIR_ID", "alphausd-pathusd")
    pair_label: str = _str("PAIR_LABEL", "AlphaUSD/pathUSD")

    # ── Tempo chain ───────────────────────────────────────────────────────
    tempo_rpc_url: str = _str("TEMPO_RPC_URL", "https://rpc.moderato.tempo.xyz")
    tempo_dex_address: str = _str("TEMPO_DEX_ADDRESS", "0xdec0000000000000000000000000000000000000")
    """Stablecoin DEX precompile."""

    tempo_base_token: str  = _str("TEMPO_BASE_TOKEN",  "0x20c0000000000000000000000000000000000001")
    """AlphaUSD, the book's base token."""

    tempo_quote_token: str = _str("TEMPO_QUOTE_TOKEN", "0x20c0000000000000000000000000000000000000")
    """pathUSD, the quote token."""

    multicall_address: str = _str("MULTICALL_ADDRESS", "0xcA11bde05977b3631167028862bE2a173976CA11")
    """Multicall3, used to batch the tick and order reads."""

    rpc_timeout: float = _float("RPC_TIMEOUT", 10)
    scan_min_tick: int = _int("SCAN_MIN_TICK", -500)
    scan_max_tick: int = _int("SCAN_MAX_TICK", 500)
    tick_spacing: int  = _int("TICK_SPACING", 10)
    flip_sample_ticks: int = _int("FLIP_SAMPLE_TICKS", 30)
    """Max number of tick heads inspected for the flip flag per snapshot."""

    # ── Orchestration ─────────────────────────────────────────────────────
    data_source: str = _str("DATA_SOURCE", "live")
    """'live' (Tempo RPC) or 'mock' (seeded simulator)."""

    cache_ttl: float = _float("CACHE_TTL", 2.0)
    """Seconds a fetched snapshot is served without hitting the RPC again."""

    refresh_interval: float = _float("REFRESH_INTERVAL", 3.0)
    max_failures: int = _int("MAX_FAILURES", 3)
    """Consecutive live failures before falling back to the simulator."""

    # ── Data / history ────────────────────────────────────────────────────
    data_dir: str = _str("DATA_DIR", "data")
    history_max_points: int = _int("HISTORY_MAX_POINTS", 720)
    history_cleanup: int    = _int("HISTORY_CLEANUP", 800)

    # ── MCP Server ────────────────────────────────────────────────────────
    mcp_host: str = _str("MCP_HOST", "0.0.0.0")
    mcp_port: int = _int("MCP_PORT", 8001)

    # ── GitHub (remote data URL) ──────────────────────────────────────────
    github_repo: str   = _str("GITHUB_REPO", "")
    github_branch: str = _str("GITHUB_BRANCH", "main")

    def __post_init__(self):
        if self.thresholds is None:
            self.thresholds = AlertThresholds(
                psi_warning=_float("PSI_WARNING", DEFAULT_THRESHOLDS.psi_warning),
                psi_critical=_float("PSI_CRITICAL", DEFAULT_THRESHOLDS.psi_critical),
                spread_warning=_float("SPREAD_WARNING", DEFAULT_THRESHOLDS.spread_warning),
                spread_critical=_float("SPREAD_CRITICAL", DEFAULT_THRESHOLDS.spread_critical),
                cliff_drop_percent=_float("CLIFF_DROP_PERCENT", DEFAULT_THRESHOLDS.cliff_drop_percent),
                whale_percent=_float("WHALE_PERCENT", DEFAULT_THRESHOLDS.whale_percent),
            )

    def raw_base_url(self) -> str | None:
        if not self.github_repo:
            return None
        return f"https://raw.githubusercontent.com/{self.github_repo}/{self.github_branch}"


cfg = Config()
