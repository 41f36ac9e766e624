"""
models.py — Orderbook snapshot and metric result types

All types are frozen dataclasses: a snapshot is assembled once per poll and
never mutated afterwards, and every metric result is derived fresh from it.
Sequences are stored as tuples for the same reason.

Units:
    tick       : integer offset from the peg, 1 tick = 0.001% of peg
    price      : quote units per base unit (peg = 1.0)
    liquidity  : USD value resting at a level
    timestamp  : milliseconds since the Unix epoch
"""

from dataclasses import asdict, dataclass
from typing import Literal

Side = Literal["bid", "ask"]
Trend = Literal["improving", "stable", "worsening"]
Severity = Literal["info", "warning", "critical"]
AlertType = Literal[
    "psi_critical", "liquidity_cliff", "whale_wall",
    "spread_warning", "peg_deviation", "flip_anomaly",
]


class _Serializable:
    def to_dict(self) -> dict:
        return asdict(self)


# ── Orderbook ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class OrderbookLevel(_Serializable):
    """Resting liquidity at one tick on one side of the book."""
    tick: int
    price: float
    liquidity: float
    side: Side
    is_flip_order: bool = False
    order_count: int = 0


@dataclass(frozen=True)
class OrderbookSnapshot(_Serializable):
    """Point-in-time view of the full book."""
    timestamp: int
    best_bid: OrderbookLevel
    best_ask: OrderbookLevel
    bids: tuple[OrderbookLevel, ...]
    asks: tuple[OrderbookLevel, ...]
    mid_price: float
    peg_price: float = 1.0

    @classmethod
    def from_levels(
        cls,
        bids,
        asks,
        timestamp: int,
        peg_offset: float = 0.0,
        empty_tick: int = 10,
    ) -> "OrderbookSnapshot":
        """
        Assemble a snapshot from unsorted levels.

        Bids are sorted by price descending, asks ascending. An empty side
        gets a zero-liquidity placeholder at -empty_tick / +empty_tick so the
        best prices (and therefore the spread) stay defined.
        """
        from tempo_sentinel.metrics.tick_math import tick_to_price

        bids = tuple(sorted(bids, key=lambda l: l.price, reverse=True))
        asks = tuple(sorted(asks, key=lambda l: l.price))
        best_bid = bids[0] if bids else OrderbookLevel(
            -empty_tick, tick_to_price(-empty_tick), 0.0, "bid")
        best_ask = asks[0] if asks else OrderbookLevel(
            empty_tick, tick_to_price(empty_tick), 0.0, "ask")
        mid = (best_bid.price + best_ask.price) / 2
        return cls(
            timestamp=timestamp,
            best_bid=best_bid,
            best_ask=best_ask,
            bids=bids,
            asks=asks,
            mid_price=mid + peg_offset,
        )

    @property
    def levels(self) -> tuple[OrderbookLevel, ...]:
        return self.bids + self.asks

    @property
    def total_bid_liquidity(self) -> float:
        return sum(l.liquidity for l in self.bids)

    @property
    def total_ask_liquidity(self) -> float:
        return sum(l.liquidity for l in self.asks)

    @property
    def total_liquidity(self) -> float:
        return self.total_bid_liquidity + self.total_ask_liquidity

    def near_peg_liquidity(self, band: int = 50) -> float:
        return sum(l.liquidity for l in self.levels if abs(l.tick) <= band)


# ── Peg Stress Index ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class PSIComponents(_Serializable):
    spread_stress: int       # weighted 30%
    liquidity_thinness: int  # weighted 40%
    order_imbalance: int     # weighted 30%


@dataclass(frozen=True)
class PSIResult(_Serializable):
    value: int
    level: Literal["stable", "moderate", "critical"]
    components: PSIComponents
    trend: Trend
    previous_value: int


# ── Detections ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class LiquidityCliff(_Serializable):
    tick: int
    price: float
    side: Side
    drop_percent: int
    liquidity_before: float
    liquidity_after: float
    severity: Literal["warning", "critical"]


@dataclass(frozen=True)
class WhaleWall(_Serializable):
    tick: int
    price: float
    side: Side
    liquidity: float
    percent_of_total: int
    classification: Literal["defense", "accumulation", "distribution"]


@dataclass(frozen=True)
class FlipOrderMetrics(_Serializable):
    total_flip_orders: int
    flip_percentage: float        # % of all orders in the book
    flip_density_near_peg: float  # % of levels within ±50 ticks that are flip levels
    flip_bid_ratio: float
    flip_ask_ratio: float
    avg_flip_spread_capture: float


@dataclass(frozen=True)
class ConcentrationRisk(_Serializable):
    hhi: int
    level: Literal["low", "moderate", "high"]
    top_tick_share: float
    top5_tick_share: float
    bid_concentration: int
    ask_concentration: int


@dataclass(frozen=True)
class ForecastFactors(_Serializable):
    stress_trend: Trend
    liquidity_velocity: int
    spread_trend: Literal["tightening", "stable", "widening"]


@dataclass(frozen=True)
class StabilityForecast(_Serializable):
    probability: Literal["high", "moderate", "low"]
    confidence: int
    factors: ForecastFactors
    short_term_outlook: str


@dataclass(frozen=True)
class SentinelAlert(_Serializable):
    id: str
    timestamp: int
    type: AlertType
    severity: Severity
    title: str
    message: str
    data: dict | None = None


# ── Configuration ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AlertThresholds(_Serializable):
    psi_warning: float = 30
    psi_critical: float = 60
    spread_warning: float = 0.3     # %
    spread_critical: float = 0.5    # %
    cliff_drop_percent: float = 60  # %
    whale_percent: float = 5        # % of total depth

    @property
    def cliff_drop_fraction(self) -> float:
        return self.cliff_drop_percent / 100

    @property
    def whale_fraction(self) -> float:
        return self.whale_percent / 100


DEFAULT_THRESHOLDS = AlertThresholds()


# ── Dashboard ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SpreadFigures(_Serializable):
    absolute: float
    percentage: float


@dataclass(frozen=True)
class PegDeviation(_Serializable):
    absolute: float
    percentage: float
    direction: Literal["above", "below", "on_peg"]


@dataclass(frozen=True)
class LiquidityDepth(_Serializable):
    total_bid: float
    total_ask: float
    ratio: float     # bid / ask
    near_peg: float  # liquidity within ±50 ticks


@dataclass(frozen=True)
class DashboardState(_Serializable):
    orderbook: OrderbookSnapshot
    psi: PSIResult
    cliffs: tuple[LiquidityCliff, ...]
    whale_walls: tuple[WhaleWall, ...]
    flip_metrics: FlipOrderMetrics
    forecast: StabilityForecast
    alerts: tuple[SentinelAlert, ...]
    concentration: ConcentrationRisk
    spread: SpreadFigures
    peg_deviation: PegDeviation
    liquidity_depth: LiquidityDepth
