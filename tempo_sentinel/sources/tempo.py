"""
tempo.py — Live orderbook from the Tempo stablecoin DEX (web3 contract calls)

Contract calls used:
    getTickLevel(base, tick, isBid) → (head, tail, totalLiquidity)
        FIFO queue of orders resting at a tick: head/tail order ids and the
        summed remaining amount (6-decimal TIP-20 units).
    getOrder(orderId) → Order
        Used on the head order of a tick to detect flip orders.

Both are batched through Multicall3 `aggregate3` with allowFailure set, so a
refresh costs two eth_calls instead of ~230. A single reverted read (e.g. a
head order filled between the tick read and the order read) only drops that
level or leaves it unflagged; transport failures still fail the snapshot.

Ticks from SCAN_MIN_TICK to SCAN_MAX_TICK are scanned every TICK_SPACING.
Only the head order of up to FLIP_SAMPLE_TICKS ticks is inspected for the
flip flag, so `is_flip_order` is a sampled signal.

Order ids grow monotonically but not contiguously (cancels leave gaps), so
order counts per tick are a bounded estimate from tail - head.
"""

import logging
import time

from web3 import Web3
from web3.exceptions import Web3Exception

from tempo_sentinel.config import Config, cfg
from tempo_sentinel.metrics.models import OrderbookLevel, OrderbookSnapshot
from tempo_sentinel.metrics.tick_math import tick_to_price

logger = logging.getLogger(__name__)

TOKEN_DECIMALS = 6
MAX_ORDER_ESTIMATE = 100
MULTICALL_CHUNK = 250

ORDER_FIELDS = [
    ("orderId", "uint128"), ("maker", "address"), ("bookKey", "bytes32"),
    ("isBid", "bool"), ("tick", "int16"), ("amount", "uint128"),
    ("remaining", "uint128"), ("prev", "uint128"), ("next", "uint128"),
    ("isFlip", "bool"), ("flipTick", "int16"),
]

TICK_LEVEL_SIG = "getTickLevel(address,int16,bool)"
TICK_LEVEL_INPUTS = ["address", "int16", "bool"]
TICK_LEVEL_OUTPUTS = ["uint128", "uint128", "uint128"]

ORDER_SIG = "getOrder(uint128)"
ORDER_INPUTS = ["uint128"]
ORDER_OUTPUTS = ["(" + ",".join(t for _, t in ORDER_FIELDS) + ")"]

MULTICALL3_ABI = [
    {
        "name": "aggregate3", "type": "function", "stateMutability": "payable",
        "inputs": [{
            "name": "calls", "type": "tuple[]",
            "components": [
                {"name": "target", "type": "address"},
                {"name": "allowFailure", "type": "bool"},
                {"name": "callData", "type": "bytes"},
            ],
        }],
        "outputs": [{
            "name": "returnData", "type": "tuple[]",
            "components": [
                {"name": "success", "type": "bool"},
                {"name": "returnData", "type": "bytes"},
            ],
        }],
    },
]


class TempoRpcError(Exception):
    """Transport or contract failure while reading the live book."""


def estimate_order_count(head: int, tail: int) -> int:
    if head == 0:
        return 0
    if head == tail:
        return 1
    return max(1, min(tail - head, MAX_ORDER_ESTIMATE))


def selector(signature: str) -> bytes:
    return bytes(Web3.keccak(text=signature)[:4])


class TempoOrderbookClient:
    """Reads the AlphaUSD/pathUSD book from the Tempo DEX."""

    def __init__(self, config: Config = cfg, w3: Web3 | None = None):
        self.config = config
        self.w3 = w3 or Web3(Web3.HTTPProvider(
            config.tempo_rpc_url, request_kwargs={"timeout": config.rpc_timeout}
        ))
        self.multicall = self.w3.eth.contract(
            address=Web3.to_checksum_address(config.multicall_address), abi=MULTICALL3_ABI
        )
        self.dex_address = Web3.to_checksum_address(config.tempo_dex_address)
        self.base_token = Web3.to_checksum_address(config.tempo_base_token)

    def fetch(self) -> OrderbookSnapshot:
        """Fetch a full snapshot. Raises TempoRpcError when the RPC itself fails."""
        try:
            return self._fetch()
        except (Web3Exception, OSError, ValueError) as e:
            raise TempoRpcError(f"Tempo RPC read failed: {e}") from e

    # ── Multicall ──

    def _encode(self, signature: str, types: list[str], args: list) -> bytes:
        return selector(signature) + self.w3.codec.encode(types, args)

    def _aggregate(self, calldata: list[bytes]) -> list[bytes | None]:
        """Run DEX calls through aggregate3; a failed entry comes back as None."""
        results = []
        for i in range(0, len(calldata), MULTICALL_CHUNK):
            chunk = calldata[i:i + MULTICALL_CHUNK]
            returned = self.multicall.functions.aggregate3(
                [(self.dex_address, True, data) for data in chunk]
            ).call()
            results.extend(data if ok and data else None for ok, data in returned)
        return results

    # ── Snapshot ──

    def _fetch(self) -> OrderbookSnapshot:
        c = self.config
        started = time.monotonic()

        queries = [
            (side, tick)
            for tick in range(c.scan_min_tick, c.scan_max_tick + 1, c.tick_spacing)
            for side in ("bid", "ask")
        ]
        returned = self._aggregate([
            self._encode(TICK_LEVEL_SIG, TICK_LEVEL_INPUTS,
                         [self.base_token, tick, side == "bid"])
            for side, tick in queries
        ])

        raw = {"bid": {}, "ask": {}}
        heads = []
        failed = 0
        for (side, tick), data in zip(queries, returned):
            if data is None:
                failed += 1
                continue
            head, tail, total = self.w3.codec.decode(TICK_LEVEL_OUTPUTS, data)
            if total <= 0:
                continue
            raw[side][tick] = {
                "liquidity": total / 10 ** TOKEN_DECIMALS,
                "order_count": estimate_order_count(head, tail),
                "is_flip": False,
            }
            if head > 0:
                heads.append((side, tick, head))

        sampled = heads[:c.flip_sample_ticks]
        orders = self._aggregate([
            self._encode(ORDER_SIG, ORDER_INPUTS, [head]) for _, _, head in sampled
        ]) if sampled else []

        for (side, tick, _), data in zip(sampled, orders):
            if data is None:
                continue
            (fields,) = self.w3.codec.decode(ORDER_OUTPUTS, data)
            order = dict(zip((n for n, _ in ORDER_FIELDS), fields))
            if order["isFlip"]:
                raw[side][tick]["is_flip"] = True

        if failed:
            logger.warning(f"Skipped {failed}/{len(queries)} tick reads that reverted")

        levels = {
            side: [
                OrderbookLevel(
                    tick=tick,
                    price=tick_to_price(tick),
                    liquidity=info["liquidity"],
                    side=side,
                    is_flip_order=info["is_flip"],
                    order_count=info["order_count"],
                )
                for tick, info in by_tick.items()
            ]
            for side, by_tick in raw.items()
        }

        snapshot = OrderbookSnapshot.from_levels(
            levels["bid"], levels["ask"],
            timestamp=int(time.time() * 1000),
            empty_tick=c.tick_spacing,
        )
        logger.info(f"Tempo book: {len(snapshot.bids)} bid / {len(snapshot.asks)} ask levels "
                    f"in {time.monotonic() - started:.2f}s")
        return snapshot
