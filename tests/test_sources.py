"""Live Tempo client (against a fake Multicall3) and the orderbook simulator."""

import pytest
from web3 import Web3

from tempo_sentinel.config import Config
from tempo_sentinel.sources.mock import LEVELS_PER_SIDE, MockOrderbookSource
from tempo_sentinel.sources.tempo import (
    ORDER_FIELDS, ORDER_OUTPUTS, ORDER_SIG, TICK_LEVEL_INPUTS, TICK_LEVEL_OUTPUTS,
    TICK_LEVEL_SIG, TempoOrderbookClient, TempoRpcError, estimate_order_count, selector,
)

CODEC = Web3().codec
ZERO_ADDRESS = "0x" + "00" * 20


class FakeCall:
    def __init__(self, result):
        self.result = result

    def call(self):
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class FakeDex:
    """Answers getTickLevel / getOrder calldata from plain dicts."""

    def __init__(self, levels, flips, reverted_ticks=(), reverted_orders=()):
        self.levels = levels      # {(tick, is_bid): (head, tail, raw_liquidity)}
        self.flips = flips        # {order_id: is_flip}
        self.reverted_ticks = set(reverted_ticks)
        self.reverted_orders = set(reverted_orders)
        self.order_lookups = []

    def handle(self, data):
        sel, body = data[:4], data[4:]
        if sel == selector(TICK_LEVEL_SIG):
            _, tick, is_bid = CODEC.decode(TICK_LEVEL_INPUTS, body)
            if (tick, is_bid) in self.reverted_ticks:
                return (False, b"")
            level = self.levels.get((tick, is_bid), (0, 0, 0))
            return (True, CODEC.encode(TICK_LEVEL_OUTPUTS, list(level)))
        if sel == selector(ORDER_SIG):
            (order_id,) = CODEC.decode(["uint128"], body)
            self.order_lookups.append(order_id)
            if order_id in self.reverted_orders:
                return (False, b"")
            order = {
                "orderId": order_id, "maker": ZERO_ADDRESS, "bookKey": b"\x00" * 32,
                "isBid": True, "tick": 0, "amount": 0, "remaining": 0, "prev": 0,
                "next": 0, "isFlip": self.flips.get(order_id, False), "flipTick": 0,
            }
            fields = tuple(order[name] for name, _ in ORDER_FIELDS)
            return (True, CODEC.encode(ORDER_OUTPUTS, [fields]))
        raise AssertionError(f"unexpected selector {sel.hex()}")


class FakeMulticall:
    def __init__(self, dex, error=None):
        self.dex = dex
        self.error = error
        self.batches = 0

    def aggregate3(self, calls):
        self.batches += 1
        if self.error is not None:
            return FakeCall(self.error)
        return FakeCall([self.dex.handle(data) for _, _, data in calls])


class FakeContract:
    def __init__(self, functions):
        self.functions = functions


class FakeEth:
    def __init__(self, multicall):
        self.multicall = multicall

    def contract(self, address, abi):
        return FakeContract(self.multicall)


class FakeWeb3:
    codec = CODEC

    def __init__(self, multicall):
        self.eth = FakeEth(multicall)


def _client(multicall, **overrides):
    config = Config(scan_min_tick=-20, scan_max_tick=20, tick_spacing=10, **overrides)
    return TempoOrderbookClient(config, w3=FakeWeb3(multicall))


class TestEstimateOrderCount:

    @pytest.mark.parametrize("head, tail, expected", [
        (0, 0, 0),
        (7, 7, 1),
        (10, 14, 4),
        (10, 500, 100),
        (14, 10, 1),
    ])
    def test_bounds(self, head, tail, expected):
        assert estimate_order_count(head, tail) == expected


class TestTempoOrderbookClient:

    LEVELS = {
        (-10, True): (5, 9, 2_500_000_000),       # 2,500 tokens
        (-20, True): (11, 11, 1_000_000),
        (10, False): (20, 20, 4_000_000_000),
        (0, True): (0, 0, 0),
    }

    @pytest.fixture
    def dex(self):
        return FakeDex(levels=self.LEVELS, flips={5: True})

    def test_builds_sorted_snapshot(self, dex):
        book = _client(FakeMulticall(dex)).fetch()

        assert [l.tick for l in book.bids] == [-10, -20]
        assert [l.tick for l in book.asks] == [10]
        assert book.bids[0].liquidity == 2500.0
        assert book.bids[0].order_count == 4
        assert book.bids[1].order_count == 1
        assert book.best_bid.tick == -10
        assert book.best_ask.tick == 10
        assert book.mid_price == pytest.approx(1.0)

    def test_reads_are_batched(self, dex):
        multicall = FakeMulticall(dex)
        _client(multicall).fetch()
        # one batch of tick reads, one batch of head-order reads
        assert multicall.batches == 2
        assert sorted(dex.order_lookups) == [5, 11, 20]

    def test_flip_flag_from_head_order(self, dex):
        book = _client(FakeMulticall(dex)).fetch()
        assert book.bids[0].is_flip_order is True
        assert book.bids[1].is_flip_order is False
        assert book.asks[0].is_flip_order is False

    def test_flip_sampling_is_bounded(self, dex):
        _client(FakeMulticall(dex), flip_sample_ticks=1).fetch()
        assert len(dex.order_lookups) == 1

    def test_reverted_order_read_keeps_the_book(self):
        dex = FakeDex(levels=self.LEVELS, flips={5: True}, reverted_orders={5})
        book = _client(FakeMulticall(dex)).fetch()

        assert [l.tick for l in book.bids] == [-10, -20]
        assert [l.tick for l in book.asks] == [10]
        assert not any(l.is_flip_order for l in book.levels)

    def test_reverted_tick_read_skips_that_level(self):
        dex = FakeDex(levels=self.LEVELS, flips={}, reverted_ticks={(-20, True)})
        book = _client(FakeMulticall(dex)).fetch()

        assert [l.tick for l in book.bids] == [-10]
        assert [l.tick for l in book.asks] == [10]

    def test_empty_side_gets_placeholder(self):
        dex = FakeDex(levels={(10, False): (1, 1, 1_000_000)}, flips={})
        book = _client(FakeMulticall(dex)).fetch()

        assert book.bids == ()
        assert book.best_bid.tick == -10
        assert book.best_bid.liquidity == 0

    def test_transport_errors_are_wrapped(self, dex):
        multicall = FakeMulticall(dex, error=OSError("connection refused"))
        with pytest.raises(TempoRpcError, match="connection refused"):
            _client(multicall).fetch()


class TestMockOrderbookSource:

    def test_shape(self):
        book = MockOrderbookSource(clock=lambda: 1_700_000_000).snapshot()

        assert len(book.bids) == LEVELS_PER_SIDE
        assert len(book.asks) == LEVELS_PER_SIDE
        assert book.bids[0].tick == -5 and book.asks[0].tick == 5
        assert book.bids[-1].tick == -600
        assert book.timestamp == 1_700_000_000_000
        assert all(l.liquidity > 0 for l in book.levels)
        assert all(l.order_count >= 1 for l in book.levels)

    def test_deterministic(self):
        a = MockOrderbookSource(clock=lambda: 0)
        b = MockOrderbookSource(clock=lambda: 0)
        assert [a.snapshot() for _ in range(3)] == [b.snapshot() for _ in range(3)]

    def test_successive_books_differ(self):
        source = MockOrderbookSource(clock=lambda: 0)
        first, second = source.snapshot(), source.snapshot()
        assert first.bids != second.bids
        assert source.snapshot_count == 2

    def test_thin_bid_zone(self):
        book = MockOrderbookSource(clock=lambda: 0).snapshot()
        by_tick = {l.tick: l.liquidity for l in book.bids}
        # ×0.15 outweighs the 0.5–1.5 noise band
        assert by_tick[-450] < by_tick[-395]

    def test_historical_series(self):
        source = MockOrderbookSource(clock=lambda: 1_000)
        psi = source.historical_psi(10)
        spread = source.historical_spread(10)

        assert len(psi) == len(spread) == 11
        assert psi[-1]["t"] == 1_000_000
        assert psi[0]["t"] == 1_000_000 - 10 * 60_000
        assert all(0 <= p["v"] <= 100 for p in psi)
        assert all(p["v"] >= 0.005 for p in spread)
