"""Liquidity cliff and whale wall detection."""

import logging

from tempo_sentinel.metrics.liquidity import detect_liquidity_cliffs, detect_whale_walls


class TestLiquidityCliffs:

    def test_sharp_drop_is_critical(self, make_book):
        book = make_book(bids={-10: 1000, -20: 1000, -30: 100})
        cliffs = detect_liquidity_cliffs(book, 0.6)

        assert len(cliffs) == 1
        cliff = cliffs[0]
        assert cliff.tick == -30
        assert cliff.side == "bid"
        assert cliff.drop_percent == 90
        assert cliff.liquidity_before == 1000
        assert cliff.liquidity_after == 100
        assert cliff.severity == "critical"

    def test_moderate_drop_is_warning(self, make_book):
        cliffs = detect_liquidity_cliffs(make_book(asks={10: 1000, 20: 300}), 0.6)
        assert [(c.tick, c.drop_percent, c.severity) for c in cliffs] == [(20, 70, "warning")]

    def test_below_threshold_not_flagged(self, make_book):
        assert detect_liquidity_cliffs(make_book(asks={10: 1000, 20: 500}), 0.6) == []

    def test_threshold_is_configurable(self, make_book):
        book = make_book(asks={10: 1000, 20: 500})
        assert len(detect_liquidity_cliffs(book, 0.5)) == 1

    def test_walks_outward_from_peg(self, make_book):
        # Same book as the critical case, given in scrambled order
        book = make_book(bids={-30: 100, -10: 1000, -20: 1000})
        cliffs = detect_liquidity_cliffs(book, 0.6)
        assert [c.tick for c in cliffs] == [-30]

    def test_zero_liquidity_reference_skipped(self, make_book):
        book = make_book(bids={-10: 0, -20: 0, -30: 500})
        assert detect_liquidity_cliffs(book, 0.6) == []

    def test_sorted_by_drop_across_sides(self, make_book):
        book = make_book(
            bids={-10: 1000, -20: 100},    # 90%
            asks={10: 1000, 20: 50},       # 95%
        )
        cliffs = detect_liquidity_cliffs(book, 0.6)
        assert [(c.side, c.drop_percent) for c in cliffs] == [("ask", 95), ("bid", 90)]

    def test_empty_book(self, make_book):
        assert detect_liquidity_cliffs(make_book(), 0.6) == []


class TestWhaleWalls:

    def test_flags_and_classifies(self, make_book):
        book = make_book(
            bids={-10: 30, -20: 30, -150: 600},
            asks={10: 30, 20: 310},
        )
        walls = detect_whale_walls(book, 0.05)

        assert [(w.tick, w.percent_of_total, w.classification) for w in walls] == [
            (-150, 60, "accumulation"),
            (20, 31, "distribution"),
        ]

    def test_bid_near_peg_is_defense(self, make_book):
        book = make_book(bids={-100: 500}, asks={10: 100, 20: 100, 30: 100, 40: 100, 50: 100})
        walls = detect_whale_walls(book, 0.2)
        assert len(walls) == 1
        assert walls[0].classification == "defense"
        assert walls[0].percent_of_total == 50

    def test_far_ask_is_accumulation(self, make_book):
        walls = detect_whale_walls(make_book(bids={-10: 100}, asks={101: 900}), 0.5)
        assert walls[0].classification == "accumulation"

    def test_single_wall_reported_once_with_rounded_percent(self, make_book):
        asks = {t: 62.0 for t in range(10, 150, 10)}   # 14 × 62 = 868
        book = make_book(bids={-40: 132}, asks=asks)   # total 1000
        walls = detect_whale_walls(book, 0.10)

        assert len(walls) == 1
        assert walls[0].tick == -40
        assert walls[0].percent_of_total == 13

    def test_sorted_by_liquidity(self, make_book):
        book = make_book(bids={-10: 200, -20: 500}, asks={10: 300})
        assert [w.liquidity for w in detect_whale_walls(book, 0.05)] == [500, 300, 200]

    def test_empty_book_has_no_walls(self, make_book):
        assert detect_whale_walls(make_book(), 0.05) == []
        assert detect_whale_walls(make_book(bids={-10: 0}, asks={10: 0}), 0.05) == []


class TestTieRounding:

    def test_cliff_drop_rounds_half_up(self, make_book):
        cliffs = detect_liquidity_cliffs(make_book(asks={10: 1000, 20: 375}), 0.6)
        assert [c.drop_percent for c in cliffs] == [63]    # 62.5

    def test_wall_share_rounds_half_up(self, make_book):
        walls = detect_whale_walls(make_book(bids={-10: 125}, asks={10: 875}), 0.1)
        assert {w.tick: w.percent_of_total for w in walls} == {10: 88, -10: 13}


class TestLogging:

    def test_detections_are_logged(self, make_book, caplog):
        caplog.set_level(logging.DEBUG, logger="tempo_sentinel.metrics.liquidity")
        book = make_book(bids={-10: 125}, asks={10: 1000, 20: 100})
        detect_liquidity_cliffs(book, 0.6)
        detect_whale_walls(book, 0.1)

        assert "Detected 1 liquidity cliffs (1 critical)" in caplog.text
        assert "Detected 2 whale walls" in caplog.text
