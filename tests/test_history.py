"""File-backed metric history."""

import pytest

from tempo_sentinel.history import METRICS, HistoryStore


class Clock:
    def __init__(self, now=1_000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def store(tmp_path, clock):
    return HistoryStore(tmp_path, max_points=5, cleanup_threshold=8, clock=clock)


class TestHistoryStore:

    def test_missing_series_is_empty(self, store):
        assert store.read("pair", "psi") == []

    def test_append_and_read(self, store, clock, tmp_path):
        store.append("pair", "psi", 21)
        clock.now += 5
        store.append("pair", "psi", 24)

        assert store.read("pair", "psi") == [
            {"t": 1_000_000, "v": 21},
            {"t": 1_005_000, "v": 24},
        ]
        assert (tmp_path / "pair" / "psi.json").exists()

    def test_trimmed_only_past_cleanup_threshold(self, store):
        for i in range(8):
            store.append("pair", "spread", i)
        assert len(store.read("pair", "spread")) == 8

        store.append("pair", "spread", 8)
        assert [p["v"] for p in store.read("pair", "spread")] == [4, 5, 6, 7, 8]

    def test_append_metrics_skips_none(self, store):
        store.append_metrics("pair", {"psi": 30, "peg_dev": None, "imbalance": 0.2})
        assert len(store.read("pair", "psi")) == 1
        assert store.read("pair", "peg_dev") == []
        assert store.read("pair", "imbalance")[0]["v"] == 0.2

    def test_recent_window(self, store, clock):
        store.append("pair", "psi", 1)
        clock.now += 30 * 60
        store.append("pair", "psi", 2)
        clock.now += 20 * 60

        assert [p["v"] for p in store.recent("pair", "psi", minutes=30)] == [2]
        assert [p["v"] for p in store.recent("pair", "psi", minutes=60)] == [1, 2]

    def test_pairs_are_isolated(self, store):
        store.append("a", "psi", 1)
        assert store.read("b", "psi") == []

    def test_clear(self, store):
        for metric in METRICS:
            store.append("pair", metric, 1)
        store.clear("pair", "psi")
        assert store.read("pair", "psi") == []
        assert store.read("pair", "spread") != []

        store.clear_pair("pair")
        assert all(store.read("pair", m) == [] for m in METRICS)
        store.clear("pair", "psi")   # already gone

    def test_unknown_metric(self, store):
        with pytest.raises(ValueError):
            store.append("pair", "volume", 1)
        with pytest.raises(ValueError):
            store.read("pair", "volume")

    def test_corrupt_file_reads_empty(self, store, tmp_path):
        path = tmp_path / "pair" / "psi.json"
        path.parent.mkdir()
        path.write_text("{not json")

        assert store.read("pair", "psi") == []
        store.append("pair", "psi", 5)
        assert [p["v"] for p in store.read("pair", "psi")] == [5]

    def test_seed_only_fills_empty_series(self, store):
        points = [{"t": i, "v": i} for i in range(7)]
        assert store.seed("pair", "psi", points) is True
        assert [p["v"] for p in store.read("pair", "psi")] == [2, 3, 4, 5, 6]

        assert store.seed("pair", "psi", [{"t": 99, "v": 99}]) is False
        assert len(store.read("pair", "psi")) == 5
