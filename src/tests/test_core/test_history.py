"""
Tests for GameHistory
"""

from datetime import datetime

import pytest

from core.history import GameHistory


class TestGameHistory:
    """Tests for the bounded crash point feed"""

    def test_empty(self):
        history = GameHistory()
        assert len(history) == 0
        assert history.feed() == []
        assert history.latest() is None

    def test_most_recent_first(self):
        history = GameHistory()
        history.record("r1", 1.5)
        history.record("r2", 3.2)
        history.record("r3", 1.0)

        assert [e.roundId for e in history.feed()] == ["r3", "r2", "r1"]
        assert history.latest().crashPoint == 1.0

    def test_default_capacity_of_fifteen_evicts_oldest(self):
        history = GameHistory()
        for i in range(20):
            history.record(f"r{i}", 1.0 + i)

        feed = history.feed()
        assert len(feed) == 15
        assert history.is_full()
        assert feed[0].roundId == "r19"
        assert feed[-1].roundId == "r5"

    def test_feed_limit(self):
        history = GameHistory(5)
        for i in range(5):
            history.record(f"r{i}", 2.0)
        assert [e.roundId for e in history.feed(2)] == ["r4", "r3"]
        assert history.feed(0) == []

    def test_timestamp_kept(self):
        history = GameHistory()
        when = datetime(2024, 1, 1, 12, 0, 0)
        entry = history.record("r1", 2.0, when)
        assert entry.timestamp == when

    def test_clear(self):
        history = GameHistory()
        history.record("r1", 2.0)
        history.clear()
        assert len(history) == 0

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            GameHistory(0)

    def test_rejects_crash_point_below_one(self):
        history = GameHistory()
        with pytest.raises(ValueError):
            history.record("r1", 0.5)
