"""
Tests for presentation helpers
"""

import pytest

from models import RoundStatus
from utils.display import GOLD, GREEN, RED, WHITE, format_multiplier, multiplier_color, status_text


class TestFormatMultiplier:
    """Tests for multiplier formatting"""

    @pytest.mark.parametrize(
        "multiplier,expected",
        [(1.0, "1.00x"), (2.346, "2.35x"), (9.999, "10.00x"), (12.34, "12.3x"), (100.0, "100x")],
    )
    def test_precision_by_magnitude(self, multiplier, expected):
        assert format_multiplier(multiplier) == expected


class TestMultiplierColor:
    """Tests for colour buckets"""

    @pytest.mark.parametrize(
        "multiplier,expected",
        [(1.0, WHITE), (1.19, WHITE), (1.2, GREEN), (1.99, GREEN), (2.0, GOLD), (9.9, GOLD), (10.0, RED)],
    )
    def test_buckets(self, multiplier, expected):
        assert multiplier_color(multiplier) == expected


class TestStatusText:
    """Tests for headline text"""

    def test_waiting(self):
        assert status_text(RoundStatus.WAITING, 1.0) == "STARTING SOON"

    def test_running(self):
        assert status_text(RoundStatus.RUNNING, 1.5) == "1.50x"

    def test_crashed(self):
        assert status_text("crashed", 2.0) == "CRASHED @ 2.00x"
