"""
Tests for the crash point distribution
"""

import random
import statistics

import pytest

from core.distribution import (
    ProvablyFairSource,
    estimate_house_edge,
    expected_return,
    generate_crash_point,
    hash_to_uniform,
)

SAMPLES = 200_000


@pytest.fixture(scope="module")
def crash_points():
    rng = random.Random(20240601)
    return [generate_crash_point(0.01, rng) for _ in range(SAMPLES)]


class TestGenerateCrashPoint:
    """Tests for generate_crash_point"""

    def test_always_at_least_one(self, crash_points):
        assert min(crash_points) >= 1.0

    def test_instant_bust_fraction_matches_house_edge(self, crash_points):
        instant = sum(1 for cp in crash_points if cp == 1.0) / SAMPLES
        assert instant == pytest.approx(0.01, abs=0.002)

    def test_median_near_two(self, crash_points):
        assert statistics.median(crash_points) == pytest.approx(2.0, rel=0.05)

    def test_heavy_tail(self, crash_points):
        # P(crash >= 100) = 0.99 / 100
        tail = sum(1 for cp in crash_points if cp >= 100) / SAMPLES
        assert tail == pytest.approx(0.0099, abs=0.002)
        assert max(crash_points) > 1000

    def test_house_edge_one_minus_epsilon_mostly_busts(self):
        rng = random.Random(7)
        points = [generate_crash_point(0.99, rng) for _ in range(1000)]
        assert sum(1 for cp in points if cp == 1.0) > 950

    def test_zero_house_edge_never_forces_bust(self):
        rng = random.Random(3)
        points = [generate_crash_point(0.0, rng) for _ in range(1000)]
        assert all(cp >= 1.0 for cp in points)
        assert sum(1 for cp in points if cp == 1.0) < 10

    @pytest.mark.parametrize("house_edge", [-0.01, 1.0, 1.5])
    def test_rejects_invalid_house_edge(self, house_edge):
        with pytest.raises(ValueError):
            generate_crash_point(house_edge, random.Random(0))

    def test_cap(self):
        rng = random.Random(11)
        points = [generate_crash_point(0.01, rng, max_multiplier=100.0) for _ in range(5000)]
        assert max(points) == 100.0

    def test_same_seed_same_sequence(self):
        a = [generate_crash_point(0.01, random.Random(99)) for _ in range(3)]
        b = [generate_crash_point(0.01, random.Random(99)) for _ in range(3)]
        assert a == b

    def test_default_source(self):
        assert generate_crash_point(0.01) >= 1.0


class TestReturnToPlayer:
    """Tests for the empirical return helpers"""

    @pytest.mark.parametrize("target", [1.5, 2.0, 5.0])
    def test_every_target_returns_one_minus_edge(self, crash_points, target):
        assert expected_return(crash_points, target) == pytest.approx(0.99, abs=0.03)

    def test_win_requires_crash_strictly_above_target(self):
        assert expected_return([2.0, 2.0], 2.0) == 0.0
        assert expected_return([2.01, 1.0], 2.0) == 1.0

    def test_estimate_house_edge(self, crash_points):
        assert estimate_house_edge(crash_points) == pytest.approx(0.01, abs=0.03)

    def test_empty_sample_rejected(self):
        with pytest.raises(ValueError):
            expected_return([], 2.0)


class TestProvablyFairSource:
    """Tests for the seeded HMAC source"""

    def test_uniform_range(self):
        source = ProvablyFairSource("server-seed")
        values = [source.random() for _ in range(1000)]
        assert all(0.0 <= v < 1.0 for v in values)

    def test_reproducible_from_revealed_seed(self):
        first = ProvablyFairSource("server-seed", "client", nonce=5)
        replay = ProvablyFairSource("server-seed", "client", nonce=5)
        assert generate_crash_point(0.01, first) == generate_crash_point(0.01, replay)

    def test_next_round_changes_stream(self):
        source = ProvablyFairSource("server-seed")
        following = source.next_round()
        assert following.nonce == 1
        assert source.random() != following.random()

    def test_commitment_verifies(self):
        source = ProvablyFairSource()
        assert ProvablyFairSource.verify(source.server_seed, source.server_seed_hash)
        assert not ProvablyFairSource.verify("tampered", source.server_seed_hash)

    def test_hash_to_uniform_bounds(self):
        assert hash_to_uniform("0" * 64) == 0.0
        assert hash_to_uniform("f" * 64) < 1.0
