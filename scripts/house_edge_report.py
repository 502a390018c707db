#!/usr/bin/env python3
"""
House Edge Report

Monte Carlo check of the crash point distribution: draws crash points with
the configured house edge and compares the empirical return of several
fixed cashout targets against the theoretical 1 - h.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

import argparse
import random
import statistics

from config import config
from core.distribution import expected_return, generate_crash_point

TARGETS = [1.1, 1.5, 2.0, 3.0, 5.0, 10.0]


def run_report(rounds: int, house_edge: float, seed: int | None):
    rng = random.Random(seed)
    cap = config.get("game_rules", "max_multiplier")
    crash_points = [generate_crash_point(house_edge, rng, cap) for _ in range(rounds)]

    print("=" * 60)
    print(f"HOUSE EDGE REPORT - {rounds:,} rounds, h = {house_edge:.2%}")
    print("=" * 60)

    instant = sum(1 for cp in crash_points if cp == 1.0) / rounds
    print(f"\nInstant busts:   {instant:.2%}")
    print(f"Median crash:    {statistics.median(crash_points):.2f}x")
    print(f"Max crash:       {max(crash_points):.2f}x")

    print(f"\n{'Target':>8} {'P(win)':>10} {'Return':>10} {'Expected':>10}")
    print("-" * 42)
    for target in TARGETS:
        win_rate = sum(1 for cp in crash_points if cp > target) / rounds
        rtp = expected_return(crash_points, target)
        print(f"{target:>7.2f}x {win_rate:>9.2%} {rtp:>9.2%} {1 - house_edge:>9.2%}")


def main():
    parser = argparse.ArgumentParser(description="Monte Carlo house edge report")
    parser.add_argument("--rounds", type=int, default=200_000)
    parser.add_argument("--house-edge", type=float, default=config.get("game_rules", "house_edge"))
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args()

    run_report(args.rounds, args.house_edge, args.seed)


if __name__ == "__main__":
    main()
