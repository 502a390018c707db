"""
Smoke test for the headless application
"""

import argparse

from main import Application


def _args(**overrides):
    values = {
        "rounds": 3,
        "bet": 100,
        "auto_cashout": 1.5,
        "seed": 42,
        "server_seed": None,
        "client_seed": "public",
        "fast": True,
        "crowd": 0,
    }
    values.update(overrides)
    return argparse.Namespace(**values)


class TestApplication:
    """Tests for the fast (manual clock) mode"""

    def test_runs_requested_rounds(self):
        app = Application(_args())
        try:
            app.run()
            session = app.engine.get_player(Application.PLAYER_ID)
            assert app.engine.rounds_completed == 3
            assert session.get_stats("rounds_played") == 3
            assert len(app.engine.history()) == 3
        finally:
            app.shutdown()

    def test_provably_fair_rounds_reproduce(self):
        results = []
        for _ in range(2):
            app = Application(_args(seed=None, server_seed="revealed-seed", rounds=2))
            try:
                app.run()
                results.append([e.crashPoint for e in app.engine.history()])
            finally:
                app.shutdown()
        assert results[0] == results[1]

    def test_stops_when_out_of_funds(self):
        app = Application(_args(bet=20000, rounds=5))
        try:
            app.run()
            assert app.engine.rounds_completed == 0
        finally:
            app.shutdown()

    def test_crowd_fills_every_round(self):
        app = Application(_args(crowd=8, rounds=5))
        try:
            app.run()
            assert len(app.bots) == 8
            assert app.engine.rounds_completed == 5
            assert len(app.round_results) == 5

            for result in app.round_results.values():
                # player stake plus eight bots staking at least 100 each
                assert result["wagered"] >= 100 + 8 * 100
                assert result["house_profit"] == result["wagered"] - result["paid_out"]

            for bot_id in app.bots:
                assert app.engine.get_player(bot_id).get_stats("rounds_played") == 5
        finally:
            app.shutdown()

    def test_crowd_balances_reconcile(self):
        app = Application(_args(crowd=4, rounds=10, seed=7))
        try:
            app.run()
            starting = 10000 * (1 + len(app.bots))
            balances = sum(
                app.engine.get_player(user_id).balance
                for user_id in [Application.PLAYER_ID, *app.bots]
            )
            house = sum(r["house_profit"] for r in app.round_results.values())
            assert balances + house == starting
        finally:
            app.shutdown()
