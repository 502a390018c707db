"""
Main Entry Point for the crash round engine

Runs a headless session: one simulated player bets every round with an
auto-cashout target, optionally alongside a crowd of bots, while the engine
cycles waiting -> running -> crashed.
"""

__version__ = "1.0.0"

import argparse
import logging
import random
import sys
import threading

from config import ConfigError, config
from core import (
    InsufficientBalanceError,
    ManualScheduler,
    RoundEngine,
    ThreadingScheduler,
    ValidationError,
)
from core.distribution import ProvablyFairSource
from models import RoundStatus
from services.event_bus import Events, event_bus
from services.logger import cleanup_logging, setup_logging
from utils.crowd import bot_ids, crowd_bets
from utils.display import format_multiplier, status_text


class Application:
    """
    Main application controller
    Coordinates engine, scheduler and event handlers and manages lifecycle
    """

    PLAYER_ID = "player-1"

    def __init__(self, args: argparse.Namespace):
        self.args = args
        self._initialized_components = []
        self.engine: RoundEngine | None = None
        self.event_bus = event_bus
        self._finished = threading.Event()
        self._crowd_rng = random.Random(args.seed)
        self.bots: list[str] = bot_ids(args.crowd)
        self.round_results: dict[str, dict] = {}

        try:
            self.logger = setup_logging()
            self._initialized_components.append("logging")
            self.logger.info("=" * 60)
            self.logger.info(f"Crash Round Engine {__version__} - Starting")
            self.logger.info(f"MODE: {'FAST (manual clock)' if args.fast else 'REAL TIME'}")
            self.logger.info("=" * 60)

            try:
                config.validate()
                self.logger.info("Configuration validated successfully")
            except ConfigError as e:
                self.logger.critical(f"Configuration validation failed: {e}")
                raise

            self.event_bus.start()
            self._initialized_components.append("event_bus")

            self.scheduler = ManualScheduler() if args.fast else ThreadingScheduler()
            self.engine = RoundEngine(scheduler=self.scheduler, rng=self._build_rng())
            self.engine.register_player(self.PLAYER_ID)
            for bot_id in self.bots:
                self.engine.register_player(bot_id)
            if self.bots:
                self.logger.info(f"Simulated crowd: {len(self.bots)} bot(s)")
            self._initialized_components.append("engine")

            self._setup_event_handlers()
            self.logger.info("Application initialized successfully")
        except Exception:
            self._emergency_cleanup()
            raise

    def _build_rng(self):
        if self.args.server_seed:
            source = ProvablyFairSource(self.args.server_seed, client_seed=self.args.client_seed)
            self.logger.info(f"Provably fair seed commitment: {source.server_seed_hash}")
            return source
        if self.args.seed is not None:
            return random.Random(self.args.seed)
        return None

    def _emergency_cleanup(self):
        """Clean up partially initialized components"""
        for component in reversed(self._initialized_components):
            try:
                if component == "engine":
                    self.engine.stop()
                elif component == "event_bus":
                    self.event_bus.stop()
                elif component == "logging":
                    cleanup_logging()
            except Exception as e:
                print(f"Cleanup of {component} failed: {e}", file=sys.stderr)

    def _setup_event_handlers(self):
        self.event_bus.subscribe(Events.ROUND_WAITING, self._handle_round_waiting)
        self.event_bus.subscribe(Events.ROUND_CRASHED, self._handle_round_crashed)
        self.event_bus.subscribe(Events.BET_CASHED_OUT, self._handle_cashout)
        self.event_bus.subscribe(Events.BET_REJECTED, self._handle_rejected)
        self.logger.debug("Event handlers configured")

    def _handle_round_waiting(self, event):
        # Real-time mode bets from the bus thread; fast mode bets inline
        if not self.args.fast and self.engine.rounds_completed < self.args.rounds:
            self._place_round_bets()

    def _handle_round_crashed(self, event):
        data = event.get("data", {})
        self.logger.info(
            f"{status_text(RoundStatus.CRASHED, data.get('crash_point', 1.0))} "
            f"(round {data.get('round_id')})"
        )
        if not self.args.fast:
            self._record_round(data.get("round_id"), data)
            if self.engine.rounds_completed >= self.args.rounds:
                self._finished.set()

    def _handle_cashout(self, event):
        data = event.get("data", {})
        self.logger.info(
            f"{data.get('user_id')} cashed out at "
            f"{format_multiplier(data.get('cashout_multiplier', 1.0))} (profit {data.get('profit')})"
        )

    def _handle_rejected(self, event):
        self.logger.warning(f"Bet rejected: {event.get('data', {})}")

    def _place_round_bets(self) -> bool:
        """Player bet first, then the crowd; False once the player is out of funds"""
        if not self._place_bet():
            return False
        self._place_crowd_bets()
        return True

    def _place_crowd_bets(self):
        for bet in crowd_bets(self._crowd_rng, self.bots):
            try:
                self.engine.place_bet(bet.user_id, bet.amount, bet.auto_cashout)
            except InsufficientBalanceError:
                self.logger.debug(f"{bet.user_id} sits out (cannot cover {bet.amount})")
            except ValidationError as e:
                self.logger.warning(f"{bet.user_id} bet skipped: {e}")

    def _record_round(self, round_id, data):
        if round_id is None or round_id in self.round_results:
            return
        self.round_results[round_id] = {
            "crash_point": data["crash_point"],
            "wagered": data["wagered"],
            "paid_out": data["paid_out"],
            "house_profit": data["house_profit"],
        }

    def _place_bet(self) -> bool:
        try:
            self.engine.place_bet(self.PLAYER_ID, self.args.bet, self.args.auto_cashout)
            return True
        except InsufficientBalanceError:
            self.logger.warning("Player is out of funds, stopping")
            self._finished.set()
            return False
        except ValidationError as e:
            self.logger.warning(f"Skipping round: {e}")
            return True

    def run(self):
        """Run the configured number of rounds"""
        self.engine.start()
        if self.args.fast:
            self._run_fast()
        else:
            self._finished.wait()

        session = self.engine.get_player(self.PLAYER_ID)
        self.logger.info(f"Session metrics: {session.metrics()}")
        if self.round_results:
            house = sum(r["house_profit"] for r in self.round_results.values())
            self.logger.info(f"House profit over {len(self.round_results)} round(s): {house}")
        recent = ", ".join(format_multiplier(e.crashPoint) for e in self.engine.history(10))
        self.logger.info(f"Recent crash points: {recent}")

    def _run_fast(self):
        """Drive the manual clock tick by tick until enough rounds completed"""
        tick = self.engine.tick_interval_ms
        bet_round = None
        while self.engine.rounds_completed < self.args.rounds and not self._finished.is_set():
            snapshot = self.engine.snapshot()
            if snapshot.status == RoundStatus.WAITING and snapshot.id != bet_round:
                bet_round = snapshot.id
                if not self._place_round_bets():
                    break
            elif snapshot.status == RoundStatus.CRASHED:
                self._record_crashed(snapshot)
            self.scheduler.advance(tick)

        snapshot = self.engine.snapshot()
        if snapshot.status == RoundStatus.CRASHED:
            self._record_crashed(snapshot)

    def _record_crashed(self, snapshot):
        self._record_round(snapshot.id, {"crash_point": snapshot.crashPoint, **self.engine.round_totals()})

    def shutdown(self):
        """Stop the engine and release resources"""
        self.logger.info("Shutting down application...")
        if self.engine is not None:
            self.engine.stop()
        self.event_bus.stop()
        self.logger.info("Application shutdown complete")
        cleanup_logging()


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description="Crash Round Engine - headless simulation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --fast --rounds 100 --seed 42        # Deterministic replay
  %(prog)s --bet 50 --auto-cashout 1.5          # Real-time rounds
  %(prog)s --fast --server-seed abc --rounds 5  # Provably fair rounds
  %(prog)s --fast --crowd 8 --rounds 20        # Busy table with bots
        """,
    )
    parser.add_argument("--rounds", type=int, default=10, help="Rounds to play (default: 10)")
    parser.add_argument("--bet", type=int, default=100, help="Stake per round in whole units")
    parser.add_argument(
        "--auto-cashout", type=float, default=2.0, help="Auto-cashout multiplier (default: 2.0)"
    )
    parser.add_argument("--crowd", type=int, default=0, help="Simulated bots betting each round")
    parser.add_argument("--seed", type=int, default=None, help="Seed for a reproducible run")
    parser.add_argument("--server-seed", default=None, help="Use provably fair crash points")
    parser.add_argument("--client-seed", default="public", help="Client seed for provably fair mode")
    parser.add_argument(
        "--fast", action="store_true", help="Drive a synthetic clock instead of waiting in real time"
    )

    args = parser.parse_args()

    app = None
    try:
        app = Application(args)
        app.run()
    except KeyboardInterrupt:
        print("\nInterrupted by user")
    except ConfigError:
        sys.exit(1)
    except Exception as e:
        logging.critical(f"Unhandled exception: {e}", exc_info=True)
        sys.exit(1)
    finally:
        if app is not None:
            app.shutdown()


if __name__ == "__main__":
    main()
