"""
GameHistory - bounded feed of completed rounds

Display-only record of recent crash points. The oldest entry is evicted
once capacity is reached; reads return most-recent-first.
"""

import logging
import threading
from collections import deque
from datetime import datetime

from models import GameHistoryEntry

logger = logging.getLogger(__name__)


class GameHistory:
    """Thread-safe ring buffer of GameHistoryEntry"""

    def __init__(self, max_size: int = 15):
        if max_size <= 0:
            raise ValueError(f"History size must be positive, got {max_size}")

        self.max_size = max_size
        self._buffer: deque[GameHistoryEntry] = deque(maxlen=max_size)
        self._lock = threading.RLock()

    def record(self, round_id: str, crash_point: float, timestamp: datetime | None = None) -> GameHistoryEntry:
        """Append a completed round (evicts the oldest when full)"""
        entry = GameHistoryEntry(
            roundId=round_id,
            crashPoint=crash_point,
            timestamp=timestamp or datetime.now(),
        )
        with self._lock:
            if len(self._buffer) == self.max_size:
                logger.debug(f"History full, evicting {self._buffer[0].roundId}")
            self._buffer.append(entry)
        return entry

    def feed(self, limit: int | None = None) -> list[GameHistoryEntry]:
        """Most-recent-first list of entries"""
        with self._lock:
            entries = list(reversed(self._buffer))
        if limit is not None:
            return entries[: max(0, limit)]
        return entries

    def latest(self) -> GameHistoryEntry | None:
        with self._lock:
            return self._buffer[-1] if self._buffer else None

    def clear(self):
        with self._lock:
            self._buffer.clear()

    def is_full(self) -> bool:
        with self._lock:
            return len(self._buffer) >= self.max_size

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)

    def __repr__(self) -> str:
        with self._lock:
            newest = self._buffer[-1].roundId if self._buffer else None
            return f"GameHistory(size={len(self._buffer)}/{self.max_size}, newest={newest})"
