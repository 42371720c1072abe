from __future__ import annotations

import threading
import time
from typing import Callable, Dict

EXPIRED_TIME_DAYS = 3


class SymbolCache:
    """
    Tracks symbols and the time they were last recorded.

    is_exist() returns True while the symbol is inside its window. Otherwise it
    records now and returns False, so the window restarts only on a miss.
    """

    def __init__(
        self,
        expired_time_days: float = EXPIRED_TIME_DAYS,
        clock: Callable[[], float] = time.time,
    ):
        self.expiration_sec = expired_time_days * 24 * 60 * 60
        self.clock = clock
        self._seen: Dict[str, float] = {}
        self._lock = threading.Lock()

    def is_exist(self, symbol: str) -> bool:
        with self._lock:
            now = self.clock()
            ts = self._seen.get(symbol)
            if ts is not None and now - ts < self.expiration_sec:
                return True
            self._seen[symbol] = now
            return False

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)
