import threading
import time
from typing import Dict, List

from ...application.ports.rate_limiter import RateLimiter


class InMemoryRateLimiter(RateLimiter):
    """Sliding window per key."""

    def __init__(self) -> None:
        self._store: Dict[str, List[float]] = {}
        self._lock = threading.Lock()
        self._last_sweep = time.time()

    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        now = time.time()
        window_start = now - window_seconds
        with self._lock:
            if now - self._last_sweep >= window_seconds:
                self._sweep(window_start)
                self._last_sweep = now
            # prune
            times = [t for t in self._store.get(key, []) if t > window_start]
            if len(times) >= max_requests:
                if times:
                    self._store[key] = times
                else:
                    self._store.pop(key, None)
                return False
            times.append(now)
            self._store[key] = times
            return True

    def _sweep(self, window_start: float) -> None:
        # drop clients with nothing left in the window
        stale = [k for k, times in self._store.items() if not times or times[-1] <= window_start]
        for k in stale:
            del self._store[k]
