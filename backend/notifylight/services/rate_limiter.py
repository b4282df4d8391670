"""In-process sliding-window rate limiter."""
import time
from typing import Callable, Dict, List

WINDOW_SECONDS = 60.0


class RateLimiter:
    """Allows ``limit`` requests per client within a one-minute window."""

    def __init__(self, limit: int, window: float = WINDOW_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.window = window
        self._clock = clock
        # client key -> request timestamps inside the window
        self._hits: Dict[str, List[float]] = {}

    def allow(self, key: str) -> bool:
        """Record a request and report whether it is within the limit."""
        if self.limit <= 0:
            return True

        now = self._clock()
        cutoff = now - self.window
        hits = [t for t in self._hits.get(key, ()) if t > cutoff]

        if len(hits) >= self.limit:
            self._hits[key] = hits
            return False

        hits.append(now)
        self._hits[key] = hits
        self._prune(cutoff)
        return True

    def _prune(self, cutoff: float):
        """Drop clients whose every request has left the window."""
        for key in [k for k, hits in self._hits.items() if not hits or hits[-1] <= cutoff]:
            del self._hits[key]

    def active_clients(self) -> int:
        return len(self._hits)

    def reset(self):
        self._hits.clear()
