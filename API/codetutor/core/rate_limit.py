import time
from dataclasses import dataclass, field
from threading import Lock
from typing import Callable

from codetutor.core.settings import settings


@dataclass
class RateLimitWindow:
    count: int
    reset_at: float


@dataclass
class RateLimiter:
    """Fixed-window admission control per identifier; rejected calls are not queued or retried."""

    max_requests: int = 10
    window_seconds: float = 60.0
    clock: Callable[[], float] = field(default=time.monotonic)
    _windows: dict[str, RateLimitWindow] = field(default_factory=dict)
    _lock: Lock = field(default_factory=Lock)

    def _drop_expired(self, now: float) -> None:
        expired = [key for key, window in self._windows.items() if now > window.reset_at]
        for key in expired:
            del self._windows[key]

    def check_limit(self, identifier: str) -> bool:
        with self._lock:
            now = self.clock()
            self._drop_expired(now)
            window = self._windows.get(identifier)
            if window is None:
                self._windows[identifier] = RateLimitWindow(count=1, reset_at=now + self.window_seconds)
                return True
            if window.count >= self.max_requests:
                return False
            window.count += 1
            return True

    def remaining(self, identifier: str) -> int:
        with self._lock:
            window = self._windows.get(identifier)
            if window is None or self.clock() > window.reset_at:
                return self.max_requests
            return max(0, self.max_requests - window.count)

    def retry_after(self, identifier: str) -> float:
        with self._lock:
            window = self._windows.get(identifier)
            if window is None:
                return 0.0
            return max(0.0, window.reset_at - self.clock())

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def status(self) -> dict:
        with self._lock:
            tracked = len(self._windows)
        return {
            "max_requests": self.max_requests,
            "window_seconds": self.window_seconds,
            "tracked_identifiers": tracked,
        }


api_rate_limiter = RateLimiter(
    max_requests=settings.rate_limit_max_requests,
    window_seconds=settings.rate_limit_window_seconds,
)
