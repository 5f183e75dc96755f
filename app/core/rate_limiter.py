"""
In-process throttle for repeated sensitive actions (e.g. create-record spam).

State lives in the instance the app creates at startup, so every request in the
process shares one counter per identifier and tests get a fresh limiter each.
This is a UX throttle: it resets on restart and does nothing against
distributed abuse. HTTP-wide limits are enforced separately by slowapi.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from fastapi import Request

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 10
DEFAULT_WINDOW_MS = 60_000


@dataclass
class RateLimitEntry:
    count: int
    window_start_ms: int


def _now_ms() -> int:
    return int(time.monotonic() * 1000)


class RateLimiter:
    def __init__(
        self,
        state: Optional[Dict[str, RateLimitEntry]] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self._state = state if state is not None else {}
        self._clock = clock or _now_ms
        self._lock = threading.Lock()

    def is_limited(
        self,
        identifier: str,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        window_ms: int = DEFAULT_WINDOW_MS,
    ) -> bool:
        """Count an attempt for identifier; True when it is over max_attempts inside the window."""
        now = self._clock()
        with self._lock:
            entry = self._state.get(identifier)
            if entry is None or now - entry.window_start_ms > window_ms:
                self._state[identifier] = RateLimitEntry(count=1, window_start_ms=now)
                return False
            if entry.count >= max_attempts:
                logger.info(f"Rate limit hit for {identifier}")
                return True
            entry.count += 1
            return False

    def reset(self, identifier: str) -> None:
        with self._lock:
            self._state.pop(identifier, None)

    def attempts(self, identifier: str) -> int:
        with self._lock:
            entry = self._state.get(identifier)
            return entry.count if entry else 0


def get_action_limiter(request: Request) -> RateLimiter:
    """Dependency returning the process-wide limiter created in app.main."""
    return request.app.state.action_limiter
