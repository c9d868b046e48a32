"""
Request pacing primitives shared by every call a client makes.
"""

import time
import logging
import threading
from contextlib import contextmanager
from typing import Optional, Any, Dict, Iterator

logger = logging.getLogger(__name__)


class Clock:
    """Wall clock, monotonic clock and sleep behind one injectable object."""

    def monotonic(self) -> float:
        return time.monotonic()

    def time(self) -> float:
        return time.time()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)


class RequestScheduler:
    """
    Slot-reservation pacer.

    Keeps a single "next allowed" timestamp. Each request reserves the next
    slot before it is sent, so request starts are always at least
    ``interval`` seconds apart no matter how long the requests themselves
    take. Throttling and retry delays push the timestamp forward so every
    later request honours them too.
    """

    def __init__(self, interval: float, clock: Optional[Clock] = None):
        self.interval = interval
        self.clock = clock or Clock()
        self._next_allowed = 0.0
        self._turn = threading.Condition()
        self._next_ticket = 0
        self._now_serving = 0

    @property
    def next_allowed(self) -> float:
        return self._next_allowed

    @property
    def queued(self) -> int:
        """Callers holding or waiting for the request queue."""
        with self._turn:
            return self._next_ticket - self._now_serving

    @contextmanager
    def serialized(self) -> Iterator[None]:
        """
        Hold the request queue for the duration of one logical request.

        Callers are served in arrival order: each takes a ticket and waits
        until that ticket is called. Not reentrant.
        """
        with self._turn:
            ticket = self._next_ticket
            self._next_ticket += 1
            while ticket != self._now_serving:
                self._turn.wait()
        try:
            yield
        finally:
            with self._turn:
                self._now_serving += 1
                self._turn.notify_all()

    def wait_for_slot(self) -> float:
        """Reserve the next slot and sleep until it opens. Returns the wait."""
        now = self.clock.monotonic()
        wait = max(0.0, self._next_allowed - now)
        self._next_allowed = max(now, self._next_allowed) + self.interval
        if wait > 0:
            logger.debug(f"Pacing: waiting {wait:.2f}s for next request slot")
            self.clock.sleep(wait)
        return wait

    def defer(self, delay: float) -> None:
        """Push the next slot at least ``delay`` seconds further out."""
        now = self.clock.monotonic()
        self._next_allowed = max(self._next_allowed, now) + delay


def cache_key(kind: str, subject: str) -> str:
    return f"{kind}:{subject}"


class ResponseCache:
    """Session-scoped memo of API payloads. No TTL, no eviction."""

    def __init__(self):
        self._entries: Dict[str, Any] = {}

    def get(self, key: str) -> Optional[Any]:
        return self._entries.get(key)

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = value

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
