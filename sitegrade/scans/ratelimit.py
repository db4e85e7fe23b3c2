# sitegrade/scans/ratelimit.py
"""
Guest scan rate limiting.

The scan routes only ask one question, "may this caller start a scan now?",
through ScanRateLimiter. The default implementation keeps a sliding window
per client IP in process memory, so limits reset on restart and are not
shared between workers. Swap in another implementation via
app.extensions["scan_rate_limiter"] when that matters.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import deque
from typing import Callable, Deque, Dict

logger = logging.getLogger(__name__)

DEFAULT_GUEST_SCAN_LIMIT = 5
DEFAULT_WINDOW_SECONDS = 24 * 60 * 60


class ScanRateLimiter(ABC):

    limit: int

    @abstractmethod
    def allow(self, client_ip: str) -> bool:
        """True if the caller may scan now. An allowed call counts as one scan."""
        ...


class InMemoryRateLimiter(ScanRateLimiter):
    """Sliding window of scan timestamps per client IP."""

    def __init__(
        self,
        limit: int = DEFAULT_GUEST_SCAN_LIMIT,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    def allow(self, client_ip: str) -> bool:
        now = self._clock()
        cutoff = now - self.window_seconds

        with self._lock:
            hits = self._hits.setdefault(client_ip, deque())
            while hits and hits[0] <= cutoff:
                hits.popleft()

            if len(hits) >= self.limit:
                logger.info(f"Guest scan limit reached for {client_ip} ({len(hits)}/{self.limit})")
                return False

            hits.append(now)
            return True

    def reset(self):
        with self._lock:
            self._hits.clear()
