"""Throttle reads from a connection with token-bucket rate limiting."""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleeper = Callable[[float], None]


class _Readable(Protocol):
    def read(self, size: int = -1, /) -> bytes: ...


class RateLimiter:
    """A token bucket refilled at ``limit`` tokens per second, holding at most ``burst``.

    A zero limit never refills: the burst is spent once. An infinite limit
    never waits.
    """

    def __init__(
        self,
        limit: float,
        burst: int,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleeper = time.sleep,
    ) -> None:
        if limit < 0:
            raise ValueError(f"limit must be at least 0: {limit}")
        if burst < 0:
            raise ValueError(f"burst must be at least 0: {burst}")
        self.limit = float(limit)
        self.burst = int(burst)
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(burst)
        self._last = clock()
        self._lock = threading.Lock()

    def wait_n(self, n: int) -> None:
        """Block until ``n`` tokens are available and take them.

        Raises ValueError when ``n`` can never be granted.
        """
        if n < 0:
            raise ValueError(f"rate: Wait(n={n}) must not be negative")
        if math.isinf(self.limit):
            return
        with self._lock:
            if self.limit == 0:
                if n > self.burst:
                    raise ValueError(f"rate: Wait(n={n}) exceeds limiter's burst {self.burst}")
                self.burst -= n
                return
            if n > self.burst:
                raise ValueError(f"rate: Wait(n={n}) exceeds limiter's burst {self.burst}")
            now = self._clock()
            elapsed = max(0.0, now - self._last)
            tokens = min(float(self.burst), self._tokens + elapsed * self.limit) - n
            self._tokens = tokens
            self._last = now
            delay = -tokens / self.limit if tokens < 0 else 0.0
        if delay > 0:
            self._sleep(delay)


class ThrottledStream:
    """A stream whose reads are paced by a shared and a per-connection limiter."""

    def __init__(
        self,
        stream: _Readable,
        total_limiter: RateLimiter | None = None,
        local_limiter: RateLimiter | None = None,
    ) -> None:
        self._stream = stream
        self._total_limiter = total_limiter
        self._local_limiter = local_limiter

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._stream, name)

    def read(self, size: int = -1) -> bytes:
        """Read at most ``size`` bytes, and never more than a limiter's burst."""
        limiters = [
            (label, limiter)
            for label, limiter in (("total", self._total_limiter), ("local", self._local_limiter))
            if limiter is not None
        ]
        batch = size
        if limiters:
            # A limiter never lets anyone wait for more than its burst.
            cap = min(limiter.burst for _, limiter in limiters)
            batch = cap if size < 0 else min(size, cap)

        for label, limiter in limiters:
            try:
                limiter.wait_n(batch)
            except ValueError as exc:
                raise RuntimeError(f"waiting for {label} limiter: {exc}") from exc

        data = self._stream.read(batch)
        logger.debug("read batch_size=%d bytes_read=%d", batch, len(data))
        return data


@dataclass
class Throttle:
    """Throttles connections per connection and across all connections.

    Rates are in bytes per second; a burst of zero defaults to the rate
    truncated to an integer, plus one. ``latency`` is a delay in seconds
    before the next handler runs.
    """

    read_bytes_per_second: float = 0.0
    read_burst_size: int = 0
    total_read_bytes_per_second: float = 0.0
    total_read_burst_size: int = 0
    latency: float = 0.0

    clock: Clock = field(default=time.monotonic, repr=False, compare=False)
    sleep: Sleeper = field(default=time.sleep, repr=False, compare=False)

    _total_limiter: RateLimiter | None = field(default=None, init=False, repr=False)

    def provision(self) -> None:
        """Validate the settings, apply defaults and create the shared limiter."""
        if self.read_bytes_per_second < 0:
            raise ValueError(f"bytes per second must be at least 0: {self.read_bytes_per_second:f}")
        if self.read_bytes_per_second > 0 and self.read_burst_size == 0:
            self.read_burst_size = int(self.read_bytes_per_second) + 1
        if self.total_read_bytes_per_second < 0:
            raise ValueError(
                f"total bytes per second must be at least 0: {self.total_read_bytes_per_second:f}"
            )
        if self.total_read_bytes_per_second > 0 and self.total_read_burst_size == 0:
            self.total_read_burst_size = int(self.total_read_bytes_per_second) + 1
        if self.read_burst_size < 0:
            raise ValueError(f"burst size must be greater than 0: {self.read_burst_size}")
        if self.total_read_burst_size < 0:
            raise ValueError(f"total burst size must be greater than 0: {self.total_read_burst_size}")
        if self.total_read_bytes_per_second > 0 or self.total_read_burst_size > 0:
            self._total_limiter = RateLimiter(
                self.total_read_bytes_per_second,
                self.total_read_burst_size,
                clock=self.clock,
                sleep=self.sleep,
            )

    def wrap(self, stream: _Readable) -> ThrottledStream:
        """Wrap a connection's stream with a fresh per-connection limiter."""
        local_limiter = None
        if self.read_bytes_per_second > 0 or self.read_burst_size > 0:
            local_limiter = RateLimiter(
                self.read_bytes_per_second,
                self.read_burst_size,
                clock=self.clock,
                sleep=self.sleep,
            )
        return ThrottledStream(stream, self._total_limiter, local_limiter)

    def handle(self, stream: _Readable, next_handler: Callable[[Any], Any]) -> Any:
        """Throttle the stream, wait out the latency and pass it on."""
        throttled = self.wrap(stream)
        if self.latency > 0:
            self.sleep(self.latency)
        return next_handler(throttled)