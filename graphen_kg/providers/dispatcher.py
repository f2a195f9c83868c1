"""
Call Dispatcher (rate-limited execution)

Wraps any single external call (extraction, embedding) with:
    - Bounded concurrency: at most ``max_concurrent`` calls in flight; waiters
      are admitted in submission order
    - Per-attempt timeout: an attempt running longer than ``timeout`` seconds
      fails with DispatchTimeoutError, which is retryable
    - Retry with exponential backoff: only retryable failures (see
      graphen_kg.errors.is_retryable) are retried, after
      ``retry_delay * 2 ** (retry - 1)`` seconds
    - Requests-per-minute ceiling: attempts started within a rolling window

Example:
    >>> dispatcher = CallDispatcher(max_concurrent=2, requests_per_minute=60)
    >>> result = await dispatcher.run(lambda: llm.extract(chunk.content))
    >>> dispatcher.stats.attempts
    1
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from graphen_kg.errors import ConfigurationError, DispatchTimeoutError, is_retryable

if TYPE_CHECKING:
    from graphen_kg.config import GraphenConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class DispatcherStats:
    """Running counters for one dispatcher instance."""

    attempts: int = 0
    retries: int = 0
    failures: int = 0
    in_flight: int = 0
    peak_in_flight: int = 0


class CallDispatcher:
    """
    Bounded, throttled, retrying executor for external calls.

    The dispatcher holds no domain state; one instance may be shared by
    several pipelines to enforce a process-wide ceiling, including across
    separate ``asyncio.run`` calls.

    Args:
        max_concurrent: Units of work in flight at once
        max_retries: Retries after the first attempt (retryable failures only)
        retry_delay: Base backoff in seconds; 0 retries immediately
        requests_per_minute: Attempts started per rolling window
        timeout: Per-attempt timeout in seconds; 0 disables it
        window_seconds: Length of the rolling throttle window
    """

    def __init__(
        self,
        max_concurrent: int = 5,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        requests_per_minute: int = 30,
        timeout: float = 60.0,
        *,
        window_seconds: float = 60.0,
    ) -> None:
        if max_concurrent < 1:
            raise ConfigurationError(
                f"max_concurrent must be >= 1, got {max_concurrent}",
                {"max_concurrent": max_concurrent},
            )
        if requests_per_minute < 1:
            raise ConfigurationError(
                f"requests_per_minute must be >= 1, got {requests_per_minute}",
                {"requests_per_minute": requests_per_minute},
            )

        self.max_concurrent = max_concurrent
        self.max_retries = max(0, max_retries)
        self.retry_delay = max(0.0, retry_delay)
        self.requests_per_minute = requests_per_minute
        self.timeout = max(0.0, timeout)
        self.window_seconds = window_seconds

        self.stats = DispatcherStats()
        self._window: deque[float] = deque()
        # Bound to the running loop on first use, rebuilt if the loop changes
        self._loop: asyncio.AbstractEventLoop | None = None
        self._slots: asyncio.Semaphore | None = None
        self._window_lock: asyncio.Lock | None = None

    @classmethod
    def from_config(cls, config: "GraphenConfig") -> "CallDispatcher":
        """Build a dispatcher from the llm_* options of a config."""
        return cls(
            max_concurrent=config.llm_max_concurrent,
            max_retries=config.llm_max_retries,
            retry_delay=config.llm_retry_delay,
            requests_per_minute=config.llm_requests_per_minute,
            timeout=config.llm_timeout,
        )

    async def run(self, work: Callable[[], Awaitable[T]]) -> T:
        """
        Execute ``work`` under the dispatcher's limits.

        Args:
            work: Zero-argument callable returning a fresh awaitable per attempt

        Returns:
            The result of the first successful attempt

        Raises:
            The last failure once retries are exhausted, or the first
            non-retryable failure unchanged
        """
        slots, _ = self._primitives()
        async with slots:
            self.stats.in_flight += 1
            self.stats.peak_in_flight = max(self.stats.peak_in_flight, self.stats.in_flight)
            try:
                return await self._run_with_retries(work)
            finally:
                self.stats.in_flight -= 1

    def _primitives(self) -> tuple[asyncio.Semaphore, asyncio.Lock]:
        """Semaphore and window lock for the running event loop."""
        loop = asyncio.get_running_loop()
        if self._slots is None or self._window_lock is None or loop is not self._loop:
            if self._loop is not None:
                logger.debug("Event loop changed, rebuilding dispatcher primitives")
            self._loop = loop
            self._slots = asyncio.Semaphore(self.max_concurrent)
            self._window_lock = asyncio.Lock()
        return self._slots, self._window_lock

    async def _run_with_retries(self, work: Callable[[], Awaitable[T]]) -> T:
        retry = 0
        while True:
            await self._acquire_request_slot()
            self.stats.attempts += 1
            try:
                return await self._attempt(work)
            except Exception as e:
                if not is_retryable(e) or retry >= self.max_retries:
                    self.stats.failures += 1
                    raise

                retry += 1
                self.stats.retries += 1
                backoff = self.retry_delay * 2 ** (retry - 1)
                logger.warning(
                    f"Retryable failure ({e}); retry {retry}/{self.max_retries} in {backoff:.2f}s"
                )
                if backoff > 0:
                    await asyncio.sleep(backoff)

    async def _attempt(self, work: Callable[[], Awaitable[T]]) -> T:
        if self.timeout <= 0:
            return await work()
        try:
            return await asyncio.wait_for(work(), timeout=self.timeout)
        except TimeoutError:
            raise DispatchTimeoutError(self.timeout) from None

    async def _acquire_request_slot(self) -> None:
        """Wait until the rolling window has room, then record an attempt start."""
        _, window_lock = self._primitives()
        async with window_lock:
            while True:
                now = time.monotonic()
                cutoff = now - self.window_seconds
                while self._window and self._window[0] <= cutoff:
                    self._window.popleft()

                if len(self._window) < self.requests_per_minute:
                    self._window.append(now)
                    return

                wait = self._window[0] + self.window_seconds - now
                logger.debug(f"Request ceiling reached, waiting {wait:.2f}s")
                await asyncio.sleep(max(0.0, wait))
