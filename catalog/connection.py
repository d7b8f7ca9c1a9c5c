"""
Database connection lifecycle: connect-with-retry plus a cached handle.

``ConnectionManager`` owns a single lazily created connection handle and at
most one in-flight connection attempt. Callers that arrive while an attempt
is running await that same attempt, so a cold start under load produces one
connect sequence rather than one per request.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]
RandomSource = Callable[[], float]


@dataclass(frozen=True)
class RetryState:
    attempt: int
    backoff_ms: float


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff with additive jitter, capped at ``max_backoff_ms``."""

    max_retries: int = 5
    initial_backoff_ms: float = 1000
    backoff_multiplier: float = 2
    max_backoff_ms: float = 10000
    jitter_fraction: float = 0.3

    def initial_state(self) -> RetryState:
        return RetryState(attempt=0, backoff_ms=self.initial_backoff_ms)

    def exhausted(self, state: RetryState) -> bool:
        return state.attempt >= self.max_retries

    def delay_ms(
        self, state: RetryState, rand: RandomSource = random.random
    ) -> float:
        """Delay before the next try: ``backoff + U[0, jitter * backoff)``."""
        return state.backoff_ms + rand() * self.jitter_fraction * state.backoff_ms

    def advance(self, state: RetryState) -> RetryState:
        return RetryState(
            attempt=state.attempt + 1,
            backoff_ms=min(
                state.backoff_ms * self.backoff_multiplier, self.max_backoff_ms
            ),
        )


async def connect_with_retry(
    connect: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    sleep: Sleep = asyncio.sleep,
    rand: RandomSource = random.random,
) -> T:
    """
    Call ``connect`` until it succeeds or the policy runs out of retries.

    The last underlying error is re-raised once ``policy.max_retries`` retries
    have failed, i.e. after ``max_retries + 1`` calls in total.
    """
    state = policy.initial_state()
    while True:
        try:
            return await connect()
        except Exception as exc:
            if policy.exhausted(state):
                logger.error(
                    "Failed to connect to the database after %d retries: %s",
                    state.attempt,
                    exc,
                )
                raise
            delay = policy.delay_ms(state, rand)
            logger.warning(
                "Database connection attempt %d failed (%s). Retrying in %.0fms...",
                state.attempt + 1,
                exc,
                delay,
            )
            await sleep(delay / 1000)
            state = policy.advance(state)


class ConnectionManager(Generic[T]):
    """
    Single-instance owner of the database handle.

    Construct one per process (``create_app`` does this) and hand it to
    whatever needs a connection. Not thread-safe; all callers must share one
    event loop.
    """

    def __init__(
        self,
        connect: Callable[[], Awaitable[T]],
        policy: Optional[RetryPolicy] = None,
        *,
        close: Optional[Callable[[T], Awaitable[None]]] = None,
        sleep: Sleep = asyncio.sleep,
        rand: RandomSource = random.random,
    ):
        self.policy = policy or RetryPolicy()
        self._connect = connect
        self._close = close
        self._sleep = sleep
        self._rand = rand
        self._connection: Optional[T] = None
        self._pending: Optional[asyncio.Task] = None

    @property
    def connection(self) -> Optional[T]:
        return self._connection

    @property
    def connecting(self) -> bool:
        return self._pending is not None

    async def get_connection(self) -> T:
        if self._connection is not None:
            return self._connection
        if self._pending is None:
            logger.info("Connecting to the database with retry...")
            self._pending = asyncio.ensure_future(self._attempt())
        # shield: a cancelled caller must not cancel the shared attempt.
        return await asyncio.shield(self._pending)

    async def _attempt(self) -> T:
        try:
            connection = await connect_with_retry(
                self._connect, self.policy, sleep=self._sleep, rand=self._rand
            )
        finally:
            self._pending = None
        self._connection = connection
        logger.info("Database connection established")
        return connection

    async def close(self) -> None:
        """
        Release the cached handle; used on application shutdown.

        An attempt still in flight is cancelled first so it cannot cache a
        handle after shutdown.
        """
        pending, self._pending = self._pending, None
        if pending is not None:
            pending.cancel()
            await asyncio.gather(pending, return_exceptions=True)
        connection, self._connection = self._connection, None
        if connection is not None and self._close is not None:
            await self._close(connection)
