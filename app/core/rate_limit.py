"""
Fixed-window rate limiting with a pluggable counter store.

The in-memory store only counts requests seen by the current process. The
database store keeps counters in `rate_limit_counters` so every API process
behind a load balancer shares the same window. Both stores drop expired
windows on a fixed sweep interval.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from fastapi import Request, Response, status
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from typing import AsyncIterator, Callable, Dict, Optional, Tuple
import asyncio
import logging
import math

from app.core.config import settings
from app.models.base import as_utc, utcnow
from app.models.rate_limit import RateLimitCounter

logger = logging.getLogger(__name__)


class RateLimitExceeded(Exception):
    def __init__(self, message: str, retry_after: int, limit: int, reset_at: datetime):
        super().__init__(message)
        self.message = message
        self.retry_after = retry_after
        self.limit = limit
        self.reset_at = reset_at


class RateLimitStore(ABC):
    @abstractmethod
    async def increment(self, key: str, window_seconds: int) -> Tuple[int, datetime]:
        """Count one request for `key`; return the window's count and reset time."""

    @abstractmethod
    async def reset(self, key: str) -> None:
        """Forget the current window for `key`."""

    @abstractmethod
    async def cleanup(self) -> int:
        """Drop every expired window; return how many were removed."""


class InMemoryRateLimitStore(RateLimitStore):
    def __init__(self, sweep_interval_seconds: int = settings.RATE_LIMIT_SWEEP_INTERVAL_SECONDS):
        self._counters: Dict[str, Tuple[int, datetime]] = {}
        self._lock = asyncio.Lock()
        self.sweep_interval = timedelta(seconds=sweep_interval_seconds)
        self._next_sweep = utcnow() + self.sweep_interval

    def _sweep(self, now: datetime) -> int:
        expired = [key for key, (_, reset_at) in self._counters.items() if now >= reset_at]
        for key in expired:
            del self._counters[key]
        self._next_sweep = now + self.sweep_interval
        return len(expired)

    async def increment(self, key: str, window_seconds: int) -> Tuple[int, datetime]:
        now = utcnow()
        async with self._lock:
            if now >= self._next_sweep:
                self._sweep(now)

            record = self._counters.get(key)
            if record is None or now >= record[1]:
                record = (1, now + timedelta(seconds=window_seconds))
            else:
                record = (record[0] + 1, record[1])
            self._counters[key] = record
            return record

    async def reset(self, key: str) -> None:
        async with self._lock:
            self._counters.pop(key, None)

    async def cleanup(self) -> int:
        async with self._lock:
            return self._sweep(utcnow())

    def clear(self) -> None:
        self._counters.clear()


class DatabaseRateLimitStore(RateLimitStore):
    def __init__(
        self,
        session_factory,
        sweep_interval_seconds: int = settings.RATE_LIMIT_SWEEP_INTERVAL_SECONDS
    ):
        self.session_factory = session_factory
        self.sweep_interval = timedelta(seconds=sweep_interval_seconds)
        self._next_sweep = utcnow() + self.sweep_interval

    async def _bump(self, db, key: str, now: datetime) -> Optional[Tuple[int, datetime]]:
        result = await db.execute(
            update(RateLimitCounter)
            .where(RateLimitCounter.key == key, RateLimitCounter.reset_at > now)
            .values(count=RateLimitCounter.count + 1)
            .execution_options(synchronize_session=False)
        )
        if not result.rowcount:
            return None

        row = (
            await db.execute(
                select(RateLimitCounter.count, RateLimitCounter.reset_at)
                .where(RateLimitCounter.key == key)
            )
        ).one()
        return row[0], as_utc(row[1])

    async def increment(self, key: str, window_seconds: int) -> Tuple[int, datetime]:
        now = utcnow()
        if now >= self._next_sweep:
            await self.cleanup()

        async with self.session_factory() as db:
            record = await self._bump(db, key, now)
            if record is not None:
                await db.commit()
                return record

            # No live window: replace any stale row with a fresh one
            reset_at = now + timedelta(seconds=window_seconds)
            try:
                await db.execute(
                    delete(RateLimitCounter)
                    .where(RateLimitCounter.key == key, RateLimitCounter.reset_at <= now)
                    .execution_options(synchronize_session=False)
                )
                db.add(RateLimitCounter(key=key, count=1, reset_at=reset_at))
                await db.commit()
                return 1, reset_at
            except IntegrityError:
                # Another process opened the window first
                await db.rollback()
                record = await self._bump(db, key, now)
                await db.commit()
                if record is None:
                    logger.error(f"Rate limit counter for {key} vanished during increment")
                    return 1, reset_at
                return record

    async def reset(self, key: str) -> None:
        async with self.session_factory() as db:
            await db.execute(
                delete(RateLimitCounter)
                .where(RateLimitCounter.key == key)
                .execution_options(synchronize_session=False)
            )
            await db.commit()

    async def cleanup(self) -> int:
        now = utcnow()
        self._next_sweep = now + self.sweep_interval

        async with self.session_factory() as db:
            result = await db.execute(
                delete(RateLimitCounter)
                .where(RateLimitCounter.reset_at <= now)
                .execution_options(synchronize_session=False)
            )
            removed = result.rowcount or 0
            await db.commit()

        if removed:
            logger.debug(f"Removed {removed} expired rate limit counters")
        return removed


def build_rate_limit_store() -> RateLimitStore:
    if settings.RATE_LIMIT_BACKEND == "database":
        from app.core.database import AsyncSessionLocal
        return DatabaseRateLimitStore(AsyncSessionLocal)
    return InMemoryRateLimitStore()


rate_limit_store = build_rate_limit_store()


def client_ip(request: Request) -> str:
    # Behind a proxy this is the forwarded address (see ProxyHeadersMiddleware in app.main)
    return request.client.host if request.client else "unknown"


def client_ip_and_token(request: Request) -> str:
    return f"{client_ip(request)}:{request.path_params.get('token', '')}"


class RateLimiter:
    """
    FastAPI dependency enforcing `max_requests` per `window_seconds` per key.

    `key_func` picks the bucket for a request (the client IP by default). With
    `skip_successful_requests` the bucket is reset once the endpoint finishes
    without an error, so only failed attempts add up.
    """

    def __init__(
        self,
        window_seconds: int,
        max_requests: int,
        key_prefix: str,
        message: str = "Too many requests, please try again later.",
        key_func: Optional[Callable[[Request], str]] = None,
        skip_successful_requests: bool = False,
        store: Optional[RateLimitStore] = None
    ):
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.key_prefix = key_prefix
        self.message = message
        self.key_func = key_func or client_ip
        self.skip_successful_requests = skip_successful_requests
        self.store = store

    async def __call__(self, request: Request, response: Response) -> AsyncIterator[None]:
        store = self.store or rate_limit_store
        key = f"{self.key_prefix}:{self.key_func(request)}"
        count, reset_at = await store.increment(key, self.window_seconds)

        response.headers["X-RateLimit-Limit"] = str(self.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(max(0, self.max_requests - count))
        response.headers["X-RateLimit-Reset"] = reset_at.isoformat()

        if count > self.max_requests:
            retry_after = max(0, math.ceil((reset_at - utcnow()).total_seconds()))
            logger.warning(f"Rate limit exceeded for {key} ({count}/{self.max_requests})")
            raise RateLimitExceeded(self.message, retry_after, self.max_requests, reset_at)

        # Errors raised by the endpoint surface here and skip the reset
        yield

        if self.skip_successful_requests and (response.status_code or status.HTTP_200_OK) < 400:
            await store.reset(key)


api_rate_limiter = RateLimiter(
    window_seconds=settings.API_RATE_LIMIT_WINDOW_SECONDS,
    max_requests=settings.API_RATE_LIMIT_MAX_REQUESTS,
    key_prefix="api",
    message="Rate limit exceeded. Please slow down your requests."
)

share_rate_limiter = RateLimiter(
    window_seconds=settings.SHARE_RATE_LIMIT_WINDOW_SECONDS,
    max_requests=settings.SHARE_RATE_LIMIT_MAX_REQUESTS,
    key_prefix="share",
    message="Too many download attempts. Please try again in a few minutes."
)

# Failed download attempts per client and link; a successful download clears them
share_password_rate_limiter = RateLimiter(
    window_seconds=settings.SHARE_PASSWORD_RATE_LIMIT_WINDOW_SECONDS,
    max_requests=settings.SHARE_PASSWORD_RATE_LIMIT_MAX_REQUESTS,
    key_prefix="share-password",
    message="Too many password attempts. Please try again in 15 minutes.",
    key_func=client_ip_and_token,
    skip_successful_requests=True
)
