import asyncio
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from fastapi import Depends, FastAPI, HTTPException
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from starlette.requests import Request
from starlette.responses import Response

from app.core.rate_limit import (
    DatabaseRateLimitStore,
    InMemoryRateLimitStore,
    RateLimitExceeded,
    RateLimiter,
    client_ip_and_token,
)
from app.main import rate_limit_exceeded_handler
from app.models.base import utcnow
from app.models.rate_limit import RateLimitCounter


def make_request(host="10.0.0.1", path_params=None):
    return Request({
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [],
        "client": (host, 1234),
        "path_params": path_params or {},
    })


async def hit(limiter, request=None, response=None):
    """Run the limiter up to the point where the endpoint would execute."""
    dependency = limiter(request or make_request(), response or Response())
    await dependency.__anext__()
    return dependency


def limited_app(limiter):
    app = FastAPI()
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    @app.get("/ok", dependencies=[Depends(limiter)])
    async def ok():
        return {"ok": True}

    @app.get("/fail", dependencies=[Depends(limiter)])
    async def fail():
        raise HTTPException(status_code=401, detail="Incorrect password")

    return app


async def test_memory_store_counts_within_window():
    store = InMemoryRateLimitStore()

    first = await store.increment("k", 60)
    second = await store.increment("k", 60)

    assert first[0] == 1
    assert second == (2, first[1])


async def test_memory_store_keys_are_independent():
    store = InMemoryRateLimitStore()

    await store.increment("a", 60)
    assert (await store.increment("b", 60))[0] == 1


async def test_memory_store_opens_new_window_after_reset_time():
    store = InMemoryRateLimitStore()
    await store.increment("k", 60)
    store._counters["k"] = (5, utcnow() - timedelta(seconds=1))

    assert (await store.increment("k", 60))[0] == 1


async def test_memory_store_reset():
    store = InMemoryRateLimitStore()
    await store.increment("k", 60)
    await store.increment("k", 60)

    await store.reset("k")

    assert (await store.increment("k", 60))[0] == 1


async def test_memory_store_sweeps_expired_keys():
    store = InMemoryRateLimitStore(sweep_interval_seconds=0)

    for i in range(1000):
        await store.increment(f"gone-{i}", 0)
    await store.increment("fresh", 60)

    assert list(store._counters) == ["fresh"]


async def test_memory_store_keeps_expired_keys_until_sweep_is_due():
    store = InMemoryRateLimitStore(sweep_interval_seconds=300)

    await store.increment("gone", 0)
    await store.increment("live", 60)
    assert len(store._counters) == 2

    assert await store.cleanup() == 1
    assert list(store._counters) == ["live"]


async def test_database_store_counts_within_window(session_factory):
    store = DatabaseRateLimitStore(session_factory)

    count, reset_at = await store.increment("share:1.2.3.4", 300)
    assert count == 1
    assert reset_at > utcnow()

    assert (await store.increment("share:1.2.3.4", 300))[0] == 2
    assert (await store.increment("share:5.6.7.8", 300))[0] == 1


async def test_database_store_replaces_stale_window(session_factory):
    async with session_factory() as session:
        session.add(RateLimitCounter(key="stale", count=99, reset_at=utcnow() - timedelta(minutes=1)))
        await session.commit()

    store = DatabaseRateLimitStore(session_factory)

    assert (await store.increment("stale", 60))[0] == 1


async def test_database_store_sweeps_expired_rows(session_factory):
    async with session_factory() as session:
        for i in range(10):
            session.add(RateLimitCounter(key=f"gone-{i}", count=1, reset_at=utcnow() - timedelta(minutes=1)))
        await session.commit()

    store = DatabaseRateLimitStore(session_factory, sweep_interval_seconds=0)
    await store.increment("fresh", 60)

    async with session_factory() as session:
        keys = (await session.execute(select(RateLimitCounter.key))).scalars().all()
    assert keys == ["fresh"]


async def test_database_store_concurrent_increments(session_factory):
    store = DatabaseRateLimitStore(session_factory)
    await store.increment("busy", 60)

    await asyncio.gather(*(store.increment("busy", 60) for _ in range(20)))

    async with session_factory() as session:
        assert (await session.get(RateLimitCounter, "busy")).count == 21


async def test_database_store_reset(session_factory):
    store = DatabaseRateLimitStore(session_factory)
    await store.increment("k", 60)

    await store.reset("k")

    async with session_factory() as session:
        count = await session.scalar(select(func.count()).select_from(RateLimitCounter))
    assert count == 0


async def test_rate_limiter_sets_headers_and_raises_past_limit():
    limiter = RateLimiter(window_seconds=60, max_requests=2, key_prefix="test", store=InMemoryRateLimitStore())

    response = Response()
    await hit(limiter, response=response)
    assert response.headers["X-RateLimit-Limit"] == "2"
    assert response.headers["X-RateLimit-Remaining"] == "1"

    await hit(limiter)

    with pytest.raises(RateLimitExceeded) as exc_info:
        await hit(limiter)

    assert exc_info.value.limit == 2
    assert 0 < exc_info.value.retry_after <= 60


async def test_rate_limiter_counts_each_client_separately():
    limiter = RateLimiter(window_seconds=60, max_requests=1, key_prefix="test", store=InMemoryRateLimitStore())

    await hit(limiter, make_request("10.0.0.1"))
    await hit(limiter, make_request("10.0.0.2"))

    with pytest.raises(RateLimitExceeded):
        await hit(limiter, make_request("10.0.0.1"))


async def test_rate_limiter_uses_custom_key_func():
    store = InMemoryRateLimitStore()
    key_func = MagicMock(return_value="shared-bucket")
    limiter = RateLimiter(window_seconds=60, max_requests=1, key_prefix="test", key_func=key_func, store=store)

    await hit(limiter, make_request("10.0.0.1"))

    key_func.assert_called_once()
    assert "test:shared-bucket" in store._counters
    with pytest.raises(RateLimitExceeded):
        await hit(limiter, make_request("10.0.0.2"))


def test_client_ip_and_token_key():
    request = make_request("10.0.0.9", {"token": "abc"})

    assert client_ip_and_token(request) == "10.0.0.9:abc"


async def test_successful_requests_reset_the_counter():
    limiter = RateLimiter(
        window_seconds=60,
        max_requests=2,
        key_prefix="test",
        key_func=lambda request: "same",
        skip_successful_requests=True,
        store=InMemoryRateLimitStore(),
    )

    async with AsyncClient(transport=ASGITransport(app=limited_app(limiter)), base_url="http://test") as client:
        for _ in range(5):
            assert (await client.get("/ok")).status_code == 200

        assert (await client.get("/fail")).status_code == 401
        assert (await client.get("/fail")).status_code == 401
        response = await client.get("/fail")

    assert response.status_code == 429
    assert response.json()["retry_after"] > 0


async def test_failed_requests_still_count_without_skip():
    limiter = RateLimiter(
        window_seconds=60,
        max_requests=2,
        key_prefix="test",
        store=InMemoryRateLimitStore(),
    )

    async with AsyncClient(transport=ASGITransport(app=limited_app(limiter)), base_url="http://test") as client:
        assert (await client.get("/ok")).status_code == 200
        assert (await client.get("/ok")).status_code == 200
        assert (await client.get("/ok")).status_code == 429
