"""
Tests for the per-client rate limiter.
"""
import asyncio
from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from app.utils.auth import create_access_token
from app.utils.rate_limiter import RateLimiter


def make_request(token=None, host="10.0.0.1"):
    headers = []
    if token:
        headers.append((b"authorization", f"Bearer {token}".encode()))
    return Request({
        "type": "http",
        "method": "GET",
        "path": "/api/assessment/user/history",
        "headers": headers,
        "client": (host, 12345),
    })


def test_client_id_prefers_token_subject():
    limiter = RateLimiter()

    assert limiter._get_client_id(make_request(create_access_token(42))) == "user:42"
    assert limiter._get_client_id(make_request("garbage")) == "ip:10.0.0.1"
    assert limiter._get_client_id(make_request()) == "ip:10.0.0.1"


def test_in_memory_minute_limit():
    limiter = RateLimiter(requests_per_minute=3, requests_per_hour=100)
    request = make_request(host="10.0.0.2")

    for _ in range(3):
        asyncio.run(limiter.check_rate_limit(request))

    with pytest.raises(HTTPException) as exc_info:
        asyncio.run(limiter.check_rate_limit(request))

    assert exc_info.value.status_code == 429
    assert exc_info.value.detail["retry_after"] == 60

    # Other clients are counted separately
    asyncio.run(limiter.check_rate_limit(make_request(host="10.0.0.3")))


def test_in_memory_hour_limit():
    limiter = RateLimiter(requests_per_minute=100, requests_per_hour=2)
    request = make_request(host="10.0.0.4")

    asyncio.run(limiter.check_rate_limit(request))
    asyncio.run(limiter.check_rate_limit(request))

    with pytest.raises(HTTPException) as exc_info:
        asyncio.run(limiter.check_rate_limit(request))

    assert exc_info.value.detail["retry_after"] == 3600


def test_redis_counters_expire_with_window():
    redis_client = MagicMock()
    redis_client.incr.side_effect = [1, 1, 2, 2]
    limiter = RateLimiter(requests_per_minute=5, requests_per_hour=50, redis_client=redis_client)
    request = make_request(host="10.0.0.5")

    asyncio.run(limiter.check_rate_limit(request))
    asyncio.run(limiter.check_rate_limit(request))

    expired = [call.args for call in redis_client.expire.call_args_list]
    assert expired == [("rate_limit:ip:10.0.0.5:60", 60), ("rate_limit:ip:10.0.0.5:3600", 3600)]
    assert not limiter.minute_tracker


def test_redis_limit_exceeded():
    redis_client = MagicMock()
    redis_client.incr.return_value = 6
    limiter = RateLimiter(requests_per_minute=5, requests_per_hour=50, redis_client=redis_client)

    with pytest.raises(HTTPException) as exc_info:
        asyncio.run(limiter.check_rate_limit(make_request(host="10.0.0.6")))

    assert exc_info.value.status_code == 429
