"""
Tests for the per-IP rate limiter bookkeeping.
"""
import asyncio

import pytest
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from clinic_api.core.middleware import RateLimitMiddleware, RateLimitRule

LOGIN_PATH = "/api/v1/auth/login"


async def _app(scope, receive, send):
    pass


def _request(ip):
    return Request({
        "type": "http",
        "method": "POST",
        "scheme": "http",
        "server": ("testserver", 80),
        "path": LOGIN_PATH,
        "root_path": "",
        "query_string": b"",
        "headers": [],
        "client": (ip, 50000),
    })


def _responding(status_code):
    async def call_next(request):
        return PlainTextResponse("done", status_code=status_code)
    return call_next


@pytest.fixture
def now():
    return [1000.0]


@pytest.fixture
def limiter(now):
    rule = RateLimitRule(
        name="login",
        path=LOGIN_PATH,
        method="POST",
        limit=2,
        window_seconds=60,
        message="Too many login attempts, please try again later.",
        skip_successful=True,
    )
    return RateLimitMiddleware(_app, rules=[rule], clock=lambda: now[0], sweep_interval=60)


def test_successful_request_leaves_no_bucket(limiter):
    response = asyncio.run(limiter.dispatch(_request("10.0.0.1"), _responding(200)))

    assert response.status_code == 200
    assert limiter.requests == {}


def test_idle_buckets_are_swept(limiter, now):
    for ip in ("10.0.0.1", "10.0.0.2"):
        asyncio.run(limiter.dispatch(_request(ip), _responding(401)))
    assert set(limiter.requests) == {("login", "10.0.0.1"), ("login", "10.0.0.2")}

    now[0] += 61
    asyncio.run(limiter.dispatch(_request("10.0.0.3"), _responding(401)))

    assert set(limiter.requests) == {("login", "10.0.0.3")}


def test_limit_still_applies_within_window(limiter, now):
    for _ in range(2):
        asyncio.run(limiter.dispatch(_request("10.0.0.1"), _responding(401)))

    response = asyncio.run(limiter.dispatch(_request("10.0.0.1"), _responding(401)))

    assert response.status_code == 429
    assert response.headers["retry-after"] == "60"
