"""
Custom middleware for the FastAPI application.

Request tracing (request id, timing, caller) and per-IP rate limiting of
the credential endpoints.
"""
import logging
import time
import uuid
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, List, Optional, Tuple

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..exceptions import RateLimitedException
from .responses import error_response

# Set up logging
logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Outcomes logged as security events rather than plain access log lines
SECURITY_STATUSES = {401, 403, 423, 429}


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Tag every request with an id and log its outcome.

    A caller-supplied X-Request-ID is kept, otherwise one is generated; it
    is echoed on every response together with X-Process-Time.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"[{request_id}] {request.method} {request.url.path} failed after "
                f"{time.perf_counter() - started:.4f}s: {e}"
            )
            raise

        elapsed = time.perf_counter() - started
        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        response.headers[REQUEST_ID_HEADER] = request_id

        identity = getattr(request.state, "identity", None)
        user_id = getattr(identity, "user_id", None) or "anonymous"
        line = (
            f"[{request_id}] {request.method} {request.url.path} -> {response.status_code} "
            f"({elapsed:.4f}s, user={user_id}, ip={_client_ip(request)})"
        )
        if response.status_code in SECURITY_STATUSES:
            logger.warning(f"Security event {line}")
        else:
            logger.info(line)
        return response


@dataclass
class RateLimitRule:
    """
    One rate limit applied per client IP.

    Attributes:
        name: Label used in logs and bucket keys
        path: Exact request path the rule applies to
        method: HTTP method the rule applies to
        limit: Requests allowed per window
        window_seconds: Length of the sliding window
        message: Error message returned with the 429
        skip_successful: Do not count requests answered with a status below 400
    """
    name: str
    path: str
    method: str
    limit: int
    window_seconds: int
    message: str
    skip_successful: bool = False

    def matches(self, request: Request) -> bool:
        return request.method == self.method and request.url.path.rstrip("/") == self.path


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Middleware for sliding-window rate limiting.

    This is an in-memory limiter, so limits apply per worker process.
    Buckets are dropped once empty, and idle ones are swept every
    sweep_interval seconds.
    """
    def __init__(self, app: ASGIApp, rules: List[RateLimitRule] = None,
                 clock: Callable[[], float] = time.monotonic, sweep_interval: int = 60):
        super().__init__(app)
        self.rules = rules or []
        self.clock = clock
        self.sweep_interval = sweep_interval
        self.windows = {rule.name: rule.window_seconds for rule in self.rules}
        self.requests: Dict[Tuple[str, str], Deque[float]] = {}
        self._last_sweep = clock()

    def _rule_for(self, request: Request) -> Optional[RateLimitRule]:
        for rule in self.rules:
            if rule.matches(request):
                return rule
        return None

    def _sweep(self, now: float) -> None:
        self._last_sweep = now
        for key, bucket in list(self.requests.items()):
            if not bucket or now - bucket[-1] >= self.windows.get(key[0], 0):
                del self.requests[key]

    async def dispatch(self, request: Request, call_next):
        rule = self._rule_for(request)
        if rule is None:
            return await call_next(request)

        client_ip = _client_ip(request)
        now = self.clock()
        if now - self._last_sweep >= self.sweep_interval:
            self._sweep(now)
        key = (rule.name, client_ip)
        bucket = self.requests.setdefault(key, deque())

        # Drop hits that slid out of the window
        while bucket and now - bucket[0] >= rule.window_seconds:
            bucket.popleft()

        if len(bucket) >= rule.limit:
            retry_after = max(1, int(rule.window_seconds - (now - bucket[0])))
            logger.warning(
                f"{rule.name} rate limit exceeded for IP: {client_ip} "
                f"(request {getattr(request.state, 'request_id', None)})"
            )
            exc = RateLimitedException(rule.message, retry_after=retry_after)
            return error_response(
                exc.status_code,
                exc.detail,
                request_id=getattr(request.state, "request_id", None),
                headers=exc.headers,
            )

        bucket.append(now)
        response = await call_next(request)
        if rule.skip_successful and response.status_code < 400:
            try:
                bucket.remove(now)
            except ValueError:
                pass
        if not bucket and self.requests.get(key) is bucket:
            del self.requests[key]
        return response


def auth_rate_limit_rules(settings) -> List[RateLimitRule]:
    """Login and registration limits for the auth routes."""
    return [
        RateLimitRule(
            name="login",
            path="/api/v1/auth/login",
            method="POST",
            limit=settings.login_requests_per_window,
            window_seconds=settings.login_rate_window_seconds,
            message="Too many login attempts, please try again later.",
            skip_successful=True,
        ),
        RateLimitRule(
            name="social-auth",
            path="/api/v1/auth/social-auth",
            method="POST",
            limit=settings.login_requests_per_window,
            window_seconds=settings.login_rate_window_seconds,
            message="Too many login attempts, please try again later.",
            skip_successful=True,
        ),
        RateLimitRule(
            name="registration",
            path="/api/v1/auth/registration",
            method="POST",
            limit=settings.register_requests_per_window,
            window_seconds=settings.register_rate_window_seconds,
            message="Too many registration attempts, please try again later.",
        ),
    ]


def setup_middlewares(app, settings):
    """
    Set up all custom middlewares for the application.

    Starlette runs the last added middleware first, so request logging is
    added last to stamp the request id before rate limiting looks at it.

    Args:
        app: FastAPI application instance
        settings: Application settings
    """
    if settings.rate_limit_enabled:
        app.add_middleware(RateLimitMiddleware, rules=auth_rate_limit_rules(settings))
    app.add_middleware(RequestLoggingMiddleware)
