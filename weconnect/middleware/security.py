# weconnect/middleware/security.py
import json
import re
from typing import Any, Iterable, Optional

import redis.asyncio as aioredis
import structlog
from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..errors import RateLimitError, error_body

logger = structlog.get_logger(__name__)

SECURITY_HEADERS = {
    "Content-Security-Policy": (
        "default-src 'self'; style-src 'self' 'unsafe-inline'; script-src 'self'; "
        "img-src 'self' data: https:; connect-src 'self'; font-src 'self'; "
        "object-src 'none'; media-src 'self'; frame-src 'none'"
    ),
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains; preload",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "X-XSS-Protection": "0",
    "X-DNS-Prefetch-Control": "off",
    "Cross-Origin-Opener-Policy": "same-origin",
}


class SecurityHeadersMiddleware:
    def __init__(self, app: ASGIApp, headers: Optional[dict] = None):
        self.app = app
        self.headers = headers or SECURITY_HEADERS

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for name, value in self.headers.items():
                    headers.setdefault(name, value)
            await send(message)

        await self.app(scope, receive, send_with_headers)


# --- Input sanitization ---
_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")
_JS_SCHEME_RE = re.compile(r"javascript:", re.IGNORECASE)
_HANDLER_RE = re.compile(r"on\w+\s*=", re.IGNORECASE)

UNSANITIZED_KEYS = frozenset({"password"})


def sanitize_text(value: str) -> str:
    value = _SCRIPT_RE.sub("", value)
    value = _TAG_RE.sub("", value)
    value = _JS_SCHEME_RE.sub("", value)
    value = _HANDLER_RE.sub("", value)
    return value.strip()


def sanitize_value(value: Any, key: Optional[str] = None) -> Any:
    if isinstance(value, str):
        return value if key in UNSANITIZED_KEYS else sanitize_text(value)
    if isinstance(value, list):
        return [sanitize_value(v, key) for v in value]
    if isinstance(value, dict):
        return {k: sanitize_value(v, k) for k, v in value.items()}
    return value


class SanitizeBodyMiddleware:
    """
    Strips markup from every string in a JSON request body before routing.
    Paths in `skip_prefixes` are left untouched (signed webhook bodies).
    """

    def __init__(self, app: ASGIApp, skip_prefixes: Iterable[str] = ("/api/webhook",)):
        self.app = app
        self.skip_prefixes = tuple(skip_prefixes)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if (
            scope["type"] != "http"
            or scope["method"] not in ("POST", "PUT", "PATCH")
            or scope["path"].startswith(self.skip_prefixes)
            or "application/json" not in Headers(scope=scope).get("content-type", "")
        ):
            await self.app(scope, receive, send)
            return

        chunks = []
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                return
            chunks.append(message.get("body", b""))
            if not message.get("more_body", False):
                break
        body = b"".join(chunks)

        try:
            parsed = json.loads(body)
        except ValueError:
            # left for the route's own body validation to reject
            new_body = body
        else:
            new_body = json.dumps(sanitize_value(parsed), ensure_ascii=False).encode("utf-8")

        scope = dict(scope)
        headers = MutableHeaders(scope=scope)
        headers["content-length"] = str(len(new_body))

        replayed = False

        async def replay() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": new_body, "more_body": False}
            return await receive()

        await self.app(scope, replay, send)


# --- Rate limiting ---
def client_ip(scope: Scope) -> str:
    client = scope.get("client")
    return client[0] if client else "unknown"


class RateLimitMiddleware:
    """
    Fixed-window counters in Redis, keyed by client IP.

    Every /api request except the exempt paths counts against the general
    limit. Signup and login additionally have a failed-attempt limit: only
    responses with status >= 400 are counted, and once the counter reaches
    `auth_max_attempts` further attempts are refused until the window ends.
    """

    def __init__(
        self,
        app: ASGIApp,
        redis_client: aioredis.Redis,
        window_seconds: int = 900,
        max_requests: int = 100,
        auth_max_attempts: int = 5,
        prefix: str = "/api",
        exempt_paths: Iterable[str] = ("/api/health",),
        auth_paths: Iterable[str] = ("/api/auth/login", "/api/auth/signup"),
    ):
        self.app = app
        self.redis = redis_client
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.auth_max_attempts = auth_max_attempts
        self.prefix = prefix
        self.exempt_paths = frozenset(exempt_paths)
        self.auth_paths = frozenset(auth_paths)

    async def _increment(self, key: str) -> int:
        count = await self.redis.incr(key)
        if count == 1:
            await self.redis.expire(key, self.window_seconds)
        return count

    async def _reject(self, scope: Scope, receive: Receive, send: Send, message: str) -> None:
        exc = RateLimitError(message)
        response = JSONResponse(status_code=exc.status_code, content=error_body(exc.status_code, exc.message, exc.error))
        await response(scope, receive, send)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        path = scope.get("path", "")
        if scope["type"] != "http" or not path.startswith(self.prefix) or path in self.exempt_paths:
            await self.app(scope, receive, send)
            return

        ip = client_ip(scope)
        count = await self._increment(f"rl:general:{ip}")
        if count > self.max_requests:
            logger.warning("rate_limit_exceeded", ip=ip, count=count)
            await self._reject(scope, receive, send, "Too many requests. Please try again later.")
            return

        if path not in self.auth_paths:
            await self.app(scope, receive, send)
            return

        auth_key = f"rl:auth:{ip}"
        attempts = int(await self.redis.get(auth_key) or 0)
        if attempts >= self.auth_max_attempts:
            logger.warning("auth_rate_limit_exceeded", ip=ip, attempts=attempts)
            await self._reject(scope, receive, send, "Too many login attempts. Please wait 15 minutes.")
            return

        status_code = 500

        async def send_capturing_status(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_capturing_status)
        finally:
            if status_code >= 400:
                await self._increment(auth_key)
