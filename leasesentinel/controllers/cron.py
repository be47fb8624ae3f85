"""Cron trigger controller. Runs the daily sweep for an external scheduler."""

import hmac
import logging
import time

from litestar import Controller, Request, get, post
from litestar.response import Response

logger = logging.getLogger(__name__)


class FailedAuthLimiter:
    """Per-IP sliding window over failed bearer-token checks.

    Successful requests are never recorded. Buckets for IPs that stopped
    failing are dropped by a periodic sweep.
    """

    def __init__(
        self,
        max_failures: int = 5,
        window: float = 60.0,
        cleanup_interval: float = 60.0,
    ) -> None:
        self.max_failures = max_failures
        self.window = window
        self._failures: dict[str, list[float]] = {}
        self._last_cleanup = time.monotonic()
        self._cleanup_interval = cleanup_interval

    def _cleanup_stale(self, now: float) -> None:
        if now - self._last_cleanup < self._cleanup_interval:
            return
        self._last_cleanup = now
        cutoff = now - self.window
        stale_keys = []
        for ip, timestamps in self._failures.items():
            self._failures[ip] = [t for t in timestamps if t > cutoff]
            if not self._failures[ip]:
                stale_keys.append(ip)
        for ip in stale_keys:
            del self._failures[ip]

    def _recent(self, ip: str, now: float) -> list[float]:
        cutoff = now - self.window
        recent = [t for t in self._failures.get(ip, []) if t > cutoff]
        if recent:
            self._failures[ip] = recent
        else:
            self._failures.pop(ip, None)
        return recent

    def record_failure(self, ip: str) -> None:
        now = time.monotonic()
        self._cleanup_stale(now)
        self._recent(ip, now)
        self._failures.setdefault(ip, []).append(now)

    def is_blocked(self, ip: str) -> bool:
        now = time.monotonic()
        self._cleanup_stale(now)
        return len(self._recent(ip, now)) >= self.max_failures


_default_limiter = FailedAuthLimiter()


def _get_client_ip(request: Request) -> str:
    """Extract client IP, checking x-forwarded-for first."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    client = request.scope.get("client")
    if client:
        return client[0]
    return "unknown"


def _check_bearer(request: Request, secret: str) -> bool:
    auth_header = request.headers.get("authorization", "")
    if not auth_header.startswith("Bearer "):
        return False
    return hmac.compare_digest(auth_header[7:], secret)


class CronController(Controller):
    path = "/api/cron"

    async def _run(self, request: Request) -> Response:
        state = request.app.state
        limiter = getattr(state, "failed_auth_limiter", None) or _default_limiter
        ip = _get_client_ip(request)

        if limiter.is_blocked(ip):
            return Response(content={"error": "Too many failed auth attempts"}, status_code=429)

        secret = getattr(state, "cron_secret", "")
        if not secret:
            return Response(content={"error": "Cron not configured"}, status_code=404)

        if not _check_bearer(request, secret):
            limiter.record_failure(ip)
            logger.warning("Rejected cron trigger from %s", ip)
            return Response(content={"error": "Unauthorized"}, status_code=401)

        # SweepError propagates to the app's exception handler
        result = await state.sweep()
        return Response(content=result.to_dict(), status_code=200)

    @get("/check")
    async def check(self, request: Request) -> Response:
        return await self._run(request)

    @post("/check", status_code=200)
    async def check_post(self, request: Request) -> Response:
        return await self._run(request)
