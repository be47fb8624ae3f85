"""Tests for the cron trigger controller."""

from datetime import date
from functools import partial
from unittest.mock import AsyncMock

import pytest
from litestar import Litestar
from litestar.exceptions import HTTPException
from litestar.testing import TestClient

from leasesentinel.controllers import cron as cron_module
from leasesentinel.controllers.cron import CronController, FailedAuthLimiter, _check_bearer, _get_client_ip
from leasesentinel.lib.dispatcher import DispatchFailure, DispatchResult
from leasesentinel.lib.exceptions import (
    SweepError,
    http_exception_handler,
    internal_server_error_handler,
    sweep_error_handler,
)
from leasesentinel.lib.records import SentinelStatus
from leasesentinel.lib.store import InMemoryStore
from leasesentinel.lib.sweep import SweepResult, run_sweep

SECRET = "test-cron-secret"
TODAY = date(2025, 6, 15)


# ---------------------------------------------------------------------------
# FailedAuthLimiter
# ---------------------------------------------------------------------------


class TestFailedAuthLimiter:
    def test_not_blocked_initially(self):
        limiter = FailedAuthLimiter(max_failures=2, window=60.0)
        assert limiter.is_blocked("1.2.3.4") is False

    def test_blocked_after_max_failures(self):
        limiter = FailedAuthLimiter(max_failures=2, window=60.0)
        limiter.record_failure("1.2.3.4")
        assert limiter.is_blocked("1.2.3.4") is False
        limiter.record_failure("1.2.3.4")
        assert limiter.is_blocked("1.2.3.4") is True

    def test_different_ips_independent(self):
        limiter = FailedAuthLimiter(max_failures=1, window=60.0)
        limiter.record_failure("1.2.3.4")
        assert limiter.is_blocked("5.6.7.8") is False

    def test_failures_expire(self):
        import time

        limiter = FailedAuthLimiter(max_failures=1, window=0.05)
        limiter.record_failure("1.2.3.4")
        assert limiter.is_blocked("1.2.3.4") is True
        time.sleep(0.06)
        assert limiter.is_blocked("1.2.3.4") is False

    def test_stale_buckets_are_swept(self, monkeypatch):
        """IPs that never come back do not keep their buckets."""
        clock = [1000.0]
        monkeypatch.setattr(cron_module.time, "monotonic", lambda: clock[0])
        limiter = FailedAuthLimiter(max_failures=5, window=60.0, cleanup_interval=60.0)

        for i in range(1000):
            limiter.record_failure(f"10.0.{i // 256}.{i % 256}")
        assert len(limiter._failures) == 1000

        clock[0] += 10_000
        limiter.is_blocked("192.0.2.1")

        assert limiter._failures == {}

    def test_sweep_keeps_recent_failures(self, monkeypatch):
        clock = [1000.0]
        monkeypatch.setattr(cron_module.time, "monotonic", lambda: clock[0])
        limiter = FailedAuthLimiter(max_failures=2, window=60.0, cleanup_interval=30.0)

        limiter.record_failure("1.2.3.4")
        clock[0] += 45
        limiter.record_failure("5.6.7.8")
        limiter.record_failure("5.6.7.8")
        clock[0] += 30
        limiter.record_failure("9.9.9.9")

        assert set(limiter._failures) == {"5.6.7.8", "9.9.9.9"}
        assert limiter.is_blocked("5.6.7.8") is True


# ---------------------------------------------------------------------------
# Request helpers
# ---------------------------------------------------------------------------


class FakeRequest:
    def __init__(self, headers=None, client=None):
        self.headers = headers or {}
        self.scope = {"client": client} if client is not None else {}


class TestRequestHelpers:
    def test_client_ip_prefers_forwarded(self):
        req = FakeRequest({"x-forwarded-for": "10.0.0.1, 10.0.0.2"}, ("192.168.1.1", 1234))
        assert _get_client_ip(req) == "10.0.0.1"

    def test_client_ip_falls_back_to_scope(self):
        assert _get_client_ip(FakeRequest(client=("192.168.1.1", 1234))) == "192.168.1.1"

    def test_client_ip_unknown(self):
        assert _get_client_ip(FakeRequest()) == "unknown"

    @pytest.mark.parametrize(
        "header, expected",
        [
            (f"Bearer {SECRET}", True),
            ("Bearer wrong", False),
            (f"bearer {SECRET}", False),
            (SECRET, False),
            ("", False),
        ],
    )
    def test_check_bearer(self, header, expected):
        req = FakeRequest({"authorization": header} if header else {})
        assert _check_bearer(req, SECRET) is expected


# ---------------------------------------------------------------------------
# Endpoint
# ---------------------------------------------------------------------------


class AlwaysOkDispatcher:
    async def dispatch(self, destination, payload):
        return DispatchResult.success(200)


@pytest.fixture
def make_app():
    """Build a Litestar app around the cron controller with a given sweep."""

    def _make(sweep, secret=SECRET, limiter=None):
        app = Litestar(
            route_handlers=[CronController],
            exception_handlers={
                HTTPException: http_exception_handler,
                SweepError: sweep_error_handler,
                Exception: internal_server_error_handler,
            },
        )
        app.state.cron_secret = secret
        app.state.failed_auth_limiter = limiter or FailedAuthLimiter(max_failures=5, window=60.0)
        app.state.sweep = sweep
        return app

    return _make


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {SECRET}"}


class TestCronAuth:
    def test_missing_auth_returns_401(self, make_app):
        sweep = AsyncMock()
        with TestClient(make_app(sweep)) as client:
            resp = client.get("/api/cron/check")

        assert resp.status_code == 401
        sweep.assert_not_awaited()

    def test_wrong_token_returns_401(self, make_app):
        sweep = AsyncMock()
        with TestClient(make_app(sweep)) as client:
            resp = client.get("/api/cron/check", headers={"Authorization": "Bearer wrong"})

        assert resp.status_code == 401
        sweep.assert_not_awaited()

    def test_no_secret_configured_returns_404(self, make_app, auth_headers):
        sweep = AsyncMock()
        with TestClient(make_app(sweep, secret="")) as client:
            resp = client.get("/api/cron/check", headers=auth_headers)

        assert resp.status_code == 404
        sweep.assert_not_awaited()

    def test_blocked_after_repeated_failures(self, make_app, auth_headers):
        sweep = AsyncMock(return_value=SweepResult(processed=0))
        app = make_app(sweep, limiter=FailedAuthLimiter(max_failures=1, window=60.0))

        with TestClient(app) as client:
            first = client.get("/api/cron/check", headers={"Authorization": "Bearer wrong"})
            second = client.get("/api/cron/check", headers=auth_headers)
            elsewhere = client.get(
                "/api/cron/check", headers={**auth_headers, "X-Forwarded-For": "10.9.8.7"}
            )

        assert first.status_code == 401
        assert second.status_code == 429
        assert elsewhere.status_code == 200
        sweep.assert_awaited_once()

    def test_module_limiter_used_when_app_has_none(self, make_app, monkeypatch):
        limiter = FailedAuthLimiter(max_failures=1, window=60.0)
        monkeypatch.setattr(cron_module, "_default_limiter", limiter)
        app = make_app(AsyncMock())
        app.state.failed_auth_limiter = None

        with TestClient(app) as client:
            client.get("/api/cron/check")

        assert limiter.is_blocked("testclient") is True


class TestCronSweep:
    """Test the sweep results reported by the trigger."""

    def test_get_runs_sweep(self, make_app, auth_headers):
        sweep = AsyncMock(return_value=SweepResult(processed=3, fired=2, failed=1))
        with TestClient(make_app(sweep)) as client:
            resp = client.get("/api/cron/check", headers=auth_headers)

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "processed": 3, "fired": 2, "failed": 1}

    def test_post_runs_sweep(self, make_app, auth_headers):
        sweep = AsyncMock(return_value=SweepResult(processed=0))
        with TestClient(make_app(sweep)) as client:
            resp = client.post("/api/cron/check", headers=auth_headers)

        assert resp.status_code == 200
        assert resp.json()["processed"] == 0

    def test_sweep_error_returns_503(self, make_app, auth_headers):
        sweep = AsyncMock(side_effect=SweepError("Could not query due sentinels: gone"))
        with TestClient(make_app(sweep)) as client:
            resp = client.get("/api/cron/check", headers=auth_headers)

        assert resp.status_code == 503
        assert resp.json() == {"success": False, "error": "Could not query due sentinels: gone"}

    def test_end_to_end_in_memory(self, make_app, auth_headers, make_record):
        due = make_record(trigger_date=TODAY)
        not_due = make_record(trigger_date=date(2025, 6, 20))
        store = InMemoryStore([due, not_due])
        sweep = partial(run_sweep, store, AlwaysOkDispatcher(), today=TODAY)

        with TestClient(make_app(sweep)) as client:
            resp = client.post("/api/cron/check", headers=auth_headers)

        assert resp.json() == {"success": True, "processed": 1, "fired": 1, "failed": 0}
        assert store.get(due.id).status is SentinelStatus.FIRED
        assert store.get(not_due.id).status is SentinelStatus.PENDING

    def test_failed_dispatch_still_200(self, make_app, auth_headers, make_record):
        class FailingDispatcher:
            async def dispatch(self, destination, payload):
                return DispatchResult.failure(DispatchFailure.TIMEOUT)

        store = InMemoryStore([make_record(trigger_date=TODAY)])
        sweep = partial(run_sweep, store, FailingDispatcher(), today=TODAY)

        with TestClient(make_app(sweep)) as client:
            resp = client.get("/api/cron/check", headers=auth_headers)

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "processed": 1, "fired": 0, "failed": 1}
