"""Outbound webhook delivery with a hard timeout.

Dispatch never raises. Every failure, whether a timeout, a transport error or
a non-2xx response, comes back as a ``DispatchResult`` with ``ok=False`` so
callers branch on a value instead of catching exceptions.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0


class DispatchFailure(str, Enum):
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    HTTP_STATUS = "http_status"


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of one delivery attempt."""

    ok: bool
    reason: DispatchFailure | None = None
    status_code: int | None = None
    detail: str | None = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, status_code: int) -> DispatchResult:
        return cls(ok=True, status_code=status_code)

    @classmethod
    def failure(
        cls,
        reason: DispatchFailure,
        status_code: int | None = None,
        detail: str | None = None,
    ) -> DispatchResult:
        return cls(ok=False, reason=reason, status_code=status_code, detail=detail)


class NotificationDispatcher:
    """POSTs JSON payloads to webhook destinations.

    Pass a shared ``httpx.AsyncClient`` to reuse connections across a sweep;
    otherwise a short-lived client is opened per dispatch.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.timeout = timeout
        self._client = client

    async def _post(self, destination: str, payload: dict[str, Any]) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if self._client is not None:
            return await self._client.post(destination, json=payload, headers=headers)
        # No per-phase timeouts; the overall deadline is enforced by dispatch()
        async with httpx.AsyncClient(timeout=None) as client:
            return await client.post(destination, json=payload, headers=headers)

    async def dispatch(self, destination: str, payload: dict[str, Any]) -> DispatchResult:
        """Deliver *payload* to *destination*, bounded by ``self.timeout`` seconds."""
        try:
            # wait_for cancels the in-flight request when the deadline passes
            response = await asyncio.wait_for(self._post(destination, payload), timeout=self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.error("Webhook timeout for %s: request exceeded %ss limit", destination, self.timeout)
            return DispatchResult.failure(
                DispatchFailure.TIMEOUT, detail=f"exceeded {self.timeout}s"
            )
        except httpx.HTTPError as exc:
            logger.error("Webhook error for %s: %s", destination, exc)
            return DispatchResult.failure(DispatchFailure.TRANSPORT, detail=str(exc))
        except Exception as exc:
            logger.exception("Unexpected webhook error for %s", destination)
            return DispatchResult.failure(DispatchFailure.TRANSPORT, detail=repr(exc))

        if not response.is_success:
            logger.error(
                "Webhook delivery failed for %s: HTTP %s", destination, response.status_code
            )
            return DispatchResult.failure(
                DispatchFailure.HTTP_STATUS, status_code=response.status_code
            )

        return DispatchResult.success(response.status_code)


async def dispatch_alert(
    destination: str,
    payload: dict[str, Any],
    timeout: float = DEFAULT_TIMEOUT,
) -> bool:
    """Send one alert and report only whether it was acknowledged."""
    result = await NotificationDispatcher(timeout=timeout).dispatch(destination, payload)
    return result.ok
