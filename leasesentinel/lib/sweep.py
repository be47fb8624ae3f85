"""The daily sweep: fire a notification for every sentinel due today.

One sweep selects the due, still-pending sentinels and then works on each of
them concurrently. A unit of work dispatches the notification, marks the
sentinel FIRED when delivery succeeded, and appends exactly one audit log
entry either way. Units are isolated from each other: whatever goes wrong in
one of them is logged and counted, and the others still run to completion.

Only a failure to query the store aborts the sweep, as a ``SweepError``.
Sentinels whose delivery failed stay PENDING. With the default
``ExactDateSelector`` they are only reselected on their trigger date;
``CatchUpSelector`` widens selection to earlier days still pending.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from leasesentinel.lib import dates
from leasesentinel.lib.dispatcher import DispatchFailure, DispatchResult, NotificationDispatcher
from leasesentinel.lib.exceptions import SweepError
from leasesentinel.lib.hooks import (
    DISPATCH_PAYLOAD,
    SENTINEL_DISPATCH_FAILED,
    SENTINEL_FIRED,
    SWEEP_COMPLETED,
    hooks,
)
from leasesentinel.lib.observability import set_attributes, span
from leasesentinel.lib.records import DispatchLogEntry, DispatchOutcome, SentinelRecord, SentinelStatus
from leasesentinel.lib.routing import ChannelRouter
from leasesentinel.lib.store import SentinelStore, SessionFactory, SQLAlchemyStore, load_store

if TYPE_CHECKING:
    from leasesentinel.config import Settings

logger = logging.getLogger(__name__)

FAILED_NOTE = "dispatch failed"


class UnitOutcome(str, Enum):
    FIRED = "fired"
    FAILED = "failed"
    # Dispatch happened but a store write or hook after it did not
    ERRORED = "errored"


@dataclass
class SweepResult:
    processed: int
    fired: int = 0
    failed: int = 0
    errored: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "processed": self.processed,
            "fired": self.fired,
            "failed": self.failed,
        }


class DueSelector(Protocol):
    """Chooses which sentinels a sweep run on *today* should attempt."""

    async def select(self, store: SentinelStore, today: date) -> list[SentinelRecord]: ...


class ExactDateSelector:
    """Pending sentinels whose trigger date is exactly today."""

    async def select(self, store: SentinelStore, today: date) -> list[SentinelRecord]:
        return await store.find_due(today, SentinelStatus.PENDING)


class CatchUpSelector:
    """Pending sentinels due today or on any of the previous *lookback_days* days."""

    def __init__(self, lookback_days: int) -> None:
        if lookback_days < 0:
            raise ValueError("lookback_days must be >= 0")
        self.lookback_days = lookback_days

    async def select(self, store: SentinelStore, today: date) -> list[SentinelRecord]:
        selected: dict[Any, SentinelRecord] = {}
        for offset in range(self.lookback_days, -1, -1):
            day = today - timedelta(days=offset)
            for record in await store.find_due(day, SentinelStatus.PENDING):
                selected.setdefault(record.id, record)
        return list(selected.values())


def selector_for(catch_up_days: int) -> DueSelector:
    if catch_up_days > 0:
        return CatchUpSelector(catch_up_days)
    return ExactDateSelector()


def _raw_payload(record: SentinelRecord) -> dict[str, Any]:
    """Payload from the record's fields as stored, for the audit log."""
    return {
        "event": record.event_name,
        "date": str(record.trigger_date),
        "clause": record.original_text,
    }


async def _attempt_dispatch(
    record: SentinelRecord,
    dispatcher: NotificationDispatcher,
    router: ChannelRouter,
) -> tuple[dict[str, Any], DispatchResult]:
    """Route and send one notification. Returns the payload used and the result."""
    payload = _raw_payload(record)
    try:
        payload = router.build_payload(record)
        route = router.route(record)
        payload = await hooks.apply_filters(DISPATCH_PAYLOAD, route.payload, record)
        result = await dispatcher.dispatch(route.destination, payload)
    except Exception as exc:
        logger.error("Could not dispatch sentinel %s: %s", record.id, exc)
        result = DispatchResult.failure(DispatchFailure.TRANSPORT, detail=str(exc))
    return payload, result


async def process_record(
    record: SentinelRecord,
    store: SentinelStore,
    dispatcher: NotificationDispatcher,
    router: ChannelRouter,
) -> UnitOutcome:
    """Dispatch, then update status, then append the audit entry, in that order."""
    fired_at = datetime.now(UTC)
    payload, result = await _attempt_dispatch(record, dispatcher, router)
    outcome = UnitOutcome.FIRED if result.ok else UnitOutcome.FAILED

    if result.ok:
        try:
            await store.update_status(record.id, SentinelStatus.FIRED)
        except Exception:
            logger.exception("Sentinel %s was delivered but could not be marked FIRED", record.id)
            outcome = UnitOutcome.ERRORED
        entry = DispatchLogEntry(
            sentinel_id=record.id,
            outcome=DispatchOutcome.SUCCESS,
            payload=payload,
            fired_at=fired_at,
        )
    else:
        logger.warning("Failed to dispatch alert for sentinel %s", record.id)
        entry = DispatchLogEntry(
            sentinel_id=record.id,
            outcome=DispatchOutcome.FAILED,
            payload={**payload, "error": FAILED_NOTE},
            fired_at=fired_at,
        )

    try:
        await store.append_log(entry)
    except Exception:
        logger.exception("Could not write %s log entry for sentinel %s", entry.outcome.value, record.id)
        outcome = UnitOutcome.ERRORED

    try:
        hook_name = SENTINEL_FIRED if result.ok else SENTINEL_DISPATCH_FAILED
        await hooks.do_action(hook_name, record, entry)
    except Exception:
        logger.exception("Hook failed after dispatching sentinel %s", record.id)

    return outcome


async def run_sweep(
    store: SentinelStore,
    dispatcher: NotificationDispatcher,
    router: ChannelRouter | None = None,
    *,
    today: date | None = None,
    selector: DueSelector | None = None,
) -> SweepResult:
    """Run one sweep and return its counts.

    ``processed`` counts every selected sentinel, whether or not its
    notification went out.

    Raises:
        SweepError: the store could not be queried; nothing was processed.
    """
    today = today or dates.today()
    selector = selector or ExactDateSelector()
    router = router or ChannelRouter()

    with span("sweep", today=today.isoformat()) as sweep_span:
        try:
            records = await selector.select(store, today)
        except Exception as exc:
            logger.exception("Sweep for %s aborted: could not query due sentinels", today)
            raise SweepError(f"Could not query due sentinels: {exc}") from exc

        outcomes = await asyncio.gather(
            *(process_record(r, store, dispatcher, router) for r in records),
            return_exceptions=True,
        )

        result = SweepResult(processed=len(records))
        for record, outcome in zip(records, outcomes):
            if isinstance(outcome, BaseException):
                logger.error("Unhandled error processing sentinel %s", record.id, exc_info=outcome)
                result.errored += 1
            elif outcome is UnitOutcome.FIRED:
                result.fired += 1
            elif outcome is UnitOutcome.FAILED:
                result.failed += 1
            else:
                result.errored += 1

        set_attributes(
            sweep_span,
            processed=result.processed,
            fired=result.fired,
            failed=result.failed,
            errored=result.errored,
        )
        logger.info(
            "Sweep for %s processed %d sentinels (%d fired, %d failed, %d errored)",
            today, result.processed, result.fired, result.failed, result.errored,
        )

        try:
            await hooks.do_action(SWEEP_COMPLETED, today, result)
        except Exception:
            logger.exception("sweep_completed hook failed")

        return result


async def run_daily_sweep(
    session_maker: SessionFactory,
    settings: Settings,
    *,
    today: date | None = None,
) -> SweepResult:
    """Run a sweep against the database with settings-driven collaborators."""
    if settings.sweep.store:
        store = load_store(settings.sweep.store)(session_maker=session_maker)
    else:
        store = SQLAlchemyStore(session_maker)
    async with httpx.AsyncClient(timeout=None) as client:
        dispatcher = NotificationDispatcher(timeout=settings.dispatch.timeout, client=client)
        return await run_sweep(
            store,
            dispatcher,
            ChannelRouter(settings.relay_url),
            today=today,
            selector=selector_for(settings.sweep.catch_up_days),
        )
