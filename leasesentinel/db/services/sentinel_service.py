"""Sentinel service for creating, listing and deleting tracked deadlines."""

from datetime import date
from urllib.parse import urlparse
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leasesentinel.db.models import DispatchLog, Sentinel
from leasesentinel.lib import dates
from leasesentinel.lib.exceptions import SentinelInputError
from leasesentinel.lib.extraction import DeadlineExtractor
from leasesentinel.lib.hooks import hooks, AFTER_SENTINEL_CREATE, AFTER_SENTINEL_DELETE
from leasesentinel.lib.records import NotificationMethod, SentinelStatus

MIN_TEXT_LENGTH = 10
MIN_EVENT_NAME_LENGTH = 3


def _validate_target(method: str, target: str) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    try:
        NotificationMethod(method)
    except ValueError:
        errors.setdefault("notification_method", []).append(
            f"Unknown notification method {method!r}"
        )
        return errors

    if not target:
        errors.setdefault("notification_target", []).append("Notification target is required")
    elif method == NotificationMethod.CUSTOM.value:
        parsed = urlparse(target)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            errors.setdefault("notification_target", []).append(
                "Webhook URL must be a valid URL"
            )
    return errors


async def create_sentinel(
    db_session: AsyncSession,
    owner: str,
    event_name: str,
    trigger_date: date | str,
    original_text: str,
    notification_target: str,
    notification_method: str = NotificationMethod.CUSTOM.value,
) -> Sentinel:
    """Create a new PENDING sentinel.

    Args:
        db_session: Database session
        owner: Identifier of the owning user
        event_name: Short label for the deadline
        trigger_date: Date the notification should fire (date or YYYY-MM-DD)
        original_text: Source text the deadline came from
        notification_target: Webhook URL, email address or phone number
        notification_method: Delivery channel (custom, slack, teams, email, sms)

    Returns:
        The created Sentinel

    Raises:
        SentinelInputError: If any field is invalid
    """
    errors = _validate_target(notification_method, notification_target)
    if len(event_name.strip()) < MIN_EVENT_NAME_LENGTH:
        errors.setdefault("event_name", []).append(
            f"Event name must be at least {MIN_EVENT_NAME_LENGTH} characters"
        )
    try:
        trigger_date = dates.parse_date(trigger_date)
    except ValueError as exc:
        errors.setdefault("trigger_date", []).append(str(exc))

    if errors:
        raise SentinelInputError("Validation failed", errors)

    sentinel = Sentinel(
        owner=owner,
        event_name=event_name.strip(),
        trigger_date=trigger_date,
        original_text=original_text,
        notification_method=notification_method,
        notification_target=notification_target,
        status=SentinelStatus.PENDING.value,
    )
    db_session.add(sentinel)
    await db_session.commit()
    await db_session.refresh(sentinel)

    await hooks.do_action(AFTER_SENTINEL_CREATE, sentinel)

    return sentinel


async def create_sentinel_from_text(
    db_session: AsyncSession,
    extractor: DeadlineExtractor,
    owner: str,
    text: str,
    notification_target: str,
    notification_method: str = NotificationMethod.CUSTOM.value,
    today: date | None = None,
) -> Sentinel:
    """Extract a deadline from lease text and store it as a sentinel.

    Input is validated before the extractor is called so a bad request never
    costs an extraction.

    Raises:
        SentinelInputError: If the input is invalid or nothing could be extracted
    """
    errors = _validate_target(notification_method, notification_target)
    if len(text.strip()) < MIN_TEXT_LENGTH:
        errors.setdefault("text", []).append(
            f"Lease clause must be at least {MIN_TEXT_LENGTH} characters"
        )
    if errors:
        raise SentinelInputError("Validation failed", errors)

    extracted = await extractor.extract(text, today or dates.today())
    if extracted is None:
        raise SentinelInputError("Extraction failed. Please try rephrasing the clause.")

    return await create_sentinel(
        db_session,
        owner=owner,
        event_name=extracted.event_name,
        trigger_date=extracted.trigger_date,
        original_text=text,
        notification_target=notification_target,
        notification_method=notification_method,
    )


async def get_sentinel(db_session: AsyncSession, sentinel_id: UUID) -> Sentinel | None:
    result = await db_session.execute(select(Sentinel).where(Sentinel.id == sentinel_id))
    return result.scalar_one_or_none()


async def list_sentinels(
    db_session: AsyncSession,
    owner: str,
    status: SentinelStatus | None = None,
) -> list[Sentinel]:
    """List an owner's sentinels, soonest trigger date first."""
    query = select(Sentinel).where(Sentinel.owner == owner)
    if status is not None:
        query = query.where(Sentinel.status == status.value)
    query = query.order_by(Sentinel.trigger_date.asc(), Sentinel.created_at.asc())

    result = await db_session.execute(query)
    return list(result.scalars().all())


async def list_upcoming(
    db_session: AsyncSession,
    owner: str,
    window_days: int,
    today: date | None = None,
) -> list[Sentinel]:
    """Pending sentinels whose trigger date falls within the notice window.

    Args:
        db_session: Database session
        owner: Identifier of the owning user
        window_days: Lead time in days; 0 means only today
        today: Reference date (defaults to the current UTC date)
    """
    reference = today or dates.today()
    pending = await list_sentinels(db_session, owner, status=SentinelStatus.PENDING)
    return [s for s in pending if dates.within_window(s.trigger_date, reference, window_days)]


async def delete_sentinel(db_session: AsyncSession, sentinel_id: UUID, owner: str) -> bool:
    """Delete a sentinel if it belongs to *owner*.

    Returns:
        True if deleted, False if not found or owned by someone else
    """
    sentinel = await get_sentinel(db_session, sentinel_id)
    if sentinel is None or sentinel.owner != owner:
        return False

    await db_session.delete(sentinel)
    await db_session.commit()

    await hooks.do_action(AFTER_SENTINEL_DELETE, sentinel_id)

    return True


async def list_logs(db_session: AsyncSession, sentinel_id: UUID) -> list[DispatchLog]:
    """Audit log for one sentinel, newest attempt first."""
    result = await db_session.execute(
        select(DispatchLog)
        .where(DispatchLog.sentinel_id == sentinel_id)
        .order_by(DispatchLog.fired_at.desc())
    )
    return list(result.scalars().all())
