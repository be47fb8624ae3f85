"""Plain record types passed between the sweep and the record store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

if TYPE_CHECKING:
    from leasesentinel.db.models import DispatchLog, Sentinel


class SentinelStatus(str, Enum):
    PENDING = "PENDING"
    FIRED = "FIRED"


class DispatchOutcome(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class NotificationMethod(str, Enum):
    """How a sentinel is delivered. Only CUSTOM bypasses the relay."""

    CUSTOM = "custom"
    SLACK = "slack"
    TEAMS = "teams"
    EMAIL = "email"
    SMS = "sms"


@dataclass(frozen=True)
class SentinelRecord:
    id: UUID
    owner: str
    event_name: str
    trigger_date: date
    original_text: str
    notification_target: str
    notification_method: str = NotificationMethod.CUSTOM.value
    status: SentinelStatus = SentinelStatus.PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_model(cls, sentinel: Sentinel) -> SentinelRecord:
        return cls(
            id=sentinel.id,
            owner=sentinel.owner,
            event_name=sentinel.event_name,
            trigger_date=sentinel.trigger_date,
            original_text=sentinel.original_text,
            notification_target=sentinel.notification_target,
            notification_method=sentinel.notification_method,
            status=SentinelStatus(sentinel.status),
            created_at=sentinel.created_at,
        )


@dataclass(frozen=True)
class DispatchLogEntry:
    sentinel_id: UUID
    outcome: DispatchOutcome
    payload: dict[str, Any]
    fired_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    id: UUID = field(default_factory=uuid4)

    @classmethod
    def from_model(cls, log: DispatchLog) -> DispatchLogEntry:
        return cls(
            id=log.id,
            sentinel_id=log.sentinel_id,
            outcome=DispatchOutcome(log.outcome),
            payload=dict(log.payload),
            fired_at=log.fired_at,
        )
