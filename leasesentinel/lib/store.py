"""Record store interface used by the sweep.

Custom stores are named in app.yaml as ``sweep.store: "module:ClassName"`` and
are constructed with a ``session_maker`` keyword argument.

Built-in stores:
- SQLAlchemyStore: async SQLAlchemy sessions, one short session per call (default)
- InMemoryStore: dict-based storage for tests and dry runs
"""

from __future__ import annotations

import dataclasses
import importlib
from contextlib import AbstractAsyncContextManager
from datetime import date
from typing import TYPE_CHECKING, Callable, Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy import select, update

from leasesentinel.db.models import DispatchLog, Sentinel
from leasesentinel.lib.records import DispatchLogEntry, SentinelRecord, SentinelStatus

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

# An async_sessionmaker, or SQLAlchemyAsyncConfig.get_session
SessionFactory = Callable[[], "AbstractAsyncContextManager[AsyncSession]"]


def load_store(spec: str) -> type:
    """Import a store class from a 'module:ClassName' string."""
    if ":" not in spec:
        raise ValueError(
            f"Invalid store spec '{spec}': must be in format 'module:ClassName'"
        )
    parts = spec.split(":")
    if len(parts) != 2:
        raise ValueError(
            f"Invalid store spec '{spec}': must contain exactly one colon"
        )
    module_path, class_name = parts
    module = importlib.import_module(module_path)
    return getattr(module, class_name)


@runtime_checkable
class SentinelStore(Protocol):
    """What the sweep needs from durable storage.

    No operation spans more than one record; each must be atomic on its own.
    """

    async def find_due(self, on: date, status: SentinelStatus) -> list[SentinelRecord]: ...
    async def update_status(self, sentinel_id: UUID, status: SentinelStatus) -> None: ...
    async def append_log(self, entry: DispatchLogEntry) -> None: ...


class SQLAlchemyStore:
    """Store backed by the ``sentinels`` and ``dispatch_logs`` tables.

    Every call opens its own session so concurrent sweep units never share one.
    """

    def __init__(self, session_maker: SessionFactory) -> None:
        self._session_maker = session_maker

    async def find_due(self, on: date, status: SentinelStatus) -> list[SentinelRecord]:
        async with self._session_maker() as session:
            result = await session.execute(
                select(Sentinel).where(
                    Sentinel.trigger_date == on,
                    Sentinel.status == status.value,
                )
            )
            return [SentinelRecord.from_model(s) for s in result.scalars().all()]

    async def update_status(self, sentinel_id: UUID, status: SentinelStatus) -> None:
        async with self._session_maker() as session:
            result = await session.execute(
                update(Sentinel)
                .where(Sentinel.id == sentinel_id)
                .values(status=status.value)
            )
            if result.rowcount == 0:
                await session.rollback()
                raise LookupError(f"Sentinel {sentinel_id} not found")
            await session.commit()

    async def append_log(self, entry: DispatchLogEntry) -> None:
        async with self._session_maker() as session:
            session.add(
                DispatchLog(
                    id=entry.id,
                    sentinel_id=entry.sentinel_id,
                    fired_at=entry.fired_at,
                    outcome=entry.outcome.value,
                    payload=entry.payload,
                )
            )
            await session.commit()


class InMemoryStore:
    """Dict-backed store. Not durable; state lives as long as the instance."""

    def __init__(self, records: list[SentinelRecord] | None = None) -> None:
        self._records: dict[UUID, SentinelRecord] = {}
        self.logs: list[DispatchLogEntry] = []
        for record in records or []:
            self.add(record)

    def add(self, record: SentinelRecord) -> None:
        self._records[record.id] = record

    def get(self, sentinel_id: UUID) -> SentinelRecord | None:
        return self._records.get(sentinel_id)

    def logs_for(self, sentinel_id: UUID) -> list[DispatchLogEntry]:
        return [e for e in self.logs if e.sentinel_id == sentinel_id]

    async def find_due(self, on: date, status: SentinelStatus) -> list[SentinelRecord]:
        return [
            r for r in self._records.values()
            if r.trigger_date == on and r.status == status
        ]

    async def update_status(self, sentinel_id: UUID, status: SentinelStatus) -> None:
        record = self._records.get(sentinel_id)
        if record is None:
            raise LookupError(f"Sentinel {sentinel_id} not found")
        self._records[sentinel_id] = dataclasses.replace(record, status=status)

    async def append_log(self, entry: DispatchLogEntry) -> None:
        self.logs.append(entry)
