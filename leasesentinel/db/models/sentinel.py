from datetime import date, datetime
from uuid import UUID

from sqlalchemy import JSON, Date, DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from leasesentinel.db.base import Base


class Sentinel(Base):
    """A tracked deadline awaiting its trigger date."""

    __tablename__ = "sentinels"

    owner: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    event_name: Mapped[str] = mapped_column(String(255), nullable=False)
    trigger_date: Mapped[date] = mapped_column(Date, nullable=False)
    original_text: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Delivery channel; "custom" targets are webhook URLs, the rest go through the relay
    notification_method: Mapped[str] = mapped_column(
        String(20), nullable=False, default="custom", server_default="custom"
    )
    notification_target: Mapped[str] = mapped_column(String(1024), nullable=False)

    status: Mapped[str] = mapped_column(
        String(10), nullable=False, default="PENDING", server_default="PENDING"
    )

    __table_args__ = (
        Index("ix_sentinels_trigger_date_status", "trigger_date", "status"),
    )


class DispatchLog(Base):
    """Append-only audit record of one dispatch attempt."""

    __tablename__ = "dispatch_logs"

    # Lookup only; logs outlive the sentinel they describe
    sentinel_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    fired_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    outcome: Mapped[str] = mapped_column(String(10), nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
