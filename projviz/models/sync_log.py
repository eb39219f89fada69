"""Sync log model; the RUNNING row doubles as the singleton sync lease."""

from __future__ import annotations

import datetime as dt

from sqlalchemy import DateTime, Enum, Float, Index, Integer, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from projviz.db.base import Base
from projviz.models.enums import SyncStatus, SyncType, enum_column_values


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class SyncLog(Base):
    __tablename__ = "sync_logs"
    __table_args__ = (
        # At most one RUNNING row.
        Index(
            "uq_sync_logs_single_running",
            "status",
            unique=True,
            postgresql_where=text("status = 'RUNNING'"),
            sqlite_where=text("status = 'RUNNING'"),
        ),
        Index("ix_sync_logs_executed_at", "executed_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sync_type: Mapped[SyncType] = mapped_column(
        Enum(SyncType, name="sync_type", values_callable=enum_column_values, native_enum=False, length=8),
        nullable=False,
    )
    executed_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    completed_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[SyncStatus] = mapped_column(
        Enum(SyncStatus, name="sync_status", values_callable=enum_column_values, native_enum=False, length=8),
        nullable=False,
        default=SyncStatus.running,
    )
    projects_synced: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    issues_synced: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration_seconds: Mapped[float | None] = mapped_column(Float, nullable=True)
