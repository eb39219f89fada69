"""Issue model mirrored from Jira, carrying its stored delay classification."""

from __future__ import annotations

import datetime as dt

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from projviz.db.base import Base
from projviz.models.enums import DelayStatus, StatusCategory, enum_column_values


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class Issue(Base):
    __tablename__ = "issues"
    __table_args__ = (
        Index("ix_issues_project_id_delay_status", "project_id", "delay_status"),
        Index("ix_issues_due_date", "due_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    jira_issue_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    jira_issue_key: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"), index=True, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    status_category: Mapped[StatusCategory] = mapped_column(
        Enum(StatusCategory, name="status_category", values_callable=enum_column_values, native_enum=False, length=16),
        nullable=False,
        default=StatusCategory.to_do,
    )
    due_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    assignee_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    assignee_account_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    delay_status: Mapped[DelayStatus] = mapped_column(
        Enum(DelayStatus, name="delay_status", values_callable=enum_column_values, native_enum=False, length=8),
        nullable=False,
    )
    priority: Mapped[str | None] = mapped_column(String(64), nullable=True)
    issue_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    last_updated_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
