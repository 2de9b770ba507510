"""Stored plan ORM model."""
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Index, Text
from sqlalchemy.orm import relationship

from camino.db.base import Base


def utcnow() -> datetime:
    """Naive UTC timestamp; SQLite drops tzinfo on the way back anyway."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class PlanRecord(Base):
    __tablename__ = "plan_records"
    __table_args__ = (Index("ix_plan_records_created_at", "created_at"),)

    plan_id = Column(Text, primary_key=True)
    plan = Column(JSON, nullable=False)
    model = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    step_logs = relationship(
        "PlanStepLog",
        back_populates="plan_record",
        cascade="all, delete-orphan",
        order_by="PlanStepLog.seq",
    )
