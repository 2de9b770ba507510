"""Append-only step log rows, one per executed (or skipped) step."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import relationship

from camino.db.base import Base
from camino.db.models.plan_record import utcnow


class PlanStepLog(Base):
    __tablename__ = "plan_step_logs"
    __table_args__ = (Index("ix_plan_step_logs_plan_id", "plan_id"),)

    seq = Column(Integer, primary_key=True, autoincrement=True)
    plan_id = Column(Text, ForeignKey("plan_records.plan_id", ondelete="CASCADE"), nullable=False)
    step_index = Column(Integer, nullable=False)
    step_id = Column(Text, nullable=False)
    tool = Column(Text, nullable=False)
    status = Column(Text, nullable=False)
    latency_ms = Column(Float, nullable=False, default=0.0)
    error_code = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    plan_record = relationship("PlanRecord", back_populates="step_logs")
