"""Process-lifetime store for validated plans and their append-only step logs."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Iterable, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session, sessionmaker

from camino.core.config import settings
from camino.db.models.plan_record import PlanRecord, utcnow
from camino.db.models.plan_step_log import PlanStepLog
from camino.db.session import create_session_factory
from camino.observability.metrics import log_metric
from camino.services.executor import StepLog
from camino.services.plan_schema import Plan, plan_to_wire, validate_plan

logger = logging.getLogger(__name__)


@dataclass
class StoredPlan:
    plan_id: str
    plan: Plan
    model: Optional[str]
    created_at: datetime
    logs: List[StepLog] = field(default_factory=list)


@dataclass
class PlanSummary:
    plan_id: str
    created_at: datetime
    step_count: int
    log_count: int
    model: Optional[str] = None


def _to_step_log(row: PlanStepLog) -> StepLog:
    return StepLog(
        index=row.step_index,
        id=row.step_id,
        tool=row.tool,
        status=row.status,
        latency_ms=row.latency_ms or 0.0,
        error_code=row.error_code,
    )


class PlanStore:
    """Plan records keyed by plan id.

    Records are created once and afterwards only gain step-log rows. Every
    session runs under one lock: the default in-memory SQLite database is a
    single shared connection, so concurrent appends must not interleave.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        self._lock = threading.Lock()

    def _session(self) -> Session:
        return self._session_factory()

    def record_plan(self, plan_id: str, plan: Plan, model: Optional[str] = None) -> None:
        payload = plan_to_wire(plan)
        with self._lock, self._session() as session:
            existing = session.get(PlanRecord, plan_id)
            if existing is None:
                session.add(PlanRecord(plan_id=plan_id, plan=payload, model=model, created_at=utcnow()))
            else:
                existing.plan = payload
                if model:
                    existing.model = model
            session.commit()
        logger.info("Recorded plan %s (%d steps)", plan_id, len(plan.steps))

    def append_steps(self, plan_id: str, logs: Iterable[StepLog]) -> int:
        """Append log rows; unknown plan ids are ignored. Returns the number of rows written."""
        entries = list(logs)
        if not entries:
            return 0
        with self._lock, self._session() as session:
            if session.get(PlanRecord, plan_id) is None:
                logger.warning("Dropping %d step logs for unknown plan %s", len(entries), plan_id)
                return 0
            session.add_all(
                PlanStepLog(
                    plan_id=plan_id,
                    step_index=entry.index,
                    step_id=entry.id,
                    tool=entry.tool,
                    status=entry.status,
                    latency_ms=entry.latency_ms,
                    error_code=entry.error_code,
                    created_at=utcnow(),
                )
                for entry in entries
            )
            session.commit()
        return len(entries)

    def get_plan(self, plan_id: str) -> Optional[StoredPlan]:
        with self._lock, self._session() as session:
            record = session.get(PlanRecord, plan_id)
            if record is None:
                return None
            return StoredPlan(
                plan_id=record.plan_id,
                plan=validate_plan(record.plan),
                model=record.model,
                created_at=record.created_at,
                logs=[_to_step_log(row) for row in record.step_logs],
            )

    def list_recent(self, limit: int = 20) -> List[PlanSummary]:
        log_counts = (
            select(PlanStepLog.plan_id, func.count(PlanStepLog.seq).label("log_count"))
            .group_by(PlanStepLog.plan_id)
            .subquery()
        )
        stmt = (
            select(PlanRecord, func.coalesce(log_counts.c.log_count, 0))
            .outerjoin(log_counts, log_counts.c.plan_id == PlanRecord.plan_id)
            .order_by(PlanRecord.created_at.desc(), PlanRecord.plan_id)
            .limit(limit)
        )
        with self._lock, self._session() as session:
            rows = session.execute(stmt).all()
        return [
            PlanSummary(
                plan_id=record.plan_id,
                created_at=record.created_at,
                step_count=len(record.plan.get("steps", [])),
                log_count=int(log_count),
                model=record.model,
            )
            for record, log_count in rows
        ]

    def evict_older_than(self, max_age: timedelta) -> int:
        """Delete plans (and their logs) created before ``now - max_age``."""
        cutoff = utcnow() - max_age
        with self._lock, self._session() as session:
            stale_ids = list(session.scalars(select(PlanRecord.plan_id).where(PlanRecord.created_at < cutoff)))
            if stale_ids:
                session.execute(delete(PlanStepLog).where(PlanStepLog.plan_id.in_(stale_ids)))
                session.execute(delete(PlanRecord).where(PlanRecord.plan_id.in_(stale_ids)))
                session.commit()
        if stale_ids:
            logger.info("Evicted %d plans older than %s", len(stale_ids), max_age)
            log_metric("plan_store.evicted", len(stale_ids))
        return len(stale_ids)


@lru_cache
def get_plan_store() -> PlanStore:
    """Process-wide store, created on first use."""
    return PlanStore(create_session_factory(settings.database_url))
