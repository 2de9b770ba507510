"""Background eviction of stale plans from the plan store."""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler

from camino.core.config import settings
from camino.services.plan_store import PlanStore, get_plan_store

logger = logging.getLogger(__name__)

EVICTION_JOB_ID = "plan_eviction_job"


def run_eviction(store: Optional[PlanStore] = None) -> int:
    store = store or get_plan_store()
    try:
        return store.evict_older_than(timedelta(minutes=settings.plan_ttl_minutes))
    except Exception:  # pragma: no cover - a failed sweep must not kill the scheduler thread
        logger.exception("Plan eviction job failed")
        return 0


def start_eviction_scheduler(store: Optional[PlanStore] = None) -> Optional[BackgroundScheduler]:
    """Start the interval sweep; returns None when eviction is disabled."""
    if not settings.plan_eviction_enabled:
        logger.info("Plan eviction disabled via config")
        return None

    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.add_job(
        run_eviction,
        trigger="interval",
        minutes=settings.plan_eviction_interval_minutes,
        kwargs={"store": store},
        id=EVICTION_JOB_ID,
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        "Plan eviction scheduled every %d min (ttl=%d min)",
        settings.plan_eviction_interval_minutes,
        settings.plan_ttl_minutes,
    )
    return scheduler


def stop_eviction_scheduler(scheduler: Optional[BackgroundScheduler]) -> None:
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Plan eviction scheduler stopped")
