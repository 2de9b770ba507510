"""ORM models exposed for metadata discovery."""
from camino.db.models.plan_record import PlanRecord
from camino.db.models.plan_step_log import PlanStepLog

__all__ = [
    "PlanRecord",
    "PlanStepLog",
]
