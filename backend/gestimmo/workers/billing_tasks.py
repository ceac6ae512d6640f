# backend/gestimmo/workers/billing_tasks.py
from __future__ import annotations

import logging
from datetime import date

from ..db import AdminSessionLocal
from ..middleware.request_id import bound_request_id
from ..services.billing import run_daily_tasks
from .celery_app import celery_app

log = logging.getLogger("gestimmo.billing")


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    name="gestimmo.workers.billing_tasks.run_daily_billing",
)
def run_daily_billing(self, today: str | None = None) -> dict:
    """
    Scheduled twin of POST /api/cron/daily. Both passes are idempotent, so a
    retry after a partial run only fills in what is still missing.
    """
    run_date = date.fromisoformat(today) if today else None
    with bound_request_id(f"billing-{self.request.id or 'eager'}"):
        db = AdminSessionLocal()
        try:
            result = run_daily_tasks(db, today=run_date)
            return {"success": True, "results": result.as_response()}
        except Exception as e:
            db.rollback()
            log.exception("daily billing task failed", extra={"task": "billing", "attempt": self.request.retries})
            raise self.retry(exc=e)
        finally:
            db.close()
