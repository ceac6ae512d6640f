# backend/gestimmo/workers/celery_app.py
from __future__ import annotations

from celery import Celery
from celery.schedules import crontab

from ..config import settings

celery_app = Celery(
    "gestimmo",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["gestimmo.workers.billing_tasks"],
)

celery_app.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_reject_on_worker_lost=True,
    task_track_started=True,
    timezone="UTC",
)

celery_app.conf.task_routes = {
    "gestimmo.workers.billing_tasks.*": {"queue": "billing"},
}

celery_app.conf.beat_schedule = {
    "daily-billing": {
        "task": "gestimmo.workers.billing_tasks.run_daily_billing",
        "schedule": crontab(hour=int(settings.billing_cron_hour), minute=0),
    },
}
