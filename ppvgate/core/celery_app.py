"""
Celery application: broker and result backend from settings.
Tasks are in ppvgate.workers.tasks (access grant retries, ledger reconciliation).
"""
from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging

from ppvgate.core.config import settings
from ppvgate.core.logging import configure_logging

celery_app = Celery(
    "ppvgate",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "ppvgate.workers.tasks.grants",
        "ppvgate.workers.tasks.reconcile",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_track_started=True,
    task_time_limit=300,
    result_expires=86400,
    beat_schedule={
        "reconcile-access-grants": {
            "task": "ppvgate.workers.tasks.reconcile.reconcile_access_grants",
            "schedule": crontab(minute="*/10"),
        },
        "report-stale-pending": {
            "task": "ppvgate.workers.tasks.reconcile.report_stale_pending",
            "schedule": crontab(minute=0),
        },
    },
)

celery_app.conf.task_routes = {
    "ppvgate.workers.tasks.grants.retry_access_grant": {"queue": "grants"},
}


@setup_logging.connect
def _configure_worker_logging(**kwargs) -> None:
    # JSON logs in workers too; Celery's own handler setup is skipped
    configure_logging()
