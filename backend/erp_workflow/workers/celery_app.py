from celery import Celery

from erp_workflow.core.config import settings

celery_app = Celery(
    "workflow_worker",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "erp_workflow.workers.sla_tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    broker_connection_retry_on_startup=True,
)

celery_app.conf.beat_schedule = {
    "escalate-overdue-approvals": {
        "task": "erp_workflow.workers.sla_tasks.escalate_overdue_approvals",
        "schedule": settings.SLA_CHECK_INTERVAL_MINUTES * 60.0,
    },
}
