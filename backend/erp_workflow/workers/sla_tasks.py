"""Celery task driving SLA escalation of overdue approval requests."""
import logging
from datetime import datetime, timezone

from erp_workflow.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="erp_workflow.workers.sla_tasks.escalate_overdue_approvals")
def escalate_overdue_approvals():
    """Escalate every overdue pending approval request.

    Runs every SLA_CHECK_INTERVAL_MINUTES. Each level is escalated at most
    once; the engine records escalated levels on the request, so repeated
    ticks are no-ops for levels already handed over.
    """
    logger.info("escalate_overdue_approvals: starting SLA escalation pass")
    try:
        from erp_workflow.db.session import get_sessionmaker
        from erp_workflow.services.approval import ApprovalChainEngine

        now = datetime.now(timezone.utc)
        Session = get_sessionmaker()

        with Session() as db:
            escalated = ApprovalChainEngine(db).escalate_overdue(now)

        logger.info("escalate_overdue_approvals: complete, escalated=%d", len(escalated))
        return {"escalated": len(escalated), "request_ids": [str(i) for i in escalated]}

    except Exception as exc:
        logger.exception("escalate_overdue_approvals failed: %s", exc)
        return {"status": "error", "error": str(exc)}
