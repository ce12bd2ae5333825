"""SLA tracker: due dates, overdue detection and escalation targets.

Everything here is a pure function of its inputs (plus ``now``); the periodic
driver that acts on overdue requests lives in ``workers.sla_tasks``.
"""
import logging
from datetime import datetime, timedelta, timezone

from erp_workflow.core.config import settings
from erp_workflow.models.enums import ApprovalStatus, Role

logger = logging.getLogger(__name__)


def as_utc(dt: datetime | None) -> datetime | None:
    """Make tz-aware if naive (some backends drop tzinfo on read)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def effective_sla_hours(definition, level=None, sla_config=None) -> int:
    """Level override > active SLA config > definition default > system default."""
    if level is not None and getattr(level, "sla_hours", None):
        return level.sla_hours
    if sla_config is not None and sla_config.active and sla_config.sla_hours:
        return sla_config.sla_hours
    if definition is not None and definition.sla_hours:
        return definition.sla_hours
    return settings.DEFAULT_SLA_HOURS


def due_after(entered_at: datetime, sla_hours: int) -> datetime:
    return as_utc(entered_at) + timedelta(hours=sla_hours)


def compute_due_at(definition, level, entered_at: datetime, sla_config=None) -> datetime:
    """Deadline for ``level``: time the request entered it plus its effective SLA."""
    return due_after(entered_at, effective_sla_hours(definition, level, sla_config))


def escalation_target(definition, level, sla_config=None) -> Role | None:
    """Role that takes over ``level`` after an SLA breach, if any."""
    if level is not None and getattr(level, "escalate_to_role", None):
        return Role(level.escalate_to_role)
    if sla_config is not None and sla_config.active and sla_config.escalate_role:
        return Role(sla_config.escalate_role)
    return None


def is_overdue(request, now: datetime | None = None) -> bool:
    """True only for Pending requests whose deadline has passed."""
    if request.status != ApprovalStatus.Pending or request.due_at is None:
        return False
    now = as_utc(now) or datetime.now(timezone.utc)
    return now > as_utc(request.due_at)


def is_approaching(request, now: datetime | None = None, warning_hours: int | None = None) -> bool:
    """Pending, not yet overdue, and due within the warning window."""
    if request.status != ApprovalStatus.Pending or request.due_at is None:
        return False
    now = as_utc(now) or datetime.now(timezone.utc)
    if warning_hours is None:
        warning_hours = settings.SLA_WARNING_HOURS
    due = as_utc(request.due_at)
    return now <= due <= now + timedelta(hours=warning_hours)


def escalation_due(request, now: datetime | None = None) -> bool:
    """Whether the periodic driver should escalate the request's current level.

    Requires: overdue, current level not escalated yet, an escalation target
    frozen on the level, and (if the level sets one) its escalate-after delay
    elapsed since the level was entered.
    """
    if not is_overdue(request, now):
        return False
    if request.current_level in (request.escalated_levels or []):
        return False
    snapshot = request.level_snapshot()
    if not snapshot.get("escalate_to_role"):
        return False
    after_hours = snapshot.get("escalate_after_hours")
    if after_hours:
        now = as_utc(now) or datetime.now(timezone.utc)
        if now < as_utc(request.level_entered_at) + timedelta(hours=after_hours):
            return False
    return True
