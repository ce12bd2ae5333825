"""SLA configuration CRUD and per module/entity SLA metrics."""
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from erp_workflow.core.exceptions import NotFound
from erp_workflow.models.approval import ApprovalRequest
from erp_workflow.models.enums import ApprovalStatus, Module
from erp_workflow.models.workflow import SLAConfig
from erp_workflow.services import audit as audit_svc
from erp_workflow.services import sla as sla_svc

logger = logging.getLogger(__name__)

# an explicit null leaves these unchanged; escalate_role may be cleared
_NOT_NULL_FIELDS = frozenset({"sla_hours", "notify_roles", "active"})


def _snapshot(config: SLAConfig) -> dict:
    return {
        "module": config.module,
        "entity": config.entity,
        "sla_hours": config.sla_hours,
        "escalate_role": config.escalate_role,
        "notify_roles": list(config.notify_roles or []),
        "active": config.active,
    }


def _deactivate_others(db: Session, config: SLAConfig) -> None:
    others = db.execute(
        select(SLAConfig).where(
            SLAConfig.module == config.module,
            SLAConfig.entity == config.entity,
            SLAConfig.active.is_(True),
            SLAConfig.id != config.id,
        )
    ).scalars().all()
    for other in others:
        other.active = False
        logger.info("Deactivated SLA config %s superseded by %s", other.id, config.id)


def get_sla_config(db: Session, config_id: uuid.UUID) -> SLAConfig:
    config = db.get(SLAConfig, config_id)
    if config is None:
        raise NotFound(f"SLA config {config_id} not found.")
    return config


def list_sla_configs(db: Session, include_inactive: bool = False) -> list[SLAConfig]:
    stmt = select(SLAConfig).order_by(SLAConfig.module, SLAConfig.entity)
    if not include_inactive:
        stmt = stmt.where(SLAConfig.active.is_(True))
    return list(db.execute(stmt).scalars().all())


def find_active_sla_config(db: Session, module: Module | str, entity: str) -> SLAConfig | None:
    return db.execute(
        select(SLAConfig).where(
            SLAConfig.module == Module(module),
            SLAConfig.entity == entity,
            SLAConfig.active.is_(True),
        )
    ).scalars().first()


def create_sla_config(db: Session, data, actor=None) -> SLAConfig:
    config = SLAConfig(
        module=data.module,
        entity=data.entity,
        sla_hours=data.sla_hours,
        escalate_role=data.escalate_role,
        notify_roles=[r.value for r in data.notify_roles],
        active=data.active,
    )
    db.add(config)
    db.flush()
    if config.active:
        _deactivate_others(db, config)

    audit_svc.log(
        db=db,
        action="sla_config.created",
        entity_type="sla_config",
        entity_id=config.id,
        actor_id=getattr(actor, "id", None),
        actor_name=getattr(actor, "name", None),
        after=_snapshot(config),
    )
    db.commit()
    logger.info("SLA config created: %s %s/%s (%sh)", config.id, config.module, config.entity, config.sla_hours)
    return config


def update_sla_config(db: Session, config_id: uuid.UUID, data, actor=None) -> SLAConfig:
    config = get_sla_config(db, config_id)
    before = _snapshot(config)

    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field in _NOT_NULL_FIELDS:
            continue
        if field == "notify_roles" and value is not None:
            value = [getattr(r, "value", r) for r in value]
        setattr(config, field, value)
    db.flush()
    if config.active:
        _deactivate_others(db, config)

    audit_svc.log(
        db=db,
        action="sla_config.updated",
        entity_type="sla_config",
        entity_id=config.id,
        actor_id=getattr(actor, "id", None),
        actor_name=getattr(actor, "name", None),
        before=before,
        after=_snapshot(config),
    )
    db.commit()
    return config


def delete_sla_config(db: Session, config_id: uuid.UUID, actor=None) -> None:
    """Soft delete: the config is deactivated, never removed."""
    config = get_sla_config(db, config_id)
    before = _snapshot(config)
    config.active = False
    audit_svc.log(
        db=db,
        action="sla_config.deactivated",
        entity_type="sla_config",
        entity_id=config.id,
        actor_id=getattr(actor, "id", None),
        actor_name=getattr(actor, "name", None),
        before=before,
        after=_snapshot(config),
    )
    db.commit()


def sla_metrics(db: Session, config_id: uuid.UUID, now: datetime | None = None) -> dict:
    """Aggregate SLA performance for the config's module/entity pair."""
    config = get_sla_config(db, config_id)
    now = now or datetime.now(timezone.utc)

    requests = db.execute(
        select(ApprovalRequest).where(
            ApprovalRequest.module == config.module,
            ApprovalRequest.entity_type == config.entity,
        )
    ).scalars().all()

    stats = {
        "pending": 0,
        "overdue": 0,
        "approaching": 0,
        "escalated": 0,
        "approved": 0,
        "rejected": 0,
    }
    on_time = 0
    turnaround_hours: list[float] = []

    for req in requests:
        if req.escalated_levels:
            stats["escalated"] += 1
        if req.status == ApprovalStatus.Pending:
            stats["pending"] += 1
            if sla_svc.is_overdue(req, now):
                stats["overdue"] += 1
            elif sla_svc.is_approaching(req, now):
                stats["approaching"] += 1
            continue

        if req.status == ApprovalStatus.Approved:
            stats["approved"] += 1
            if req.due_at is None or sla_svc.as_utc(req.approved_at) <= sla_svc.as_utc(req.due_at):
                on_time += 1
        else:
            stats["rejected"] += 1

        if req.approved_at is not None:
            elapsed = sla_svc.as_utc(req.approved_at) - sla_svc.as_utc(req.created_at)
            turnaround_hours.append(elapsed.total_seconds() / 3600)

    return {
        "sla_config_id": config.id,
        "module": config.module,
        "entity": config.entity,
        **stats,
        "on_time_rate": round(on_time / stats["approved"], 4) if stats["approved"] else None,
        "avg_turnaround_hours": (
            round(sum(turnaround_hours) / len(turnaround_hours), 2) if turnaround_hours else None
        ),
    }
