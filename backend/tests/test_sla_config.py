"""SLA configuration CRUD, its effect on submission, and SLA metrics."""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select

from erp_workflow.core.exceptions import NotFound
from erp_workflow.core.identity import Actor
from erp_workflow.models.audit import AuditLog
from erp_workflow.models.enums import Module, Role
from erp_workflow.schemas.sla import SLAConfigIn, SLAConfigUpdate
from erp_workflow.schemas.workflow import ApprovalLevelIn, WorkflowDefinitionIn
from erp_workflow.services import sla_config as sla_config_svc
from erp_workflow.services.approval import ApprovalChainEngine
from erp_workflow.services.sla import as_utc
from erp_workflow.services.workflow_config import WorkflowConfigStore

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
ADMIN = Actor("u-admin", "Ops Admin", Role.Admin)
OFFICER = Actor("u-po", "Priya Sharma", Role.PurchaseOfficer)


@pytest.fixture
def po_workflow(db):
    return WorkflowConfigStore(db).create(
        WorkflowDefinitionIn(
            module=Module.Purchase,
            entity="PO",
            name="Purchase Order Approval",
            sla_hours=24,
            levels=[ApprovalLevelIn(level=1, role=Role.PurchaseOfficer, threshold=Decimal("500000"))],
        ),
        actor=ADMIN,
    )


def _config_in(**overrides) -> SLAConfigIn:
    data = dict(module=Module.Purchase, entity="PO", sla_hours=6, escalate_role=Role.Admin)
    data.update(overrides)
    return SLAConfigIn(**data)


# ─── CRUD ─────────────────────────────────────────────────────────────────────

def test_create_keeps_one_active_config_per_pair(db):
    first = sla_config_svc.create_sla_config(db, _config_in(), actor=ADMIN)
    second = sla_config_svc.create_sla_config(db, _config_in(sla_hours=12), actor=ADMIN)

    db.refresh(first)
    assert first.active is False
    assert sla_config_svc.find_active_sla_config(db, Module.Purchase, "PO").id == second.id
    assert [c.id for c in sla_config_svc.list_sla_configs(db)] == [second.id]
    assert len(sla_config_svc.list_sla_configs(db, include_inactive=True)) == 2


def test_update_and_soft_delete_are_audited(db):
    config = sla_config_svc.create_sla_config(db, _config_in(), actor=ADMIN)
    sla_config_svc.update_sla_config(
        db, config.id, SLAConfigUpdate(sla_hours=10, notify_roles=[Role.ProjectManager]), actor=ADMIN
    )
    updated = sla_config_svc.get_sla_config(db, config.id)
    assert updated.sla_hours == 10
    assert updated.notify_roles == ["ProjectManager"]

    sla_config_svc.delete_sla_config(db, config.id, actor=ADMIN)
    assert sla_config_svc.get_sla_config(db, config.id).active is False
    assert sla_config_svc.find_active_sla_config(db, Module.Purchase, "PO") is None

    actions = set(db.execute(select(AuditLog.action).where(AuditLog.entity_id == config.id)).scalars())
    assert actions == {"sla_config.created", "sla_config.updated", "sla_config.deactivated"}


def test_unknown_config_raises_not_found(db):
    import uuid

    with pytest.raises(NotFound):
        sla_config_svc.get_sla_config(db, uuid.uuid4())


# ─── Effect on submission ─────────────────────────────────────────────────────

def test_active_config_sets_deadline_and_escalation_role(db, po_workflow):
    sla_config_svc.create_sla_config(db, _config_in(), actor=ADMIN)
    engine = ApprovalChainEngine(db, clock=lambda: T0)

    request = engine.submit(Module.Purchase, "PO", "9001", 4000000, OFFICER).request

    assert as_utc(request.due_at) == T0 + timedelta(hours=6)
    assert request.level_snapshot()["escalate_to_role"] == "Admin"

    assert engine.escalate_overdue(T0 + timedelta(hours=7)) == [request.id]
    assert engine.get_request(request.id).required_role == Role.Admin


# ─── Metrics ──────────────────────────────────────────────────────────────────

def test_metrics_summarise_requests_for_the_pair(db, po_workflow):
    config = sla_config_svc.create_sla_config(db, _config_in(sla_hours=10, escalate_role=None), actor=ADMIN)

    early = ApprovalChainEngine(db, clock=lambda: T0)
    on_time = early.submit(Module.Purchase, "PO", "m-1", 4000000, OFFICER).request
    late = early.submit(Module.Purchase, "PO", "m-2", 4000000, OFFICER).request
    rejected = early.submit(Module.Purchase, "PO", "m-3", 4000000, OFFICER).request
    overdue = early.submit(Module.Purchase, "PO", "m-4", 4000000, OFFICER).request

    ApprovalChainEngine(db, clock=lambda: T0 + timedelta(hours=2)).approve(on_time.id, OFFICER)
    ApprovalChainEngine(db, clock=lambda: T0 + timedelta(hours=12)).approve(late.id, OFFICER)
    ApprovalChainEngine(db, clock=lambda: T0 + timedelta(hours=4)).reject(rejected.id, OFFICER, remarks="No budget")

    later = ApprovalChainEngine(db, clock=lambda: T0 + timedelta(hours=8))
    approaching = later.submit(Module.Purchase, "PO", "m-5", 4000000, OFFICER).request

    metrics = sla_config_svc.sla_metrics(db, config.id, now=T0 + timedelta(hours=15))

    assert metrics["pending"] == 2
    assert metrics["overdue"] == 1
    assert metrics["approaching"] == 1
    assert metrics["approved"] == 2
    assert metrics["rejected"] == 1
    assert metrics["escalated"] == 0
    assert metrics["on_time_rate"] == 0.5
    assert metrics["avg_turnaround_hours"] == 6.0
    assert overdue.id != approaching.id
