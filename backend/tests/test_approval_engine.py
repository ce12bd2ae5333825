"""Approval chain engine tests.

Runs the full submit -> approve/reject -> escalate lifecycle against an
in-memory SQLite database with a controllable clock.
"""
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import update

from erp_workflow.core.exceptions import (
    AlreadySubmitted,
    ConcurrentModification,
    InvalidState,
    NotAuthorized,
    NotFound,
    RemarksRequired,
)
from erp_workflow.core.identity import Actor
from erp_workflow.models.approval import ApprovalRequest
from erp_workflow.models.enums import ApprovalStatus, DocumentStatus, HistoryAction, Module, Role
from erp_workflow.schemas.workflow import ApprovalLevelIn, WorkflowDefinitionIn, WorkflowDefinitionUpdate
from erp_workflow.services.approval import ApprovalChainEngine
from erp_workflow.services.documents import SqlDocumentStateProvider
from erp_workflow.services.lock_policy import is_locked
from erp_workflow.services.sla import as_utc
from erp_workflow.services.workflow_config import WorkflowConfigStore

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

OFFICER = Actor("u-po", "Priya Sharma", Role.PurchaseOfficer)
APPROVER = Actor("u-appr", "Rahul Mehta", Role.Approver)
MANAGER = Actor("u-pm", "Anita Rao", Role.ProjectManager)
ENGINEER = Actor("u-se", "Vikram Das", Role.SiteEngineer)
ADMIN = Actor("u-admin", "Ops Admin", Role.Admin)


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


# ─── Fixtures ─────────────────────────────────────────────────────────────────

@pytest.fixture
def clock():
    return Clock(T0)


@pytest.fixture
def engine(db, clock):
    return ApprovalChainEngine(db, clock=clock)


@pytest.fixture
def po_workflow(db):
    return WorkflowConfigStore(db).create(
        WorkflowDefinitionIn(
            module=Module.Purchase,
            entity="PO",
            name="Purchase Order Approval",
            sla_hours=24,
            levels=[
                ApprovalLevelIn(level=1, role=Role.PurchaseOfficer, threshold=Decimal("500000")),
                ApprovalLevelIn(level=2, role=Role.Approver, threshold=Decimal("5000000")),
            ],
        ),
        actor=ADMIN,
    )


@pytest.fixture
def wo_workflow(db):
    return WorkflowConfigStore(db).create(
        WorkflowDefinitionIn(
            module=Module.Contracts,
            entity="WO",
            name="Work Order Approval",
            sla_hours=48,
            levels=[
                ApprovalLevelIn(level=1, role=Role.SiteEngineer, sla_hours=8, escalate_to_role=Role.ProjectManager),
                ApprovalLevelIn(level=2, role=Role.Approver, threshold=Decimal("1000000")),
            ],
        ),
        actor=ADMIN,
    )


def _submit_po(engine, entity_id: str, amount, actor=OFFICER):
    return engine.submit(
        module=Module.Purchase,
        entity_type="PO",
        entity_id=entity_id,
        entity_code=f"PO-{entity_id}",
        amount=amount,
        actor=actor,
    )


def _doc_status(db, entity_type: str, entity_id: str) -> DocumentStatus:
    return SqlDocumentStateProvider(db).get_status(entity_type, entity_id)


# ─── Submission ───────────────────────────────────────────────────────────────

def test_amount_below_every_threshold_is_auto_approved(db, engine, po_workflow):
    result = _submit_po(engine, "1001", Decimal("448400"))

    assert result.auto_approved is True
    assert result.request is None
    assert _doc_status(db, "PO", "1001") == DocumentStatus.Approved
    assert is_locked(_doc_status(db, "PO", "1001"))
    assert engine.list_requests() == []


def test_mid_range_amount_needs_one_level(engine, po_workflow):
    result = _submit_po(engine, "1002", 4000000)

    request = result.request
    assert result.document_status == DocumentStatus.Pending
    assert request.total_levels == 1
    assert request.current_level == 1
    assert request.required_role == Role.PurchaseOfficer
    assert request.version == 1
    assert as_utc(request.due_at) == T0 + timedelta(hours=24)


def test_large_amount_needs_both_levels(engine, po_workflow):
    request = _submit_po(engine, "1003", 6000000).request
    assert [lvl["role"] for lvl in request.resolved_levels] == ["PurchaseOfficer", "Approver"]


def test_resubmitting_pending_document_is_rejected(engine, po_workflow):
    _submit_po(engine, "1004", 4000000)
    with pytest.raises(AlreadySubmitted):
        _submit_po(engine, "1004", 4000000)


def test_submit_without_workflow_leaves_no_document(db, engine):
    with pytest.raises(NotFound):
        engine.submit(Module.Inventory, "MR", "mr-1", 1000, ENGINEER)
    assert SqlDocumentStateProvider(db).find("MR", "mr-1") is None


class RecordingDocuments(SqlDocumentStateProvider):
    """Document store that records every status transition."""

    def __init__(self, db):
        super().__init__(db)
        self.transitions: list[tuple[str, DocumentStatus]] = []

    def set_status(self, entity_type, entity_id, status):
        self.transitions.append((entity_id, status))
        super().set_status(entity_type, entity_id, status)


def test_engine_drives_an_injected_document_store(db, clock, po_workflow):
    documents = RecordingDocuments(db)
    engine = ApprovalChainEngine(db, clock=clock, documents=documents)

    request = _submit_po(engine, "1005", 4000000).request
    engine.reject(request.id, OFFICER, remarks="Vendor not registered")

    assert documents.transitions == [
        ("1005", DocumentStatus.Pending),
        ("1005", DocumentStatus.Rejected),
    ]


# ─── Approval ─────────────────────────────────────────────────────────────────

def test_single_level_approval_approves_document(db, engine, clock, po_workflow):
    request = _submit_po(engine, "2001", 4000000).request
    clock.advance(hours=2)

    approved = engine.approve(request.id, OFFICER, remarks="Rates verified")

    assert approved.status == ApprovalStatus.Approved
    assert approved.approved_by == "u-po"
    assert as_utc(approved.approved_at) == T0 + timedelta(hours=2)
    assert approved.version == 2
    assert _doc_status(db, "PO", "2001") == DocumentStatus.Approved


def test_two_level_chain_advances_then_approves(db, engine, clock, po_workflow):
    request = _submit_po(engine, "2002", 6000000).request

    clock.advance(hours=3)
    advanced = engine.approve(request.id, OFFICER)
    assert advanced.status == ApprovalStatus.Pending
    assert advanced.current_level == 2
    assert advanced.required_role == Role.Approver
    assert as_utc(advanced.level_entered_at) == T0 + timedelta(hours=3)
    assert as_utc(advanced.due_at) == T0 + timedelta(hours=27)
    assert _doc_status(db, "PO", "2002") == DocumentStatus.Pending

    final = engine.approve(request.id, APPROVER, remarks="OK")
    assert final.status == ApprovalStatus.Approved
    assert final.approved_by_name == "Rahul Mehta"
    assert _doc_status(db, "PO", "2002") == DocumentStatus.Approved

    history = engine.get_history(request.id)
    assert [(h.action, h.level) for h in history] == [
        (HistoryAction.Submitted, 1),
        (HistoryAction.Approved, 1),
        (HistoryAction.Approved, 2),
    ]
    assert [h.seq for h in history] == [1, 2, 3]


def test_wrong_role_cannot_act(engine, po_workflow):
    request = _submit_po(engine, "2003", 6000000).request

    with pytest.raises(NotAuthorized):
        engine.approve(request.id, APPROVER)
    with pytest.raises(NotAuthorized):
        engine.approve(request.id, ADMIN)

    assert engine.get_request(request.id).version == 1


def test_decided_request_cannot_be_acted_on(engine, po_workflow):
    request = _submit_po(engine, "2004", 4000000).request
    engine.approve(request.id, OFFICER)

    with pytest.raises(InvalidState):
        engine.approve(request.id, OFFICER)
    with pytest.raises(InvalidState):
        engine.reject(request.id, OFFICER, remarks="too late")


def test_chain_terminates_after_total_levels_approvals(engine, po_workflow):
    request = _submit_po(engine, "2005", 6000000).request
    for actor in (OFFICER, APPROVER):
        engine.approve(request.id, actor)

    request = engine.get_request(request.id)
    assert request.status == ApprovalStatus.Approved
    assert request.current_level == request.total_levels


# ─── Rejection ────────────────────────────────────────────────────────────────

def test_rejection_short_circuits_remaining_levels(db, engine, po_workflow):
    request = _submit_po(engine, "3001", 6000000).request

    rejected = engine.reject(request.id, OFFICER, remarks="Vendor not on approved list")

    assert rejected.status == ApprovalStatus.Rejected
    assert rejected.current_level == 1
    assert rejected.remarks == "Vendor not on approved list"
    assert _doc_status(db, "PO", "3001") == DocumentStatus.Rejected
    with pytest.raises(InvalidState):
        engine.approve(request.id, APPROVER)
    assert engine.get_history(request.id)[-1].action == HistoryAction.Rejected


@pytest.mark.parametrize("remarks", [None, "", "   "])
def test_reject_requires_remarks(engine, po_workflow, remarks):
    request = _submit_po(engine, "3002", 4000000).request
    with pytest.raises(RemarksRequired):
        engine.reject(request.id, OFFICER, remarks=remarks)
    assert engine.get_request(request.id).status == ApprovalStatus.Pending


def test_resubmit_creates_a_new_request(db, engine, po_workflow):
    first = _submit_po(engine, "3003", 6000000).request
    engine.reject(first.id, OFFICER, remarks="Split into two orders")

    result = engine.resubmit("PO", "3003", OFFICER, amount=4000000)

    assert result.request.id != first.id
    assert result.request.total_levels == 1
    assert engine.get_request(first.id).status == ApprovalStatus.Rejected
    assert _doc_status(db, "PO", "3003") == DocumentStatus.Pending


def test_only_rejected_documents_can_be_resubmitted(engine, po_workflow):
    _submit_po(engine, "3004", 4000000)
    with pytest.raises(InvalidState):
        engine.resubmit("PO", "3004", OFFICER)


# ─── Concurrency ──────────────────────────────────────────────────────────────

def test_stale_version_loses_the_race(db, engine, po_workflow):
    request = _submit_po(engine, "4001", 6000000).request

    # another writer bumps the row behind this session's back
    db.execute(
        update(ApprovalRequest)
        .where(ApprovalRequest.id == request.id)
        .values(version=2)
        .execution_options(synchronize_session=False)
    )
    db.commit()

    with pytest.raises(ConcurrentModification):
        engine.approve(request.id, OFFICER)


def test_two_sessions_approving_same_level_only_one_wins(session_factory, clock, po_workflow, engine):
    request_id = _submit_po(engine, "4004", 6000000).request.id

    with session_factory() as first_db, session_factory() as second_db:
        first = ApprovalChainEngine(first_db, clock=clock)
        second = ApprovalChainEngine(second_db, clock=clock)
        # both load the request at version 1 before either decides
        assert first.get_request(request_id).version == 1
        assert second.get_request(request_id).version == 1

        assert first.approve(request_id, OFFICER).current_level == 2
        with pytest.raises(ConcurrentModification):
            second.approve(request_id, OFFICER)

    with session_factory() as check_db:
        stored = ApprovalChainEngine(check_db).get_request(request_id)
        assert stored.current_level == 2
        assert stored.version == 2
        approvals = [h for h in stored.history if h.action == HistoryAction.Approved]
        assert len(approvals) == 1


def test_expected_version_mismatch_is_rejected(engine, po_workflow):
    request = _submit_po(engine, "4002", 6000000).request
    with pytest.raises(ConcurrentModification):
        engine.approve(request.id, OFFICER, expected_version=7)

    assert engine.approve(request.id, OFFICER, expected_version=1).version == 2


def test_definition_edit_does_not_change_pending_request(db, engine, po_workflow):
    request = _submit_po(engine, "4003", 6000000).request
    WorkflowConfigStore(db).update(
        po_workflow.id,
        WorkflowDefinitionUpdate(levels=[ApprovalLevelIn(level=1, role=Role.ProjectManager)]),
        actor=ADMIN,
    )

    advanced = engine.approve(request.id, OFFICER)
    assert advanced.total_levels == 2
    assert advanced.required_role == Role.Approver


# ─── Escalation ───────────────────────────────────────────────────────────────

def _submit_wo(engine, entity_id: str, amount):
    return engine.submit(Module.Contracts, "WO", entity_id, amount, ENGINEER, entity_code=f"WO-{entity_id}")


def test_overdue_level_is_escalated_once(engine, clock, wo_workflow):
    request = _submit_wo(engine, "5001", 2000000).request
    assert as_utc(request.due_at) == T0 + timedelta(hours=8)

    clock.advance(hours=9)
    assert engine.escalate_overdue() == [request.id]

    escalated = engine.get_request(request.id)
    assert escalated.required_role == Role.ProjectManager
    assert escalated.escalated_levels == [1]
    last = engine.get_history(request.id)[-1]
    assert last.action == HistoryAction.Escalated
    assert last.actor_id == "system"

    clock.advance(hours=5)
    assert engine.escalate_overdue() == []
    version = engine.get_request(request.id).version
    engine.escalate(request.id)
    assert engine.get_request(request.id).version == version


def test_escalated_role_takes_over_the_level(engine, clock, wo_workflow):
    request = _submit_wo(engine, "5002", 2000000).request
    clock.advance(hours=9)
    engine.escalate_overdue()

    with pytest.raises(NotAuthorized):
        engine.approve(request.id, ENGINEER)

    advanced = engine.approve(request.id, MANAGER)
    assert advanced.current_level == 2
    assert advanced.required_role == Role.Approver
    assert engine.escalate_overdue() == []


def test_level_without_escalation_target_is_left_alone(engine, clock, po_workflow):
    request = _submit_po(engine, "5003", 4000000).request
    clock.advance(hours=100)

    assert engine.escalate_overdue() == []
    assert engine.escalate(request.id).required_role == Role.PurchaseOfficer


def test_decided_requests_are_not_escalated(engine, clock, wo_workflow):
    request = _submit_wo(engine, "5004", 50000).request
    engine.reject(request.id, ENGINEER, remarks="Duplicate")
    clock.advance(hours=30)

    assert engine.escalate_overdue() == []
    with pytest.raises(InvalidState):
        engine.escalate(request.id)


# ─── Bulk / queries ───────────────────────────────────────────────────────────

def test_bulk_approve_reports_each_item(engine, po_workflow):
    ok = _submit_po(engine, "6001", 4000000).request
    done = _submit_po(engine, "6002", 4000000).request
    engine.reject(done.id, OFFICER, remarks="Wrong vendor")
    missing = uuid.uuid4()

    results = engine.bulk_approve([ok.id, done.id, missing], OFFICER)

    assert [r["ok"] for r in results] == [True, False, False]
    assert results[0]["status"] == ApprovalStatus.Approved
    assert results[1]["code"] == "invalid_state"
    assert results[2]["code"] == "not_found"
    assert engine.get_request(ok.id).status == ApprovalStatus.Approved


def test_inbox_lists_pending_for_role_by_deadline(engine, clock, po_workflow):
    first = _submit_po(engine, "7001", 4000000).request
    clock.advance(hours=1)
    second = _submit_po(engine, "7002", 6000000).request
    clock.advance(hours=1)
    decided = _submit_po(engine, "7003", 4000000).request
    engine.approve(decided.id, OFFICER)

    inbox = engine.list_pending_for_role(Role.PurchaseOfficer)
    assert [r.id for r in inbox] == [first.id, second.id]
    assert engine.list_pending_for_role(Role.Approver) == []


def test_list_requests_filters(engine, po_workflow, wo_workflow):
    _submit_po(engine, "8001", 4000000)
    _submit_wo(engine, "8002", 50000)

    assert len(engine.list_requests()) == 2
    assert [r.entity_type for r in engine.list_requests(entity_type="WO")] == ["WO"]
    assert [r.module for r in engine.list_requests(module=Module.Purchase)] == [Module.Purchase]
    assert engine.list_requests(status=ApprovalStatus.Approved) == []


def test_history_of_unknown_request_raises_not_found(engine):
    with pytest.raises(NotFound):
        engine.get_history(uuid.uuid4())
