"""Approval workflow API endpoints.

  POST /approvals/submit                   start the chain for a Draft document
  POST /approvals/resubmit                 new chain for a Rejected document
  GET  /approvals                          list requests (filterable)
  GET  /approvals/inbox                    pending requests for the caller's role
  POST /approvals/bulk-approve
  POST /approvals/escalate-overdue         run the SLA escalation pass (Admin)
  GET  /approvals/{request_id}
  POST /approvals/{request_id}/approve
  POST /approvals/{request_id}/reject
  GET  /approvals/{request_id}/history
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from erp_workflow.core.deps import get_current_actor, require_role
from erp_workflow.core.identity import Actor
from erp_workflow.db.session import get_session
from erp_workflow.models.approval import ApprovalRequest
from erp_workflow.models.enums import ApprovalStatus, Module, Role
from erp_workflow.schemas.approval import (
    ApprovalDecisionRequest,
    ApprovalHistoryOut,
    ApprovalListResponse,
    ApprovalRequestOut,
    BulkApproveItem,
    BulkApproveRequest,
    BulkApproveResponse,
    EscalationRunResponse,
    ResubmitDocumentRequest,
    SubmitDocumentRequest,
    SubmitDocumentResponse,
)
from erp_workflow.services import sla as sla_svc
from erp_workflow.services.approval import ApprovalChainEngine, SubmitResult

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_out(request: ApprovalRequest, now: datetime | None = None) -> ApprovalRequestOut:
    out = ApprovalRequestOut.model_validate(request)
    out.overdue = sla_svc.is_overdue(request, now or datetime.now(timezone.utc))
    return out


def _submit_response(result: SubmitResult) -> SubmitDocumentResponse:
    return SubmitDocumentResponse(
        document_status=result.document_status,
        auto_approved=result.auto_approved,
        request=_to_out(result.request) if result.request is not None else None,
    )


# ─── Submission ───

@router.post(
    "/submit",
    response_model=SubmitDocumentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a Draft document for approval",
)
def submit_document(
    body: SubmitDocumentRequest,
    db: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(get_current_actor)],
):
    result = ApprovalChainEngine(db).submit(
        module=body.module,
        entity_type=body.entity_type,
        entity_id=body.entity_id,
        entity_code=body.entity_code,
        amount=body.amount,
        actor=actor,
    )
    return _submit_response(result)


@router.post(
    "/resubmit",
    response_model=SubmitDocumentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Resubmit a Rejected document through a new approval request",
)
def resubmit_document(
    body: ResubmitDocumentRequest,
    db: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(get_current_actor)],
):
    result = ApprovalChainEngine(db).resubmit(
        entity_type=body.entity_type,
        entity_id=body.entity_id,
        actor=actor,
        amount=body.amount,
    )
    return _submit_response(result)


# ─── Listing ───

@router.get("", response_model=ApprovalListResponse, summary="List approval requests")
def list_approvals(
    db: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(get_current_actor)],
    status_filter: ApprovalStatus | None = Query(default=None, alias="status"),
    entity_type: str | None = Query(default=None, alias="entityType"),
    module: Module | None = Query(default=None),
):
    now = datetime.now(timezone.utc)
    requests = ApprovalChainEngine(db).list_requests(
        status=status_filter, entity_type=entity_type, module=module
    )
    items = [_to_out(r, now) for r in requests]
    return ApprovalListResponse(items=items, total=len(items))


@router.get(
    "/inbox",
    response_model=ApprovalListResponse,
    summary="Pending approval requests awaiting the caller's role",
)
def approval_inbox(
    db: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(get_current_actor)],
):
    now = datetime.now(timezone.utc)
    items = [_to_out(r, now) for r in ApprovalChainEngine(db).list_pending_for_role(actor.role)]
    return ApprovalListResponse(items=items, total=len(items))


# ─── Bulk / system actions ───

@router.post(
    "/bulk-approve",
    response_model=BulkApproveResponse,
    summary="Approve several requests; each succeeds or fails independently",
)
def bulk_approve(
    body: BulkApproveRequest,
    db: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(get_current_actor)],
):
    results = ApprovalChainEngine(db).bulk_approve(body.ids, actor, remarks=body.remarks)
    items = [BulkApproveItem(**r) for r in results]
    approved = sum(1 for item in items if item.ok)
    return BulkApproveResponse(items=items, approved=approved, failed=len(items) - approved)


@router.post(
    "/escalate-overdue",
    response_model=EscalationRunResponse,
    summary="Escalate every overdue pending request once per level (Admin)",
)
def escalate_overdue(
    db: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(require_role(Role.Admin))],
):
    escalated = ApprovalChainEngine(db).escalate_overdue()
    logger.info("Manual escalation run by %s: %d escalated", actor.id, len(escalated))
    return EscalationRunResponse(escalated=escalated, total=len(escalated))


# ─── Single request ───

@router.get("/{request_id}", response_model=ApprovalRequestOut, summary="Get an approval request")
def get_approval(
    request_id: uuid.UUID,
    db: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(get_current_actor)],
):
    return _to_out(ApprovalChainEngine(db).get_request(request_id))


@router.post(
    "/{request_id}/approve",
    response_model=ApprovalRequestOut,
    summary="Approve the current level of a request",
)
def approve_request(
    request_id: uuid.UUID,
    body: ApprovalDecisionRequest,
    db: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(get_current_actor)],
):
    request = ApprovalChainEngine(db).approve(
        request_id, actor, remarks=body.remarks, expected_version=body.expected_version
    )
    return _to_out(request)


@router.post(
    "/{request_id}/reject",
    response_model=ApprovalRequestOut,
    summary="Reject a request (remarks required)",
)
def reject_request(
    request_id: uuid.UUID,
    body: ApprovalDecisionRequest,
    db: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(get_current_actor)],
):
    request = ApprovalChainEngine(db).reject(
        request_id, actor, remarks=body.remarks, expected_version=body.expected_version
    )
    return _to_out(request)


@router.get(
    "/{request_id}/history",
    response_model=list[ApprovalHistoryOut],
    summary="Ordered audit trail of a request",
)
def get_approval_history(
    request_id: uuid.UUID,
    db: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(get_current_actor)],
):
    return [ApprovalHistoryOut.model_validate(h) for h in ApprovalChainEngine(db).get_history(request_id)]
