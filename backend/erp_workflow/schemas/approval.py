"""Pydantic schemas for approval workflow API endpoints."""
import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import ConfigDict, Field

from erp_workflow.models.enums import ApprovalStatus, DocumentStatus, HistoryAction, Module, Role
from erp_workflow.schemas.base import CamelModel


# ─── Approval request output ───

class ApprovalRequestOut(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    workflow_id: uuid.UUID
    module: Module
    entity_type: str
    entity_id: str
    entity_code: str | None
    amount: Decimal
    current_level: int
    total_levels: int
    status: ApprovalStatus
    required_role: Role
    version: int
    submitted_by: str
    submitted_by_name: str | None
    approved_by: str | None
    approved_by_name: str | None
    approved_at: datetime | None
    remarks: str | None
    due_at: datetime | None
    created_at: datetime
    updated_at: datetime

    # Derived by the SLA tracker at read time
    overdue: bool = False


class ApprovalHistoryOut(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    approval_id: uuid.UUID
    level: int
    actor_id: str
    actor_name: str
    action: HistoryAction
    remarks: str | None
    timestamp: datetime


# ─── Request bodies ───

class SubmitDocumentRequest(CamelModel):
    module: Module
    entity_type: str
    entity_id: str
    entity_code: str | None = None
    amount: Decimal = Field(ge=0)


class ResubmitDocumentRequest(CamelModel):
    entity_type: str
    entity_id: str
    amount: Decimal | None = Field(default=None, ge=0)  # corrected amount, if changed


class ApprovalDecisionRequest(CamelModel):
    remarks: str | None = None
    expected_version: int | None = None


class BulkApproveRequest(CamelModel):
    ids: list[uuid.UUID]
    remarks: str | None = None


# ─── Responses ───

class SubmitDocumentResponse(CamelModel):
    document_status: DocumentStatus
    auto_approved: bool
    request: ApprovalRequestOut | None = None


class BulkApproveItem(CamelModel):
    id: uuid.UUID
    ok: bool
    status: ApprovalStatus | None = None
    code: str | None = None
    detail: str | None = None


class BulkApproveResponse(CamelModel):
    items: list[BulkApproveItem]
    approved: int
    failed: int


class ApprovalListResponse(CamelModel):
    items: list[ApprovalRequestOut]
    total: int


class EscalationRunResponse(CamelModel):
    escalated: list[uuid.UUID]
    total: int
