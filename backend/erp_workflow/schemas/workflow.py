"""Pydantic schemas for workflow definitions and their approval levels."""
import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import ConfigDict

from erp_workflow.models.enums import Module, Role
from erp_workflow.schemas.base import CamelModel


# ─── Approval level schemas ───

class ApprovalLevelIn(CamelModel):
    level: int
    role: Role
    threshold: Decimal | None = None
    escalate_to_role: Role | None = None
    escalate_after_hours: int | None = None
    sla_hours: int | None = None


class ApprovalLevelOut(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    level: int
    role: Role
    threshold: Decimal | None
    escalate_to_role: Role | None
    escalate_after_hours: int | None
    sla_hours: int | None


# ─── Workflow definition schemas ───

class WorkflowDefinitionIn(CamelModel):
    module: Module
    entity: str
    name: str
    sla_hours: int | None = None
    active: bool = True
    levels: list[ApprovalLevelIn] = []


class WorkflowDefinitionUpdate(CamelModel):
    module: Module | None = None
    entity: str | None = None
    name: str | None = None
    sla_hours: int | None = None
    active: bool | None = None
    levels: list[ApprovalLevelIn] | None = None  # replaces the whole ladder when given


class WorkflowDefinitionOut(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    module: Module
    entity: str
    name: str
    sla_hours: int | None
    active: bool
    levels: list[ApprovalLevelOut]
    created_by: str | None
    updated_by: str | None
    created_at: datetime
    updated_at: datetime


class WorkflowToggleIn(CamelModel):
    active: bool
