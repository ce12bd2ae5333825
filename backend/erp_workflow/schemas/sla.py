"""Pydantic schemas for SLA configuration and metrics."""
import uuid
from datetime import datetime

from pydantic import ConfigDict, Field

from erp_workflow.models.enums import Module, Role
from erp_workflow.schemas.base import CamelModel


class SLAConfigIn(CamelModel):
    module: Module
    entity: str
    sla_hours: int = Field(gt=0)
    escalate_role: Role | None = None
    notify_roles: list[Role] = []
    active: bool = True


class SLAConfigUpdate(CamelModel):
    sla_hours: int | None = Field(default=None, gt=0)
    escalate_role: Role | None = None
    notify_roles: list[Role] | None = None
    active: bool | None = None


class SLAConfigOut(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    module: Module
    entity: str
    sla_hours: int
    escalate_role: Role | None
    notify_roles: list[Role]
    active: bool
    created_at: datetime
    updated_at: datetime


class SLAMetricsOut(CamelModel):
    sla_config_id: uuid.UUID
    module: Module
    entity: str
    pending: int
    overdue: int
    approaching: int
    escalated: int
    approved: int
    rejected: int
    on_time_rate: float | None
    avg_turnaround_hours: float | None
