"""Workflow definition, approval level and SLA configuration models."""
import uuid
from decimal import Decimal

from sqlalchemy import Boolean, ForeignKey, Integer, Numeric, String, Uuid, JSON
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp_workflow.db.base import Base, TimestampMixin, UUIDMixin
from erp_workflow.models.enums import Module, Role


class WorkflowDefinition(Base, UUIDMixin, TimestampMixin):
    """A governed document class: module + entity type with ordered approval levels."""

    __tablename__ = "workflow_definitions"

    module: Mapped[Module] = mapped_column(
        SAEnum(Module, native_enum=False, length=50), nullable=False, index=True
    )
    entity: Mapped[str] = mapped_column(String(50), nullable=False, index=True)  # PO, WO, MR, Journal
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sla_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    levels: Mapped[list["ApprovalLevel"]] = relationship(
        "ApprovalLevel",
        back_populates="workflow",
        cascade="all, delete-orphan",
        order_by="ApprovalLevel.level",
        lazy="selectin",
    )


class ApprovalLevel(Base, UUIDMixin, TimestampMixin):
    """One rung of a workflow definition."""

    __tablename__ = "approval_levels"

    workflow_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("workflow_definitions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    role: Mapped[Role] = mapped_column(SAEnum(Role, native_enum=False, length=50), nullable=False)
    threshold: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    escalate_to_role: Mapped[Role | None] = mapped_column(
        SAEnum(Role, native_enum=False, length=50), nullable=True
    )
    escalate_after_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sla_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)  # level-specific override

    workflow: Mapped["WorkflowDefinition"] = relationship("WorkflowDefinition", back_populates="levels")


class SLAConfig(Base, UUIDMixin, TimestampMixin):
    """Optional per module/entity override of a workflow's SLA behaviour."""

    __tablename__ = "sla_configs"

    module: Mapped[Module] = mapped_column(
        SAEnum(Module, native_enum=False, length=50), nullable=False, index=True
    )
    entity: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    sla_hours: Mapped[int] = mapped_column(Integer, nullable=False)
    escalate_role: Mapped[Role | None] = mapped_column(
        SAEnum(Role, native_enum=False, length=50), nullable=True
    )
    notify_roles: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
