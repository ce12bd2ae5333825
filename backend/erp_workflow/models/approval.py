import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, JSON, Numeric, String, Text, Uuid
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp_workflow.db.base import Base, TimestampMixin, UUIDMixin
from erp_workflow.models.enums import ApprovalStatus, HistoryAction, Module, Role


class ApprovalRequest(Base, UUIDMixin, TimestampMixin):
    """One approval chain instance for a submitted document."""

    __tablename__ = "approval_requests"

    workflow_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("workflow_definitions.id"), nullable=False, index=True
    )
    module: Mapped[Module] = mapped_column(SAEnum(Module, native_enum=False, length=50), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    entity_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    entity_code: Mapped[str | None] = mapped_column(String(100), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=0)
    current_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[ApprovalStatus] = mapped_column(
        SAEnum(ApprovalStatus, native_enum=False, length=20),
        nullable=False,
        default=ApprovalStatus.Pending,
        index=True,
    )
    required_role: Mapped[Role] = mapped_column(
        SAEnum(Role, native_enum=False, length=50), nullable=False, index=True
    )  # replaced by the escalation role after an SLA breach
    resolved_levels: Mapped[list] = mapped_column(JSON, nullable=False, default=list)  # frozen at submit
    escalated_levels: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    submitted_by: Mapped[str] = mapped_column(String(100), nullable=False)
    submitted_by_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    approved_by_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    level_entered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    due_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)

    history: Mapped[list["ApprovalHistory"]] = relationship(
        "ApprovalHistory",
        back_populates="request",
        order_by="ApprovalHistory.seq",
    )

    @property
    def total_levels(self) -> int:
        return len(self.resolved_levels or [])

    def level_snapshot(self, position: int | None = None) -> dict:
        """Frozen level entry at the 1-based chain position (default: current)."""
        position = position or self.current_level
        return self.resolved_levels[position - 1]


class ApprovalHistory(Base, UUIDMixin):
    """Append-only audit trail entry for an approval request."""

    __tablename__ = "approval_history"

    approval_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("approval_requests.id"), nullable=False, index=True
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    actor_id: Mapped[str] = mapped_column(String(100), nullable=False)
    actor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    action: Mapped[HistoryAction] = mapped_column(
        SAEnum(HistoryAction, native_enum=False, length=20), nullable=False
    )
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # ordering within one request

    request: Mapped["ApprovalRequest"] = relationship("ApprovalRequest", back_populates="history")
