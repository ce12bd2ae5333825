from decimal import Decimal

from sqlalchemy import Numeric, String, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from erp_workflow.db.base import Base, TimestampMixin, UUIDMixin
from erp_workflow.models.enums import DocumentStatus, Module


class GovernedDocument(Base, UUIDMixin, TimestampMixin):
    """Lifecycle status of an ERP document governed by a workflow (PO, WO, MR, ...)."""

    __tablename__ = "governed_documents"
    __table_args__ = (UniqueConstraint("entity_type", "entity_id", name="uq_governed_documents_entity"),)

    module: Mapped[Module] = mapped_column(SAEnum(Module, native_enum=False, length=50), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_code: Mapped[str | None] = mapped_column(String(100), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=0)
    status: Mapped[DocumentStatus] = mapped_column(
        SAEnum(DocumentStatus, native_enum=False, length=20),
        nullable=False,
        default=DocumentStatus.Draft,
    )
