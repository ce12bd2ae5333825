from decimal import Decimal

from pydantic import Field

from erp_workflow.models.enums import DocumentStatus
from erp_workflow.schemas.base import CamelModel


class DocumentLockOut(CamelModel):
    entity_type: str
    entity_id: str
    status: DocumentStatus
    locked: bool
    can_edit: bool


class DocumentUpdate(CamelModel):
    entity_code: str | None = None
    amount: Decimal | None = Field(default=None, ge=0)
