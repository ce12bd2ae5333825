"""Document-state provider: lifecycle status of governed ERP documents.

The approval engine talks to ``DocumentStateProvider``; the SQL-backed
provider below keeps document state in ``governed_documents`` and registers a
document the first time it is submitted.
"""
import logging
from decimal import Decimal
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from erp_workflow.core.exceptions import NotFound
from erp_workflow.models.document import GovernedDocument
from erp_workflow.models.enums import DocumentStatus, Module

logger = logging.getLogger(__name__)


class DocumentStateProvider(Protocol):
    """What the approval engine needs from the ERP's document store."""

    def find(self, entity_type: str, entity_id: str) -> GovernedDocument | None: ...

    def get(self, entity_type: str, entity_id: str) -> GovernedDocument: ...

    def register(
        self,
        module: Module,
        entity_type: str,
        entity_id: str,
        entity_code: str | None,
        amount: Decimal,
    ) -> GovernedDocument: ...

    def get_status(self, entity_type: str, entity_id: str) -> DocumentStatus: ...

    def set_status(self, entity_type: str, entity_id: str, status: DocumentStatus) -> None: ...


class SqlDocumentStateProvider:
    def __init__(self, db: Session):
        self.db = db

    def find(self, entity_type: str, entity_id: str) -> GovernedDocument | None:
        return self.db.execute(
            select(GovernedDocument).where(
                GovernedDocument.entity_type == entity_type,
                GovernedDocument.entity_id == entity_id,
            )
        ).scalars().first()

    def get(self, entity_type: str, entity_id: str) -> GovernedDocument:
        document = self.find(entity_type, entity_id)
        if document is None:
            raise NotFound(f"Document {entity_type}/{entity_id} not found.")
        return document

    def register(
        self,
        module: Module,
        entity_type: str,
        entity_id: str,
        entity_code: str | None,
        amount: Decimal,
    ) -> GovernedDocument:
        """Return the tracked document, creating it in Draft on first sight."""
        document = self.find(entity_type, entity_id)
        if document is None:
            document = GovernedDocument(
                module=module,
                entity_type=entity_type,
                entity_id=entity_id,
                entity_code=entity_code,
                amount=amount,
                status=DocumentStatus.Draft,
            )
            self.db.add(document)
            self.db.flush()
            logger.debug("Registered document %s/%s", entity_type, entity_id)
        return document

    def get_status(self, entity_type: str, entity_id: str) -> DocumentStatus:
        return DocumentStatus(self.get(entity_type, entity_id).status)

    def set_status(self, entity_type: str, entity_id: str, status: DocumentStatus) -> None:
        document = self.get(entity_type, entity_id)
        previous = document.status
        document.status = status
        self.db.flush()
        logger.info("Document %s/%s status: %s -> %s", entity_type, entity_id, previous, status)
