"""Governed document status and lock endpoints."""
import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from erp_workflow.core.deps import get_current_actor
from erp_workflow.core.identity import Actor
from erp_workflow.db.session import get_session
from erp_workflow.models.document import GovernedDocument
from erp_workflow.schemas.document import DocumentLockOut, DocumentUpdate
from erp_workflow.services import lock_policy
from erp_workflow.services.documents import SqlDocumentStateProvider

logger = logging.getLogger(__name__)

router = APIRouter()


def _lock_out(document: GovernedDocument) -> DocumentLockOut:
    return DocumentLockOut(
        entity_type=document.entity_type,
        entity_id=document.entity_id,
        status=document.status,
        locked=lock_policy.is_locked(document.status),
        can_edit=lock_policy.can_edit(document.status),
    )


@router.get(
    "/{entity_type}/{entity_id}/lock",
    response_model=DocumentLockOut,
    summary="Current status and whether the document may still be edited",
)
def get_document_lock(
    entity_type: str,
    entity_id: str,
    db: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(get_current_actor)],
):
    return _lock_out(SqlDocumentStateProvider(db).get(entity_type, entity_id))


@router.patch(
    "/{entity_type}/{entity_id}",
    response_model=DocumentLockOut,
    summary="Correct an editable document (rejected with 409 once locked)",
)
def update_document(
    entity_type: str,
    entity_id: str,
    body: DocumentUpdate,
    db: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(get_current_actor)],
):
    document = SqlDocumentStateProvider(db).get(entity_type, entity_id)
    lock_policy.assert_editable(document.status)

    # an in-flight approval chain keeps the levels resolved at submission
    for field, value in body.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(document, field, value)
    db.commit()
    logger.info("Document %s/%s edited by %s", entity_type, entity_id, actor.id)
    return _lock_out(document)
