"""Workflow configuration endpoints (writes are Admin only)."""
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from erp_workflow.core.deps import get_current_actor, require_role
from erp_workflow.core.identity import Actor
from erp_workflow.db.session import get_session
from erp_workflow.models.enums import Module, Role
from erp_workflow.schemas.workflow import (
    WorkflowDefinitionIn,
    WorkflowDefinitionOut,
    WorkflowDefinitionUpdate,
    WorkflowToggleIn,
)
from erp_workflow.services.workflow_config import WorkflowConfigStore

router = APIRouter()


@router.get(
    "",
    response_model=list[WorkflowDefinitionOut],
    summary="List workflow definitions",
)
def list_workflows(
    db: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(get_current_actor)],
    module: Module | None = Query(default=None),
    include_inactive: bool = Query(default=False),
):
    store = WorkflowConfigStore(db)
    return [
        WorkflowDefinitionOut.model_validate(d)
        for d in store.list_all(module=module, include_inactive=include_inactive)
    ]


@router.post(
    "",
    response_model=WorkflowDefinitionOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a workflow definition (Admin)",
)
def create_workflow(
    body: WorkflowDefinitionIn,
    db: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(require_role(Role.Admin))],
):
    definition = WorkflowConfigStore(db).create(body, actor=actor)
    return WorkflowDefinitionOut.model_validate(definition)


@router.get(
    "/{workflow_id}",
    response_model=WorkflowDefinitionOut,
    summary="Get a workflow definition",
)
def get_workflow(
    workflow_id: uuid.UUID,
    db: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(get_current_actor)],
):
    return WorkflowDefinitionOut.model_validate(WorkflowConfigStore(db).get(workflow_id))


@router.put(
    "/{workflow_id}",
    response_model=WorkflowDefinitionOut,
    summary="Update a workflow definition (Admin)",
)
def update_workflow(
    workflow_id: uuid.UUID,
    body: WorkflowDefinitionUpdate,
    db: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(require_role(Role.Admin))],
):
    definition = WorkflowConfigStore(db).update(workflow_id, body, actor=actor)
    return WorkflowDefinitionOut.model_validate(definition)


@router.patch(
    "/{workflow_id}/toggle",
    response_model=WorkflowDefinitionOut,
    summary="Activate or deactivate a workflow definition (Admin)",
)
def toggle_workflow(
    workflow_id: uuid.UUID,
    body: WorkflowToggleIn,
    db: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(require_role(Role.Admin))],
):
    definition = WorkflowConfigStore(db).set_active(workflow_id, body.active, actor=actor)
    return WorkflowDefinitionOut.model_validate(definition)


@router.delete(
    "/{workflow_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Soft-delete a workflow definition (Admin)",
)
def delete_workflow(
    workflow_id: uuid.UUID,
    db: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(require_role(Role.Admin))],
):
    WorkflowConfigStore(db).delete(workflow_id, actor=actor)
