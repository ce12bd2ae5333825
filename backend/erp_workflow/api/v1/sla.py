"""SLA configuration and metrics endpoints."""
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from erp_workflow.core.deps import get_current_actor, require_role
from erp_workflow.core.identity import Actor
from erp_workflow.db.session import get_session
from erp_workflow.models.enums import Role
from erp_workflow.schemas.sla import SLAConfigIn, SLAConfigOut, SLAConfigUpdate, SLAMetricsOut
from erp_workflow.services import sla_config as sla_config_svc

router = APIRouter()


@router.get("", response_model=list[SLAConfigOut], summary="List SLA configs")
def list_sla_configs(
    db: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(get_current_actor)],
    include_inactive: bool = Query(default=False),
):
    return [
        SLAConfigOut.model_validate(c)
        for c in sla_config_svc.list_sla_configs(db, include_inactive=include_inactive)
    ]


@router.post(
    "",
    response_model=SLAConfigOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create an SLA config (Admin)",
)
def create_sla_config(
    body: SLAConfigIn,
    db: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(require_role(Role.Admin))],
):
    return SLAConfigOut.model_validate(sla_config_svc.create_sla_config(db, body, actor=actor))


@router.get("/{config_id}", response_model=SLAConfigOut, summary="Get an SLA config")
def get_sla_config(
    config_id: uuid.UUID,
    db: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(get_current_actor)],
):
    return SLAConfigOut.model_validate(sla_config_svc.get_sla_config(db, config_id))


@router.put("/{config_id}", response_model=SLAConfigOut, summary="Update an SLA config (Admin)")
def update_sla_config(
    config_id: uuid.UUID,
    body: SLAConfigUpdate,
    db: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(require_role(Role.Admin))],
):
    return SLAConfigOut.model_validate(sla_config_svc.update_sla_config(db, config_id, body, actor=actor))


@router.delete(
    "/{config_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Soft-delete an SLA config (Admin)",
)
def delete_sla_config(
    config_id: uuid.UUID,
    db: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(require_role(Role.Admin))],
):
    sla_config_svc.delete_sla_config(db, config_id, actor=actor)


@router.get(
    "/{config_id}/metrics",
    response_model=SLAMetricsOut,
    summary="SLA performance for the config's module/entity",
)
def get_sla_metrics(
    config_id: uuid.UUID,
    db: Annotated[Session, Depends(get_session)],
    actor: Annotated[Actor, Depends(get_current_actor)],
):
    return SLAMetricsOut(**sla_config_svc.sla_metrics(db, config_id))
