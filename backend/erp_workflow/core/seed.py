"""Seed default workflow definitions into the database."""
import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from erp_workflow.core.identity import SYSTEM_ACTOR
from erp_workflow.models.enums import Module, Role
from erp_workflow.models.workflow import WorkflowDefinition
from erp_workflow.schemas.workflow import ApprovalLevelIn, WorkflowDefinitionIn
from erp_workflow.services.workflow_config import WorkflowConfigStore

logger = logging.getLogger(__name__)

DEFAULT_WORKFLOWS = [
    WorkflowDefinitionIn(
        module=Module.Purchase,
        entity="PO",
        name="Purchase Order Approval",
        sla_hours=24,
        levels=[
            ApprovalLevelIn(level=1, role=Role.PurchaseOfficer, threshold=Decimal("500000")),
            ApprovalLevelIn(level=2, role=Role.Approver, threshold=Decimal("5000000")),
        ],
    ),
    WorkflowDefinitionIn(
        module=Module.Contracts,
        entity="WO",
        name="Work Order Approval",
        sla_hours=48,
        levels=[
            ApprovalLevelIn(level=1, role=Role.ProjectManager, threshold=Decimal("1000000")),
            ApprovalLevelIn(level=2, role=Role.Approver),
        ],
    ),
]


def seed_workflows(db: Session) -> int:
    """Insert default workflows missing for their (module, entity). Returns count created."""
    store = WorkflowConfigStore(db)
    created = 0
    for data in DEFAULT_WORKFLOWS:
        existing = db.execute(
            select(WorkflowDefinition).where(
                WorkflowDefinition.module == data.module,
                WorkflowDefinition.entity == data.entity,
            )
        ).scalars().first()
        if existing is not None:
            logger.info("Workflow already exists: %s/%s, skipping", data.module.value, data.entity)
            continue
        store.create(data, actor=SYSTEM_ACTOR)
        created += 1
        logger.info("Seeded workflow: %s", data.name)
    return created


def run_seed() -> None:
    from erp_workflow.db.session import get_sessionmaker

    with get_sessionmaker()() as db:
        seed_workflows(db)
    logger.info("Seeding complete.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_seed()
