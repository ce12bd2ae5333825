"""Workflow configuration store.

Holds workflow definitions (module + entity + ordered approval levels).
Writes are admin-only, validated, audited, and keep at most one active
definition per (module, entity). Lookups by (module, entity) go through a
process-local cache that every write clears before returning.
"""
import logging
import threading
import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from erp_workflow.core.exceptions import InvalidWorkflow, NotFound
from erp_workflow.models.enums import Module
from erp_workflow.models.workflow import ApprovalLevel, WorkflowDefinition
from erp_workflow.services import audit as audit_svc
from erp_workflow.services.thresholds import validate_levels

logger = logging.getLogger(__name__)

# (module, entity) -> id of the active definition
_active_cache: dict[tuple[str, str], uuid.UUID] = {}
_cache_lock = threading.Lock()


def invalidate_cache() -> None:
    with _cache_lock:
        _active_cache.clear()


def _validate(module, entity, name, sla_hours, levels) -> None:
    violations: list[str] = []
    try:
        Module(module)
    except ValueError:
        violations.append(f"unknown module '{module}'")
    if not entity or not str(entity).strip():
        violations.append("entity is required")
    if not name or not str(name).strip():
        violations.append("name is required")
    if sla_hours is not None and sla_hours <= 0:
        violations.append("slaHours must be positive")
    for lvl in levels:
        if getattr(lvl, "sla_hours", None) is not None and lvl.sla_hours <= 0:
            violations.append(f"level {lvl.level}: slaHours must be positive")
        if getattr(lvl, "escalate_after_hours", None) is not None and lvl.escalate_after_hours < 0:
            violations.append(f"level {lvl.level}: escalateAfterHours must not be negative")
    violations.extend(validate_levels(levels))
    if violations:
        raise InvalidWorkflow("Invalid workflow definition", violations)


def _build_levels(levels) -> list[ApprovalLevel]:
    return [
        ApprovalLevel(
            level=lvl.level,
            role=lvl.role,
            threshold=lvl.threshold,
            escalate_to_role=lvl.escalate_to_role,
            escalate_after_hours=lvl.escalate_after_hours,
            sla_hours=lvl.sla_hours,
        )
        for lvl in sorted(levels, key=lambda x: x.level)
    ]


def snapshot(definition: WorkflowDefinition) -> dict:
    return {
        "module": definition.module,
        "entity": definition.entity,
        "name": definition.name,
        "sla_hours": definition.sla_hours,
        "active": definition.active,
        "levels": [
            {
                "level": lvl.level,
                "role": lvl.role,
                "threshold": lvl.threshold,
                "escalate_to_role": lvl.escalate_to_role,
                "escalate_after_hours": lvl.escalate_after_hours,
                "sla_hours": lvl.sla_hours,
            }
            for lvl in definition.levels
        ],
    }


class WorkflowConfigStore:
    """Repository for workflow definitions, bound to one sync session."""

    def __init__(self, db: Session):
        self.db = db

    # ─── Reads ───

    def get(self, workflow_id: uuid.UUID) -> WorkflowDefinition:
        definition = self.db.get(WorkflowDefinition, workflow_id)
        if definition is None:
            raise NotFound(f"Workflow {workflow_id} not found.")
        return definition

    def list_all(self, module: Module | str | None = None, include_inactive: bool = False) -> list[WorkflowDefinition]:
        stmt = select(WorkflowDefinition).order_by(WorkflowDefinition.module, WorkflowDefinition.entity)
        if module is not None:
            stmt = stmt.where(WorkflowDefinition.module == Module(module))
        if not include_inactive:
            stmt = stmt.where(WorkflowDefinition.active.is_(True))
        return list(self.db.execute(stmt).scalars().all())

    def find_by_module_entity(self, module: Module | str, entity: str) -> WorkflowDefinition:
        """Return the single active definition for (module, entity)."""
        module = Module(module)
        key = (module.value, entity)

        with _cache_lock:
            cached_id = _active_cache.get(key)
        if cached_id is not None:
            definition = self.db.get(WorkflowDefinition, cached_id)
            # other processes may have edited the row; their writes only clear their own cache
            if (
                definition is not None
                and definition.active
                and definition.module == module
                and definition.entity == entity
            ):
                return definition
            with _cache_lock:
                _active_cache.pop(key, None)

        definition = self.db.execute(
            select(WorkflowDefinition)
            .where(
                WorkflowDefinition.module == module,
                WorkflowDefinition.entity == entity,
                WorkflowDefinition.active.is_(True),
            )
            .order_by(WorkflowDefinition.updated_at.desc())
        ).scalars().first()
        if definition is None:
            raise NotFound(f"No active workflow for {module.value}/{entity}.")

        with _cache_lock:
            _active_cache[key] = definition.id
        return definition

    # ─── Writes ───

    def create(self, data, actor=None) -> WorkflowDefinition:
        _validate(data.module, data.entity, data.name, data.sla_hours, data.levels)

        definition = WorkflowDefinition(
            module=data.module,
            entity=data.entity.strip(),
            name=data.name.strip(),
            sla_hours=data.sla_hours,
            active=data.active,
            created_by=getattr(actor, "id", None),
            levels=_build_levels(data.levels),
        )
        self.db.add(definition)
        self.db.flush()
        if definition.active:
            self._deactivate_others(definition)

        audit_svc.log(
            db=self.db,
            action="workflow.created",
            entity_type="workflow_definition",
            entity_id=definition.id,
            actor_id=getattr(actor, "id", None),
            actor_name=getattr(actor, "name", None),
            after=snapshot(definition),
        )
        self.db.commit()
        invalidate_cache()

        logger.info(
            "Workflow created: %s %s/%s levels=%d active=%s",
            definition.id, definition.module.value, definition.entity,
            len(definition.levels), definition.active,
        )
        return definition

    def update(self, workflow_id: uuid.UUID, data, actor=None) -> WorkflowDefinition:
        """Apply a partial update. ``levels``, when given, replaces the whole ladder.

        Pending approval requests keep the levels frozen at their submission.
        """
        definition = self.get(workflow_id)
        before = snapshot(definition)
        changes = data.model_dump(exclude_unset=True)
        new_levels = data.levels if "levels" in changes and data.levels is not None else None

        _validate(
            changes.get("module") or definition.module,
            changes.get("entity", definition.entity),
            changes.get("name", definition.name),
            changes.get("sla_hours", definition.sla_hours),
            new_levels if new_levels is not None else definition.levels,
        )

        for field in ("module", "entity", "name", "sla_hours", "active"):
            if field in changes and (changes[field] is not None or field == "sla_hours"):
                setattr(definition, field, changes[field])
        if new_levels is not None:
            definition.levels = _build_levels(new_levels)
        definition.updated_by = getattr(actor, "id", None)
        self.db.flush()
        if definition.active:
            self._deactivate_others(definition)

        audit_svc.log(
            db=self.db,
            action="workflow.updated",
            entity_type="workflow_definition",
            entity_id=definition.id,
            actor_id=getattr(actor, "id", None),
            actor_name=getattr(actor, "name", None),
            before=before,
            after=snapshot(definition),
        )
        self.db.commit()
        invalidate_cache()
        logger.info("Workflow updated: %s fields=%s", definition.id, sorted(changes))
        return definition

    def set_active(self, workflow_id: uuid.UUID, active: bool, actor=None) -> WorkflowDefinition:
        definition = self.get(workflow_id)
        if active:
            # a stored ladder may predate current rules
            _validate(definition.module, definition.entity, definition.name, definition.sla_hours, definition.levels)
        before_active = definition.active
        definition.active = active
        definition.updated_by = getattr(actor, "id", None)
        self.db.flush()
        if active:
            self._deactivate_others(definition)

        audit_svc.log(
            db=self.db,
            action="workflow.activated" if active else "workflow.deactivated",
            entity_type="workflow_definition",
            entity_id=definition.id,
            actor_id=getattr(actor, "id", None),
            actor_name=getattr(actor, "name", None),
            before={"active": before_active},
            after={"active": active},
        )
        self.db.commit()
        invalidate_cache()
        return definition

    def delete(self, workflow_id: uuid.UUID, actor=None) -> None:
        """Soft delete: kept for audit/history, excluded from resolution."""
        self.set_active(workflow_id, False, actor=actor)

    # ─── Internal ───

    def _deactivate_others(self, definition: WorkflowDefinition) -> None:
        others = self.db.execute(
            select(WorkflowDefinition).where(
                WorkflowDefinition.module == definition.module,
                WorkflowDefinition.entity == definition.entity,
                WorkflowDefinition.active.is_(True),
                WorkflowDefinition.id != definition.id,
            )
        ).scalars().all()
        for other in others:
            other.active = False
            logger.info(
                "Workflow %s deactivated: superseded by %s for %s/%s",
                other.id, definition.id, definition.module.value, definition.entity,
            )
