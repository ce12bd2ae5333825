"""Approval chain engine.

Drives a governed document through the approval levels resolved for it at
submission: Draft -> Pending -> Approved | Rejected.

All classes take a sync SQLAlchemy Session, so the same code runs in API
handlers and Celery tasks. Every mutation of an approval request is a
compare-and-set on (id, version, status, current_level); losing that race
raises ConcurrentModification instead of double-advancing the chain.
"""
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from erp_workflow.core.exceptions import (
    AlreadySubmitted,
    ConcurrentModification,
    InvalidState,
    NotAuthorized,
    NotFound,
    RemarksRequired,
    WorkflowError,
)
from erp_workflow.core.identity import SYSTEM_ACTOR, Actor
from erp_workflow.models.approval import ApprovalHistory, ApprovalRequest
from erp_workflow.models.enums import ApprovalStatus, DocumentStatus, HistoryAction, Module, Role
from erp_workflow.services import sla as sla_svc
from erp_workflow.services.documents import DocumentStateProvider, SqlDocumentStateProvider
from erp_workflow.services.sla_config import find_active_sla_config
from erp_workflow.services.thresholds import resolve_levels
from erp_workflow.services.workflow_config import WorkflowConfigStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SubmitResult:
    document_status: DocumentStatus
    request: ApprovalRequest | None = None

    @property
    def auto_approved(self) -> bool:
        return self.request is None and self.document_status == DocumentStatus.Approved


# ─── Repository ───

class ApprovalRequestStore:
    """Persistence for approval requests and their append-only history."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, request_id: uuid.UUID) -> ApprovalRequest:
        request = self.db.get(ApprovalRequest, request_id)
        if request is None:
            raise NotFound(f"Approval request {request_id} not found.")
        return request

    def add(self, request: ApprovalRequest) -> ApprovalRequest:
        self.db.add(request)
        self.db.flush()
        return request

    def compare_and_set(self, request: ApprovalRequest, values: dict) -> ApprovalRequest:
        """Write ``values`` only if the stored row still matches what we read."""
        result = self.db.execute(
            update(ApprovalRequest)
            .where(
                ApprovalRequest.id == request.id,
                ApprovalRequest.version == request.version,
                ApprovalRequest.status == ApprovalStatus.Pending,
                ApprovalRequest.current_level == request.current_level,
            )
            .values(version=request.version + 1, updated_at=_utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConcurrentModification(
                f"Approval request {request.id} was modified concurrently "
                f"(expected version {request.version}). Reload and retry."
            )
        self.db.refresh(request)
        return request

    def append_history(
        self,
        request: ApprovalRequest,
        level: int,
        actor: Actor,
        action: HistoryAction,
        remarks: str | None,
        at: datetime,
    ) -> ApprovalHistory:
        seq = self.db.execute(
            select(func.count(ApprovalHistory.id)).where(ApprovalHistory.approval_id == request.id)
        ).scalar_one()
        entry = ApprovalHistory(
            approval_id=request.id,
            level=level,
            actor_id=actor.id,
            actor_name=actor.name,
            action=action,
            remarks=remarks,
            timestamp=at,
            seq=seq + 1,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def history(self, request_id: uuid.UUID) -> list[ApprovalHistory]:
        self.get(request_id)
        stmt = (
            select(ApprovalHistory)
            .where(ApprovalHistory.approval_id == request_id)
            .order_by(ApprovalHistory.seq.asc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_requests(
        self,
        status: ApprovalStatus | None = None,
        entity_type: str | None = None,
        module: Module | None = None,
    ) -> list[ApprovalRequest]:
        stmt = select(ApprovalRequest).order_by(ApprovalRequest.created_at.desc())
        if status is not None:
            stmt = stmt.where(ApprovalRequest.status == status)
        if entity_type is not None:
            stmt = stmt.where(ApprovalRequest.entity_type == entity_type)
        if module is not None:
            stmt = stmt.where(ApprovalRequest.module == module)
        return list(self.db.execute(stmt).scalars().all())

    def list_pending(self) -> list[ApprovalRequest]:
        stmt = (
            select(ApprovalRequest)
            .where(ApprovalRequest.status == ApprovalStatus.Pending)
            .order_by(ApprovalRequest.due_at.asc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_pending_for_role(self, role: Role) -> list[ApprovalRequest]:
        stmt = (
            select(ApprovalRequest)
            .where(
                ApprovalRequest.status == ApprovalStatus.Pending,
                ApprovalRequest.required_role == role,
            )
            .order_by(ApprovalRequest.due_at.asc())
        )
        return list(self.db.execute(stmt).scalars().all())


# ─── Engine ───

class ApprovalChainEngine:
    def __init__(
        self,
        db: Session,
        documents: DocumentStateProvider | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.db = db
        self.requests = ApprovalRequestStore(db)
        self.workflows = WorkflowConfigStore(db)
        self.documents = documents or SqlDocumentStateProvider(db)
        self.clock = clock

    # ─── Submit ───

    def submit(
        self,
        module: Module | str,
        entity_type: str,
        entity_id: str,
        amount: Decimal | int | float,
        actor: Actor,
        entity_code: str | None = None,
    ) -> SubmitResult:
        """Start the approval chain for a Draft document.

        Levels are resolved once, here, and frozen onto the request. When no
        level applies the document is approved immediately and no request is
        created.

        Raises:
            AlreadySubmitted: the document is not in Draft.
            NotFound: no active workflow governs (module, entity_type).
            InvalidWorkflow: the governing workflow is malformed.
        """
        module = Module(module)
        amount = Decimal(str(amount))

        existing = self.documents.find(entity_type, entity_id)
        if existing is not None and existing.status != DocumentStatus.Draft:
            raise AlreadySubmitted(
                f"Document {entity_code or existing.entity_code or entity_id} has already been "
                f"submitted (status={DocumentStatus(existing.status).value})."
            )

        definition = self.workflows.find_by_module_entity(module, entity_type)
        sla_config = find_active_sla_config(self.db, module, entity_type)
        levels = resolve_levels(definition, amount)
        now = self.clock()

        document = self.documents.register(module, entity_type, entity_id, entity_code, amount)
        document.amount = amount
        if entity_code:
            document.entity_code = entity_code

        if not levels:
            self.documents.set_status(entity_type, entity_id, DocumentStatus.Approved)
            self.db.commit()
            logger.info(
                "Auto-approved %s/%s amount=%s: no level of workflow %s applies",
                entity_type, entity_id, amount, definition.id,
            )
            return SubmitResult(document_status=DocumentStatus.Approved)

        frozen = [self._freeze_level(definition, lvl, sla_config) for lvl in levels]
        first = frozen[0]

        request = self.requests.add(
            ApprovalRequest(
                workflow_id=definition.id,
                module=module,
                entity_type=entity_type,
                entity_id=entity_id,
                entity_code=entity_code or document.entity_code,
                amount=amount,
                current_level=1,
                status=ApprovalStatus.Pending,
                required_role=Role(first["role"]),
                resolved_levels=frozen,
                escalated_levels=[],
                version=1,
                submitted_by=actor.id,
                submitted_by_name=actor.name,
                level_entered_at=now,
                due_at=sla_svc.due_after(now, first["sla_hours"]),
                created_at=now,
                updated_at=now,
            )
        )
        self.requests.append_history(request, 1, actor, HistoryAction.Submitted, None, now)
        self.documents.set_status(entity_type, entity_id, DocumentStatus.Pending)
        self.db.commit()

        logger.info(
            "Submitted %s/%s amount=%s: request=%s levels=%s first_role=%s due_at=%s",
            entity_type, entity_id, amount, request.id,
            [lvl["level"] for lvl in frozen], first["role"], request.due_at,
        )
        return SubmitResult(document_status=DocumentStatus.Pending, request=request)

    def resubmit(
        self,
        entity_type: str,
        entity_id: str,
        actor: Actor,
        amount: Decimal | int | float | None = None,
    ) -> SubmitResult:
        """Send a Rejected document back through a NEW approval request."""
        document = self.documents.get(entity_type, entity_id)
        if document.status != DocumentStatus.Rejected:
            raise InvalidState(
                f"Only rejected documents can be resubmitted "
                f"(status={DocumentStatus(document.status).value})."
            )
        self.documents.set_status(entity_type, entity_id, DocumentStatus.Draft)
        return self.submit(
            module=document.module,
            entity_type=entity_type,
            entity_id=entity_id,
            amount=document.amount if amount is None else amount,
            actor=actor,
            entity_code=document.entity_code,
        )

    # ─── Decisions ───

    def approve(
        self,
        request_id: uuid.UUID,
        actor: Actor,
        remarks: str | None = None,
        expected_version: int | None = None,
    ) -> ApprovalRequest:
        """Approve the current level; the last level approves the document."""
        request = self._load_actionable(request_id, expected_version)
        self._authorize(request, actor)

        now = self.clock()
        level = request.current_level

        if level >= request.total_levels:
            self.requests.compare_and_set(request, {
                "status": ApprovalStatus.Approved,
                "approved_by": actor.id,
                "approved_by_name": actor.name,
                "approved_at": now,
                "remarks": remarks,
            })
            self.requests.append_history(request, level, actor, HistoryAction.Approved, remarks, now)
            self.documents.set_status(request.entity_type, request.entity_id, DocumentStatus.Approved)
        else:
            nxt = request.level_snapshot(level + 1)
            self.requests.compare_and_set(request, {
                "current_level": level + 1,
                "required_role": Role(nxt["role"]),
                "level_entered_at": now,
                "due_at": sla_svc.due_after(now, nxt["sla_hours"]),
                "remarks": remarks,
            })
            self.requests.append_history(request, level, actor, HistoryAction.Approved, remarks, now)

        self.db.commit()
        logger.info(
            "Approval decision: request=%s action=approve level=%s/%s actor=%s status=%s",
            request.id, level, request.total_levels, actor.id, request.status,
        )
        return request

    def reject(
        self,
        request_id: uuid.UUID,
        actor: Actor,
        remarks: str | None,
        expected_version: int | None = None,
    ) -> ApprovalRequest:
        """Reject at any level; terminal, remaining levels are never consulted."""
        request = self._load_actionable(request_id, expected_version)
        self._authorize(request, actor)
        if not remarks or not remarks.strip():
            raise RemarksRequired("A reason is required to reject a request.")

        now = self.clock()
        level = request.current_level
        self.requests.compare_and_set(request, {
            "status": ApprovalStatus.Rejected,
            "approved_by": actor.id,
            "approved_by_name": actor.name,
            "approved_at": now,
            "remarks": remarks,
        })
        self.requests.append_history(request, level, actor, HistoryAction.Rejected, remarks, now)
        self.documents.set_status(request.entity_type, request.entity_id, DocumentStatus.Rejected)
        self.db.commit()

        logger.info(
            "Approval decision: request=%s action=reject level=%s/%s actor=%s",
            request.id, level, request.total_levels, actor.id,
        )
        return request

    def bulk_approve(self, request_ids: list[uuid.UUID], actor: Actor, remarks: str | None = None) -> list[dict]:
        """Approve each request independently; one failure never aborts the rest."""
        results: list[dict] = []
        for request_id in request_ids:
            try:
                request = self.approve(request_id, actor, remarks=remarks)
            except WorkflowError as exc:
                self.db.rollback()
                logger.warning("Bulk approve: request=%s failed: %s", request_id, exc)
                results.append({"id": request_id, "ok": False, "code": exc.code, "detail": str(exc)})
            else:
                results.append({"id": request_id, "ok": True, "status": request.status})
        return results

    # ─── Escalation ───

    def escalate(self, request_id: uuid.UUID, now: datetime | None = None) -> ApprovalRequest:
        """Hand the current level to its escalation role.

        Idempotent per level: a level already escalated is left untouched.
        A level without an escalation target is left untouched too.
        """
        request = self._load_actionable(request_id, None)
        level = request.current_level

        if level in (request.escalated_levels or []):
            logger.debug("escalate: request=%s level=%s already escalated", request.id, level)
            return request

        target = request.level_snapshot().get("escalate_to_role")
        if not target:
            logger.warning("escalate: request=%s level=%s has no escalation target", request.id, level)
            return request

        now = now or self.clock()
        previous_role = request.required_role
        self.requests.compare_and_set(request, {
            "required_role": Role(target),
            "escalated_levels": list(request.escalated_levels or []) + [level],
        })
        self.requests.append_history(
            request, level, SYSTEM_ACTOR, HistoryAction.Escalated,
            f"SLA breached; reassigned from {Role(previous_role).value} to {target}", now,
        )
        self.db.commit()
        logger.info(
            "Escalated request=%s level=%s from %s to %s",
            request.id, level, Role(previous_role).value, target,
        )
        return request

    def escalate_overdue(self, now: datetime | None = None) -> list[uuid.UUID]:
        """Periodic driver body: escalate every overdue level exactly once."""
        now = now or self.clock()
        escalated: list[uuid.UUID] = []
        for request in self.requests.list_pending():
            if not sla_svc.escalation_due(request, now):
                continue
            try:
                self.escalate(request.id, now=now)
            except (ConcurrentModification, InvalidState) as exc:
                # acted on by someone else between list and escalate
                self.db.rollback()
                logger.warning("escalate_overdue: skipped request=%s: %s", request.id, exc)
                continue
            escalated.append(request.id)
        return escalated

    # ─── Queries ───

    def get_request(self, request_id: uuid.UUID) -> ApprovalRequest:
        return self.requests.get(request_id)

    def list_requests(self, status=None, entity_type=None, module=None) -> list[ApprovalRequest]:
        return self.requests.list_requests(status=status, entity_type=entity_type, module=module)

    def list_pending_for_role(self, role: Role | str) -> list[ApprovalRequest]:
        return self.requests.list_pending_for_role(Role(role))

    def get_history(self, request_id: uuid.UUID) -> list[ApprovalHistory]:
        return self.requests.history(request_id)

    # ─── Internal ───

    def _load_actionable(self, request_id: uuid.UUID, expected_version: int | None) -> ApprovalRequest:
        request = self.requests.get(request_id)
        if request.status != ApprovalStatus.Pending:
            raise InvalidState(
                f"Approval request {request_id} is already decided "
                f"(status={ApprovalStatus(request.status).value})."
            )
        if expected_version is not None and expected_version != request.version:
            raise ConcurrentModification(
                f"Approval request {request_id} is at version {request.version}, "
                f"not {expected_version}. Reload and retry."
            )
        return request

    @staticmethod
    def _authorize(request: ApprovalRequest, actor: Actor) -> None:
        if Role(actor.role) != Role(request.required_role):
            raise NotAuthorized(
                f"You are not authorized to act on this request at level "
                f"{request.current_level}; role {Role(request.required_role).value} is required."
            )

    @staticmethod
    def _freeze_level(definition, level, sla_config) -> dict:
        target = sla_svc.escalation_target(definition, level, sla_config)
        return {
            "level": level.level,
            "role": Role(level.role).value,
            "threshold": str(level.threshold) if level.threshold is not None else None,
            "escalate_to_role": target.value if target else None,
            "escalate_after_hours": level.escalate_after_hours,
            "sla_hours": sla_svc.effective_sla_hours(definition, level, sla_config),
        }
