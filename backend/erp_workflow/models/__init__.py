from erp_workflow.models.approval import ApprovalHistory, ApprovalRequest
from erp_workflow.models.audit import AuditLog
from erp_workflow.models.document import GovernedDocument
from erp_workflow.models.workflow import ApprovalLevel, SLAConfig, WorkflowDefinition

__all__ = [
    "ApprovalHistory",
    "ApprovalLevel",
    "ApprovalRequest",
    "AuditLog",
    "GovernedDocument",
    "SLAConfig",
    "WorkflowDefinition",
]
