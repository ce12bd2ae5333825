"""Document lock policy: a pure function of document status.

Approved and Cancelled documents are read-only. Draft, Pending and Rejected
stay editable; editing a Pending document does not reset its approval chain.
Callers re-evaluate on every use, nothing is cached.
"""
from erp_workflow.core.exceptions import DocumentLocked
from erp_workflow.models.enums import DocumentStatus

LOCKED_STATUSES = frozenset({DocumentStatus.Approved, DocumentStatus.Cancelled})


def is_locked(status: DocumentStatus | str) -> bool:
    return DocumentStatus(status) in LOCKED_STATUSES


def can_edit(status: DocumentStatus | str) -> bool:
    return not is_locked(status)


def assert_editable(status: DocumentStatus | str) -> None:
    if is_locked(status):
        raise DocumentLocked(f"Document is {DocumentStatus(status).value} and can no longer be edited.")
