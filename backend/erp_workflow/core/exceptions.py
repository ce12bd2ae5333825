"""Typed workflow errors.

Services raise these; the API layer maps them to HTTP responses using the
``status_code`` and ``code`` carried on each class.
"""


class WorkflowError(ValueError):
    code = "workflow_error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidWorkflow(WorkflowError):
    """Malformed or inactive workflow definition."""

    code = "invalid_workflow"
    status_code = 422

    def __init__(self, message: str, violations: list[str] | None = None):
        self.violations = violations or []
        if self.violations:
            message = f"{message}: {'; '.join(self.violations)}"
        super().__init__(message)


class AlreadySubmitted(WorkflowError):
    code = "already_submitted"
    status_code = 409


class InvalidState(WorkflowError):
    code = "invalid_state"
    status_code = 409


class RemarksRequired(WorkflowError):
    code = "remarks_required"
    status_code = 422


class NotAuthorized(WorkflowError):
    code = "not_authorized"
    status_code = 403


class NotFound(WorkflowError):
    code = "not_found"
    status_code = 404


class ConcurrentModification(WorkflowError):
    """Lost the compare-and-set race on an approval request."""

    code = "concurrent_modification"
    status_code = 409


class DocumentLocked(WorkflowError):
    code = "document_locked"
    status_code = 409
