from dataclasses import dataclass

from erp_workflow.models.enums import Role


@dataclass(frozen=True)
class Actor:
    """The acting user as supplied by the identity provider."""

    id: str
    name: str
    role: Role


SYSTEM_ACTOR = Actor(id="system", name="System", role=Role.Admin)
