"""history_and_audit_append_only

Revision ID: 7b3e5d2c8a41
Revises: 4f2a9c1d7e30
Create Date: 2026-10-12 10:05:00.000000

Enforce append-only semantics on approval_history and audit_logs at the DB
level: UPDATE and DELETE are revoked, SELECT and INSERT remain granted.
"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '7b3e5d2c8a41'
down_revision: Union[str, None] = '4f2a9c1d7e30'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

APPEND_ONLY_TABLES = ("approval_history", "audit_logs")


def upgrade() -> None:
    for table in APPEND_ONLY_TABLES:
        op.execute(f"REVOKE UPDATE, DELETE ON {table} FROM PUBLIC;")
        op.execute(f"GRANT SELECT, INSERT ON {table} TO PUBLIC;")


def downgrade() -> None:
    # Restore full DML access (only for disaster-recovery; normally never run)
    for table in APPEND_ONLY_TABLES:
        op.execute(f"GRANT UPDATE, DELETE ON {table} TO PUBLIC;")
