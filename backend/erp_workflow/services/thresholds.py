"""Threshold resolution: which approval levels apply to a document amount."""
import logging
from decimal import Decimal
from typing import Any, Sequence

from erp_workflow.core.exceptions import InvalidWorkflow
from erp_workflow.models.enums import Role

logger = logging.getLogger(__name__)


def validate_levels(levels: Sequence[Any]) -> list[str]:
    """Return every violated ladder rule (empty list when the ladder is valid).

    Rules:
      - level numbers are unique and contiguous from 1
      - every level names a known role
      - thresholds, where set, are non-negative and non-decreasing with level
    """
    violations: list[str] = []

    numbers = [lvl.level for lvl in levels]
    if len(set(numbers)) != len(numbers):
        dupes = sorted({n for n in numbers if numbers.count(n) > 1})
        violations.append(f"level numbers must be unique (duplicated: {dupes})")
    if sorted(numbers) != list(range(1, len(numbers) + 1)):
        violations.append(
            f"levels must be numbered contiguously from 1 (got {sorted(numbers)})"
        )

    for lvl in levels:
        role = getattr(lvl, "role", None)
        if not role:
            violations.append(f"level {lvl.level}: role is required")
            continue
        try:
            Role(role)
        except ValueError:
            violations.append(f"level {lvl.level}: unknown role '{role}'")

    last_threshold: Decimal | None = None
    last_level: int | None = None
    for lvl in sorted(levels, key=lambda x: x.level):
        if lvl.threshold is None:
            continue
        threshold = Decimal(str(lvl.threshold))
        if threshold < 0:
            violations.append(f"level {lvl.level}: threshold must not be negative")
        if last_threshold is not None and threshold < last_threshold:
            violations.append(
                f"level {lvl.level}: threshold {threshold} is lower than level "
                f"{last_level} threshold {last_threshold}"
            )
        last_threshold = threshold
        last_level = lvl.level

    return violations


def resolve_levels(definition, amount: Decimal | int | float) -> list:
    """Return the definition's levels that apply to ``amount``, in level order.

    A level applies when it has no threshold or ``amount >= threshold``.
    An empty result means the document needs no approval.

    Raises:
        InvalidWorkflow: definition inactive or its ladder breaks the rules above.
        ValueError: negative amount.
    """
    if not definition.active:
        raise InvalidWorkflow(f"Workflow '{definition.name}' is inactive")

    amount = Decimal(str(amount))
    if amount < 0:
        raise ValueError("Document amount must not be negative.")

    levels = sorted(definition.levels, key=lambda x: x.level)
    violations = validate_levels(levels)
    if violations:
        raise InvalidWorkflow(f"Workflow '{definition.name}' is malformed", violations)

    applicable = [
        lvl for lvl in levels
        if lvl.threshold is None or amount >= Decimal(str(lvl.threshold))
    ]
    logger.debug(
        "resolve_levels: workflow=%s amount=%s -> levels=%s",
        definition.id, amount, [lvl.level for lvl in applicable],
    )
    return applicable
