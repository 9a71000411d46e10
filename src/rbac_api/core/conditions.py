"""Grant condition parsing and evaluation.

A condition restricts a grant to requests whose context matches a single
clause. ``field`` is a dotted path into the context mapping
(``"order.table_id"``); a path that does not resolve fails the clause for
every operator.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from rbac_api.core.errors import ValidationError
from rbac_api.core.types import ConditionOperator, GrantCondition

_MISSING = object()


def build_condition(field: str | None, operator: str | None, value: Any) -> GrantCondition:
    """Validate raw input and return a :class:`GrantCondition`."""

    path = (field or "").strip()
    if not path:
        raise ValidationError("Condition field is required")
    if any(not segment for segment in path.split(".")):
        raise ValidationError(f"Condition field '{path}' is not a valid dotted path")

    try:
        op = ConditionOperator(operator)
    except ValueError:
        allowed = ", ".join(member.value for member in ConditionOperator)
        raise ValidationError(
            f"Condition operator '{operator}' is not supported (expected one of: {allowed})"
        ) from None

    if op in (ConditionOperator.IN, ConditionOperator.NOT_IN):
        if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
            raise ValidationError(f"Condition operator '{op.value}' requires a list value")
        value = list(value)

    return GrantCondition(field=path, operator=op, value=value)


def condition_from_columns(
    field: str | None, operator: str | None, value: Any
) -> GrantCondition | None:
    """Rebuild a stored condition; rows without a field carry no condition."""

    if field is None or operator is None:
        return None
    return GrantCondition(field=field, operator=ConditionOperator(operator), value=value)


def lookup(context: Mapping[str, Any], path: str) -> Any:
    current: Any = context
    for segment in path.split("."):
        if not isinstance(current, Mapping) or segment not in current:
            return _MISSING
        current = current[segment]
    return current


def evaluate(condition: GrantCondition | None, context: Mapping[str, Any] | None) -> bool:
    """Return whether ``context`` satisfies ``condition`` (no condition always passes)."""

    if condition is None:
        return True

    actual = lookup(context or {}, condition.field)
    if actual is _MISSING:
        return False

    op = condition.operator
    if op is ConditionOperator.EQ:
        return actual == condition.value
    if op is ConditionOperator.NE:
        return actual != condition.value
    if op is ConditionOperator.IN:
        return actual in condition.value
    if op is ConditionOperator.NOT_IN:
        return actual not in condition.value
    return False


__all__ = ["build_condition", "condition_from_columns", "evaluate", "lookup"]
