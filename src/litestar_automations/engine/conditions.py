"""Condition evaluation for IF steps.

Fields resolve through a fixed allowlist instead of arbitrary attribute access, so a
user-authored condition can only see what is listed here, plus top-level keys of the
trigger payload via ``payload.<key>``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from litestar_automations.core.models import ConditionGroup
from litestar_automations.core.parsing import normalize_condition_group
from litestar_automations.core.types import ConditionJoin

if TYPE_CHECKING:
    from litestar_automations.core.models import Condition, ContactSnapshot, ListingSnapshot

__all__ = ["CONTACT_FIELDS", "LISTING_FIELDS", "evaluate", "evaluate_condition", "resolve_field"]

CONTACT_FIELDS: dict[str, str] = {
    "contact.stage": "stage",
    "contact.type": "type",
    "contact.source": "source",
}
"""Contact fields a condition may reference, mapped to snapshot attributes."""

LISTING_FIELDS: dict[str, str] = {
    "listing.status": "status",
    "listing.price": "price",
}
"""Listing fields a condition may reference, mapped to snapshot attributes."""

_PAYLOAD_PREFIX = "payload."

_OPERATOR_ALIASES = {
    "==": "equals",
    "eq": "equals",
    "!=": "not_equals",
    "neq": "not_equals",
    ">": "gt",
    ">=": "gte",
    "<": "lt",
    "<=": "lte",
}


def evaluate(
    group: ConditionGroup | Any,
    contact: ContactSnapshot | None,
    listing: ListingSnapshot | None,
    payload: Mapping[str, Any] | None = None,
) -> bool:
    """Evaluate a condition group.

    Raw (unnormalized) groups are normalized first. An empty group is False.

    Args:
        group: A :class:`ConditionGroup` or any raw condition shape.
        contact: The run's contact snapshot, if any.
        listing: The run's listing snapshot, if any.
        payload: The trigger payload.

    Returns:
        True when all (AND) or any (OR) of the conditions hold.
    """
    if not isinstance(group, ConditionGroup):
        group = normalize_condition_group(group)
    if not group.conditions:
        return False

    results = (evaluate_condition(condition, contact, listing, payload) for condition in group.conditions)
    if group.join == ConditionJoin.OR:
        return any(results)
    return all(results)


def evaluate_condition(
    condition: Condition,
    contact: ContactSnapshot | None,
    listing: ListingSnapshot | None,
    payload: Mapping[str, Any] | None = None,
) -> bool:
    """Evaluate one condition. Unresolvable fields are always False."""
    actual = resolve_field(condition.field, contact, listing, payload)
    if actual is None:
        return False

    operator = _OPERATOR_ALIASES.get(condition.operator, condition.operator)
    expected = condition.value

    if operator == "not_equals":
        return not _equal(actual, expected)
    if operator in {"gt", "gte", "lt", "lte"}:
        return _compare(operator, actual, expected)
    if operator == "contains":
        return _contains(actual, expected)
    if operator == "not_contains":
        return not _contains(actual, expected)
    # equals, and the fallback for anything unrecognised
    return _equal(actual, expected)


def resolve_field(
    field: str,
    contact: ContactSnapshot | None,
    listing: ListingSnapshot | None,
    payload: Mapping[str, Any] | None = None,
) -> Any:
    """Resolve an allowlisted field reference.

    Args:
        field: A reference such as ``contact.stage`` or ``payload.toStage``.
        contact: The run's contact snapshot, if any.
        listing: The run's listing snapshot, if any.
        payload: The trigger payload.

    Returns:
        The field's value, or None when it cannot be resolved.
    """
    if field in CONTACT_FIELDS:
        return getattr(contact, CONTACT_FIELDS[field], None) if contact else None
    if field in LISTING_FIELDS:
        return getattr(listing, LISTING_FIELDS[field], None) if listing else None
    if field.startswith(_PAYLOAD_PREFIX) and payload:
        return payload.get(field[len(_PAYLOAD_PREFIX) :])
    return None


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _equal(actual: Any, expected: Any) -> bool:
    left, right = _as_number(actual), _as_number(expected)
    if left is not None and right is not None:
        return left == right
    return str(actual).strip().lower() == str(expected).strip().lower()


def _compare(operator: str, actual: Any, expected: Any) -> bool:
    left, right = _as_number(actual), _as_number(expected)
    if left is None or right is None:
        return False
    if operator == "gt":
        return left > right
    if operator == "gte":
        return left >= right
    if operator == "lt":
        return left < right
    return left <= right


def _contains(actual: Any, expected: Any) -> bool:
    if isinstance(actual, list | tuple | set | frozenset):
        return any(_equal(item, expected) for item in actual)
    return str(expected).strip().lower() in str(actual).lower()
