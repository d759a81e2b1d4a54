"""Parsing of user-authored, JSON-shaped step lists.

Step configuration is validated leniently: malformed values fall back to safe
defaults instead of being rejected, and nothing in this module raises on bad input.
"""

from __future__ import annotations

import contextlib
import math
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

from litestar_automations.core.models import (
    Condition,
    ConditionGroup,
    EmailStep,
    IfStep,
    SmsStep,
    Step,
    TaskStep,
    UnknownStep,
    WaitStep,
)
from litestar_automations.core.types import ConditionJoin, StepKind, WaitUnit

__all__ = [
    "normalize_condition_group",
    "parse_datetime",
    "parse_step",
    "parse_steps",
]

_KIND_ALIASES = {
    "SEND_SMS": StepKind.SMS,
    "SEND_EMAIL": StepKind.EMAIL,
}

_WAIT_UNITS = frozenset(unit.value for unit in WaitUnit)

# sized to the run step columns
_MAX_KIND_LENGTH = 50
_MAX_STEP_ID_LENGTH = 255

_DUE_KEYS = ("dueAt", "due_at", "reminderAt", "remindAt", "date")

_OFFSET_KEYS = (
    (("offsetMinutes", "dueInMinutes"), timedelta(minutes=1)),
    (("offsetHours", "dueInHours"), timedelta(hours=1)),
    (("offsetDays", "dueInDays"), timedelta(days=1)),
)


def parse_steps(raw: Any) -> list[Step]:
    """Parse a raw step list.

    Args:
        raw: Anything; only a list (or tuple) of mappings produces steps.

    Returns:
        The parsed steps. Entries that are not mappings are dropped.
    """
    if not isinstance(raw, list | tuple):
        return []
    return [parse_step(item) for item in raw if isinstance(item, Mapping)]


def parse_step(raw: Mapping[str, Any]) -> Step:
    """Parse one raw step into its variant of the step union.

    Args:
        raw: A mapping with ``type`` (or ``kind``), an optional ``id`` and ``config``.

    Returns:
        The parsed step; unrecognised kinds become :class:`UnknownStep`.
    """
    raw_kind = _text(raw.get("type") or raw.get("kind")).upper()[:_MAX_KIND_LENGTH]
    kind = _KIND_ALIASES.get(raw_kind, raw_kind)
    step_id = _text(raw.get("id"))[:_MAX_STEP_ID_LENGTH] or None
    config = raw.get("config")
    if not isinstance(config, Mapping):
        config = {}

    if kind == StepKind.SMS:
        return SmsStep(text=_first_text(config, "text", "body", "message"), id=step_id)
    if kind == StepKind.EMAIL:
        return EmailStep(
            subject=_text(config.get("subject")),
            body=_first_text(config, "body", "html", "text"),
            id=step_id,
        )
    if kind == StepKind.TASK:
        return _parse_task(config, step_id)
    if kind == StepKind.WAIT:
        return _parse_wait(config, step_id)
    if kind == StepKind.IF:
        return _parse_if(raw, config, step_id)
    return UnknownStep(raw_kind=raw_kind, id=step_id)


def _parse_task(config: Mapping[str, Any], step_id: str | None) -> TaskStep:
    due_at = None
    for key in _DUE_KEYS:
        due_at = parse_datetime(config.get(key))
        if due_at is not None:
            break

    offset = timedelta()
    for keys, unit in _OFFSET_KEYS:
        for key in keys:
            value = _positive_number(config.get(key))
            if value is not None:
                # values out of range for timedelta are ignored like invalid ones
                with contextlib.suppress(OverflowError):
                    offset += unit * value
                break

    window = _positive_number(config.get("dedupeWindowMinutes"))
    return TaskStep(
        title=_first_text(config, "title", "text"),
        notes=_text(config.get("notes")),
        due_at=due_at,
        due_offset=offset or None,
        dedupe_window_minutes=int(window) if window is not None else None,
        id=step_id,
    )


def _parse_wait(config: Mapping[str, Any], step_id: str | None) -> WaitStep:
    amount = _positive_number(config.get("amount"))
    unit = _text(config.get("unit")).lower()
    if amount is not None and unit in _WAIT_UNITS:
        return WaitStep(amount=amount, unit=WaitUnit(unit), id=step_id)

    # legacy shapes stored a bare hours or days count
    hours = _positive_number(config.get("hours"))
    if hours is not None:
        return WaitStep(amount=hours, unit=WaitUnit.HOURS, id=step_id)
    days = _positive_number(config.get("days"))
    if days is not None:
        return WaitStep(amount=days, unit=WaitUnit.DAYS, id=step_id)
    return WaitStep(id=step_id)


def _parse_if(raw: Mapping[str, Any], config: Mapping[str, Any], step_id: str | None) -> IfStep:
    condition = None
    for key in ("condition", "conditions", "group"):
        if config.get(key) is not None:
            condition = config[key]
            break
    else:
        condition = raw.get("condition")

    then_raw = _first_present(raw, config, "thenSteps", "then")
    else_raw = _first_present(raw, config, "elseSteps", "else")
    return IfStep(
        condition=normalize_condition_group(condition),
        then_steps=parse_steps(then_raw),
        else_steps=parse_steps(else_raw),
        id=step_id,
    )


def normalize_condition_group(raw: Any) -> ConditionGroup:
    """Normalize any accepted condition shape into a :class:`ConditionGroup`.

    Accepted shapes are ``{"join": ..., "conditions": [...]}``, a single bare
    ``{"field", "operator", "value"}`` mapping, or a bare list of conditions (the
    last two become AND groups). Conditions with an empty field or value are
    dropped. Anything unparsable yields an empty group, which evaluates to False.

    Args:
        raw: The raw condition payload.

    Returns:
        The normalized group.
    """
    if isinstance(raw, list | tuple):
        return ConditionGroup(join=ConditionJoin.AND, conditions=_conditions(raw))
    if not isinstance(raw, Mapping):
        return ConditionGroup()

    if "conditions" in raw:
        join = ConditionJoin.OR if _text(raw.get("join")).upper() in {"OR", "ANY"} else ConditionJoin.AND
        items = raw.get("conditions")
        return ConditionGroup(join=join, conditions=_conditions(items if isinstance(items, list | tuple) else ()))

    return ConditionGroup(join=ConditionJoin.AND, conditions=_conditions((raw,)))


def _conditions(items: Any) -> tuple[Condition, ...]:
    result = []
    for item in items:
        if not isinstance(item, Mapping):
            continue
        field_name = _text(item.get("field"))
        value = item.get("value")
        if isinstance(value, str):
            value = value.strip()
        if not field_name or value is None or value == "":
            continue
        operator = _text(item.get("operator")).lower() or "equals"
        result.append(Condition(field=field_name, operator=operator, value=value))
    return tuple(result)


def parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp, treating naive values as UTC.

    Args:
        value: A datetime or an ISO-8601 string.

    Returns:
        An aware datetime, or None when the value is missing or invalid.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _positive_number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _first_text(config: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        value = config.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return ""


def _first_present(raw: Mapping[str, Any], config: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        for source in (raw, config):
            if source.get(key) is not None:
                return source[key]
    return None
