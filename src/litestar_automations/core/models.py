"""Concrete data models for litestar-automations.

This module provides the dataclasses that flow through the engine: read-only entity
snapshots, the step union, automation definitions, execution contexts and the
Run/RunStep audit records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, ClassVar, TypeAlias
from uuid import UUID, uuid4

from litestar_automations.core.types import ConditionJoin, Payload, RunStatus, StepKind, StepStatus, WaitUnit

__all__ = [
    "AutomationDefinition",
    "Condition",
    "ConditionGroup",
    "ContactSnapshot",
    "EmailStep",
    "ExecutionContext",
    "IfStep",
    "ListingSnapshot",
    "RunRecord",
    "RunStepRecord",
    "SmsStep",
    "Step",
    "TaskRequest",
    "TaskStep",
    "UnknownStep",
    "UserSnapshot",
    "WaitStep",
]


@dataclass(frozen=True)
class UserSnapshot:
    """The acting user, as loaded at run start."""

    id: str
    name: str | None = None
    email: str | None = None
    phone: str | None = None


@dataclass(frozen=True)
class ContactSnapshot:
    """A contact, scoped to the acting user.

    Attributes:
        relationship_type: ``CLIENT`` or ``PARTNER``. Partner contacts never run
            automations.
    """

    id: str
    workspace_id: str
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    stage: str | None = None
    type: str | None = None
    source: str | None = None
    relationship_type: str | None = None


@dataclass(frozen=True)
class ListingSnapshot:
    """A listing, scoped to the acting user."""

    id: str
    workspace_id: str
    address: str | None = None
    status: str | None = None
    price: float | None = None


@dataclass(frozen=True)
class Condition:
    """A single ``field operator value`` comparison."""

    field: str
    operator: str
    value: Any

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "operator": self.operator, "value": self.value}


@dataclass(frozen=True)
class ConditionGroup:
    """Conditions combined with AND or OR.

    An empty group always evaluates to False.
    """

    join: ConditionJoin = ConditionJoin.AND
    conditions: tuple[Condition, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"join": str(self.join), "conditions": [c.to_dict() for c in self.conditions]}


@dataclass
class SmsStep:
    """Send ``text`` to the contact's phone."""

    kind: ClassVar[str] = StepKind.SMS

    text: str = ""
    id: str | None = None


@dataclass
class EmailStep:
    """Send an email to the contact (or to the acting user on test runs)."""

    kind: ClassVar[str] = StepKind.EMAIL

    subject: str = ""
    body: str = ""
    id: str | None = None


@dataclass
class TaskStep:
    """Create a task for the acting user.

    Attributes:
        due_at: Absolute due timestamp, takes precedence over everything else.
        due_offset: Offset from the run start, used when ``due_at`` is absent.
        dedupe_window_minutes: Overrides the configured dedupe window.
    """

    kind: ClassVar[str] = StepKind.TASK

    title: str = ""
    notes: str = ""
    due_at: datetime | None = None
    due_offset: timedelta | None = None
    dedupe_window_minutes: int | None = None
    id: str | None = None


@dataclass
class WaitStep:
    """Advance the virtual time cursor by ``amount`` ``unit``.

    A step with no amount is a no-op delay.
    """

    kind: ClassVar[str] = StepKind.WAIT

    amount: float | None = None
    unit: WaitUnit | None = None
    id: str | None = None


@dataclass
class IfStep:
    """Branch on ``condition``, then run ``then_steps`` or ``else_steps``."""

    kind: ClassVar[str] = StepKind.IF

    condition: ConditionGroup = field(default_factory=ConditionGroup)
    then_steps: list[Step] = field(default_factory=list)
    else_steps: list[Step] = field(default_factory=list)
    id: str | None = None


@dataclass
class UnknownStep:
    """A step whose kind the engine does not understand. Executing it fails the run."""

    raw_kind: str = ""
    id: str | None = None

    @property
    def kind(self) -> str:
        return self.raw_kind or "UNKNOWN"


Step: TypeAlias = SmsStep | EmailStep | TaskStep | WaitStep | IfStep | UnknownStep
"""Tagged union over every step kind."""


@dataclass
class AutomationDefinition:
    """A workflow owned by a workspace: a trigger plus an ordered list of steps.

    Attributes:
        id: Unique identifier of the definition.
        workspace_id: Owning workspace (tenant).
        name: Display name.
        trigger: Trigger name that activates the definition.
        active: Only active definitions are dispatched.
        steps: Parsed step list.
        created_at: Used to order definitions matching the same event.
        created_by: User who authored the definition.
    """

    id: UUID
    workspace_id: str
    name: str
    trigger: str
    steps: list[Step] = field(default_factory=list)
    active: bool = True
    created_at: datetime | None = None
    created_by: str | None = None


@dataclass
class ExecutionContext:
    """Inputs to one trigger pass, reused across every matching definition.

    Attributes:
        user_id: Acting user.
        workspace_id: Tenant the event belongs to.
        contact_id: Optional contact the event concerns.
        listing_id: Optional listing the event concerns.
        trigger: Trigger name; filled in by the dispatcher when absent.
        payload: Event-specific data, e.g. ``{"fromStage": ..., "toStage": ...}``.
        idempotency_key: Definitions that already ran with this key are skipped.
    """

    user_id: str | None
    workspace_id: str | None
    contact_id: str | None = None
    listing_id: str | None = None
    trigger: str | None = None
    payload: Payload = field(default_factory=dict)
    idempotency_key: str | None = None


@dataclass
class RunRecord:
    """One execution of one definition against one context.

    Created with status ``running`` and finalized exactly once.
    """

    workspace_id: str
    automation_id: UUID
    user_id: str
    trigger: str
    started_at: datetime
    contact_id: str | None = None
    listing_id: str | None = None
    payload: Payload = field(default_factory=dict)
    idempotency_key: str | None = None
    status: RunStatus = RunStatus.RUNNING
    message: str | None = None
    finished_at: datetime | None = None
    id: UUID = field(default_factory=uuid4)

    @property
    def is_finalized(self) -> bool:
        return self.status != RunStatus.RUNNING


@dataclass(frozen=True)
class RunStepRecord:
    """Append-only audit record for one executed step."""

    run_id: UUID
    workspace_id: str
    index: int
    step_type: str
    status: StepStatus
    executed_at: datetime
    step_id: str | None = None
    message: str | None = None
    payload: Payload = field(default_factory=dict)


@dataclass(frozen=True)
class TaskRequest:
    """Arguments handed to the task-creation adapter."""

    user_id: str
    title: str
    due_at: datetime
    dedupe_window_minutes: int
    contact_id: str | None = None
    listing_id: str | None = None
    notes: str | None = None
