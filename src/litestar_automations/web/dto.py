"""Data Transfer Objects for the automation web API.

This module defines DTOs for serializing and deserializing automation data in REST
API requests and responses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from collections.abc import Sequence

    from litestar_automations.core.models import RunRecord, RunStepRecord

__all__ = [
    "ManualRunDTO",
    "RunDTO",
    "RunStepDTO",
    "TriggerRequestDTO",
]


@dataclass
class TriggerRequestDTO:
    """DTO for firing a trigger.

    Attributes:
        trigger: Trigger name, e.g. ``NEW_CONTACT``.
        contact_id: Optional contact the event concerns.
        listing_id: Optional listing the event concerns.
        payload: Event-specific data available to conditions as ``payload.<key>``.
        idempotency_key: Optional key; automations that already ran with it are skipped.
    """

    trigger: str = ""
    contact_id: str | None = None
    listing_id: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    idempotency_key: str | None = None


@dataclass
class ManualRunDTO:
    """DTO for running a single automation by hand.

    Leave ``contact_id`` empty for a test run: emails go to the acting user.
    """

    contact_id: str | None = None
    listing_id: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class RunStepDTO:
    """DTO for one executed step of a run.

    Attributes:
        index: Position in execution order, starting at 0.
        step_id: The step's authored id, if any.
        step_type: Step kind.
        status: ``success``, ``error`` or ``skipped``.
        message: Human-readable outcome.
        payload: Outcome details.
        executed_at: When the step was recorded.
    """

    index: int
    step_id: str | None
    step_type: str
    status: str
    message: str | None
    payload: dict[str, Any]
    executed_at: datetime

    @classmethod
    def from_record(cls, record: RunStepRecord) -> RunStepDTO:
        return cls(
            index=record.index,
            step_id=record.step_id,
            step_type=record.step_type,
            status=str(record.status),
            message=record.message,
            payload=dict(record.payload),
            executed_at=record.executed_at,
        )


@dataclass
class RunDTO:
    """DTO for a run together with its steps.

    Attributes:
        id: Run ID.
        automation_id: The automation that ran.
        trigger: Trigger name the run was started for.
        status: ``running``, ``success`` or ``failed``.
        message: Failure message or completion summary.
        user_id: Acting user.
        contact_id: Contact the run concerned, if any.
        listing_id: Listing the run concerned, if any.
        started_at: When the run was created.
        finished_at: When the run was finalized.
        steps: Executed steps ordered by index.
    """

    id: UUID
    automation_id: UUID
    trigger: str
    status: str
    message: str | None
    user_id: str
    contact_id: str | None
    listing_id: str | None
    started_at: datetime
    finished_at: datetime | None
    steps: list[RunStepDTO] = field(default_factory=list)

    @classmethod
    def from_record(cls, run: RunRecord, steps: Sequence[RunStepRecord] = ()) -> RunDTO:
        return cls(
            id=run.id,
            automation_id=run.automation_id,
            trigger=run.trigger,
            status=str(run.status),
            message=run.message,
            user_id=run.user_id,
            contact_id=run.contact_id,
            listing_id=run.listing_id,
            started_at=run.started_at,
            finished_at=run.finished_at,
            steps=[RunStepDTO.from_record(step) for step in sorted(steps, key=lambda s: s.index)],
        )
