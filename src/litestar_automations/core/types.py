"""Core type definitions for litestar-automations.

This module defines the enums and type aliases shared by the parser, the execution
engine and the persistence layer.
"""

from __future__ import annotations

from enum import StrEnum, auto
from typing import Any, TypeAlias

__all__ = [
    "Capability",
    "ConditionJoin",
    "Payload",
    "RunStatus",
    "StepKind",
    "StepStatus",
    "Trigger",
    "WaitUnit",
]


class Trigger(StrEnum):
    """Named events that activate matching automation definitions.

    Attributes:
        NEW_CONTACT: A contact was created.
        LEAD_STAGE_CHANGE: A contact moved between pipeline stages.
        NEW_LISTING: A listing was created.
        MANUAL_RUN: A user ran an automation by hand.
    """

    NEW_CONTACT = "NEW_CONTACT"
    LEAD_STAGE_CHANGE = "LEAD_STAGE_CHANGE"
    NEW_LISTING = "NEW_LISTING"
    MANUAL_RUN = "MANUAL_RUN"


class StepKind(StrEnum):
    """Kinds of steps an automation can contain.

    Attributes:
        SMS: Send a text message to the contact.
        EMAIL: Send an email to the contact.
        TASK: Create a follow-up task for the acting user.
        WAIT: Advance the virtual time cursor.
        IF: Branch on a condition group.
    """

    SMS = "SMS"
    EMAIL = "EMAIL"
    TASK = "TASK"
    WAIT = "WAIT"
    IF = "IF"


class StepStatus(StrEnum):
    """Outcome recorded for a single executed step.

    Attributes:
        SUCCESS: The step completed.
        ERROR: The step failed and halted the run.
        SKIPPED: The step was not performed (for example after an entitlement lapse).
    """

    SUCCESS = auto()
    ERROR = auto()
    SKIPPED = auto()


class RunStatus(StrEnum):
    """Overall status of an automation run.

    Attributes:
        RUNNING: The run has been created and has not been finalized yet.
        SUCCESS: Every step completed.
        FAILED: The run halted early.
    """

    RUNNING = auto()
    SUCCESS = auto()
    FAILED = auto()


class Capability(StrEnum):
    """Entitlement capabilities checked by the engine.

    Attributes:
        AUTOMATIONS_TRIGGER: May fire triggers at all (checked at dispatch).
        AUTOMATIONS_RUN: May execute runs and their side effects.
    """

    AUTOMATIONS_TRIGGER = "AUTOMATIONS_TRIGGER"
    AUTOMATIONS_RUN = "AUTOMATIONS_RUN"


class ConditionJoin(StrEnum):
    """How the conditions of a group are combined."""

    AND = "AND"
    OR = "OR"


class WaitUnit(StrEnum):
    """Units accepted by WAIT steps."""

    HOURS = auto()
    DAYS = auto()
    WEEKS = auto()
    MONTHS = auto()


Payload: TypeAlias = dict[str, Any]
"""Type alias for free-form JSON-shaped data (trigger payloads, audit snapshots)."""
