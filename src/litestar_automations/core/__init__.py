"""Core domain module for litestar-automations.

This module exports the fundamental building blocks shared by the engine and the
integration layers: types, data models, collaborator protocols and step parsing.
"""

from __future__ import annotations

from litestar_automations.core.models import (
    AutomationDefinition,
    Condition,
    ConditionGroup,
    ContactSnapshot,
    EmailStep,
    ExecutionContext,
    IfStep,
    ListingSnapshot,
    RunRecord,
    RunStepRecord,
    SmsStep,
    Step,
    TaskRequest,
    TaskStep,
    UnknownStep,
    UserSnapshot,
    WaitStep,
)
from litestar_automations.core.parsing import normalize_condition_group, parse_step, parse_steps
from litestar_automations.core.protocols import (
    AuditSink,
    DefinitionStore,
    EmailSender,
    EntitlementChecker,
    EntityLoader,
    EventBus,
    SmsSender,
    TaskCreator,
    WorkspaceDirectory,
)
from litestar_automations.core.types import (
    Capability,
    ConditionJoin,
    Payload,
    RunStatus,
    StepKind,
    StepStatus,
    Trigger,
    WaitUnit,
)

__all__ = [
    "AuditSink",
    "AutomationDefinition",
    "Capability",
    "Condition",
    "ConditionGroup",
    "ConditionJoin",
    "ContactSnapshot",
    "DefinitionStore",
    "EmailSender",
    "EmailStep",
    "EntitlementChecker",
    "EntityLoader",
    "EventBus",
    "ExecutionContext",
    "IfStep",
    "ListingSnapshot",
    "Payload",
    "RunRecord",
    "RunStatus",
    "RunStepRecord",
    "SmsSender",
    "SmsStep",
    "Step",
    "StepKind",
    "StepStatus",
    "TaskCreator",
    "TaskRequest",
    "TaskStep",
    "Trigger",
    "UnknownStep",
    "UserSnapshot",
    "WaitStep",
    "WaitUnit",
    "WorkspaceDirectory",
    "normalize_condition_group",
    "parse_step",
    "parse_steps",
]
