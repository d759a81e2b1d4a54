"""Litestar Automations - CRM automation engine for Litestar.

This package turns user-authored workflows (a trigger plus an ordered list of
steps, optionally branching) into audited runs against a contact or listing.

Key Features:
    - SMS, email, task, wait and conditional (IF) steps
    - Virtual-time WAIT steps that shift task due dates without sleeping
    - Entitlement checks before every side effect, with graceful mid-run abort
    - Run and per-step audit trail, in memory or via SQLAlchemy
    - Litestar plugin with trigger, manual-run and run-history endpoints

Example:
    >>> from litestar_automations import ExecutionContext, Trigger
    >>>
    >>> await dispatcher.dispatch(
    ...     Trigger.NEW_CONTACT,
    ...     ExecutionContext(user_id="user-1", workspace_id="ws-1", contact_id="contact-1"),
    ... )
"""

from __future__ import annotations

from litestar_automations.__metadata__ import __project__, __version__
from litestar_automations.config import AutomationConfig
from litestar_automations.core import (
    AutomationDefinition,
    ExecutionContext,
    RunRecord,
    RunStatus,
    RunStepRecord,
    StepKind,
    StepStatus,
    Trigger,
    parse_steps,
)
from litestar_automations.engine import (
    InMemoryAuditSink,
    InMemoryDefinitionStore,
    StepExecutor,
    TriggerDispatcher,
)
from litestar_automations.exceptions import (
    AutomationNotFoundError,
    AutomationsError,
    RunAlreadyFinalizedError,
    StepExecutionError,
    StepTimeoutError,
)
from litestar_automations.plugin import AutomationPlugin, AutomationPluginConfig

__all__ = (
    "AutomationConfig",
    "AutomationDefinition",
    "AutomationNotFoundError",
    "AutomationPlugin",
    "AutomationPluginConfig",
    "AutomationsError",
    "ExecutionContext",
    "InMemoryAuditSink",
    "InMemoryDefinitionStore",
    "RunAlreadyFinalizedError",
    "RunRecord",
    "RunStatus",
    "RunStepRecord",
    "StepExecutionError",
    "StepExecutor",
    "StepKind",
    "StepStatus",
    "StepTimeoutError",
    "Trigger",
    "TriggerDispatcher",
    "__project__",
    "__version__",
    "parse_steps",
)
