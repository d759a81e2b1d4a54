"""Automation execution engine.

This module provides the trigger dispatcher, the step executor and its pure helpers
(condition evaluation, template rendering, the virtual time cursor), plus in-memory
storage for tests and single-process deployments.
"""

from __future__ import annotations

from litestar_automations.engine.conditions import evaluate, evaluate_condition, resolve_field
from litestar_automations.engine.cursor import add_months, advance
from litestar_automations.engine.dispatcher import TriggerDispatcher
from litestar_automations.engine.executor import StepExecutor
from litestar_automations.engine.memory import InMemoryAuditSink, InMemoryDefinitionStore
from litestar_automations.engine.template import build_template_variables, render, text_to_html

__all__ = [
    "InMemoryAuditSink",
    "InMemoryDefinitionStore",
    "StepExecutor",
    "TriggerDispatcher",
    "add_months",
    "advance",
    "build_template_variables",
    "evaluate",
    "evaluate_condition",
    "render",
    "resolve_field",
    "text_to_html",
]
