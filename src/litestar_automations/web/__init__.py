"""REST API for litestar-automations.

This module provides the controller, DTOs, actor resolution and exception handling
registered by :class:`~litestar_automations.plugin.AutomationPlugin`.
"""

from __future__ import annotations

from litestar_automations.web.actors import Actor, actor_from_headers
from litestar_automations.web.controllers import AutomationController
from litestar_automations.web.dto import ManualRunDTO, RunDTO, RunStepDTO, TriggerRequestDTO
from litestar_automations.web.exceptions import automation_not_found_handler

__all__ = [
    "Actor",
    "AutomationController",
    "ManualRunDTO",
    "RunDTO",
    "RunStepDTO",
    "TriggerRequestDTO",
    "actor_from_headers",
    "automation_not_found_handler",
]
