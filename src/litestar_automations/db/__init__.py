"""Database persistence layer for litestar-automations.

This module provides SQLAlchemy models, advanced-alchemy repositories and the
SQLAlchemy-backed definition store and audit sink used by the engine.
"""

from __future__ import annotations

from litestar_automations.db.models import AutomationModel, AutomationRunModel, AutomationRunStepModel
from litestar_automations.db.repositories import (
    AutomationRepository,
    AutomationRunRepository,
    AutomationRunStepRepository,
)
from litestar_automations.db.stores import SQLAlchemyAuditSink, SQLAlchemyDefinitionStore

__all__ = [
    "AutomationModel",
    "AutomationRepository",
    "AutomationRunModel",
    "AutomationRunRepository",
    "AutomationRunStepModel",
    "AutomationRunStepRepository",
    "SQLAlchemyAuditSink",
    "SQLAlchemyDefinitionStore",
]
