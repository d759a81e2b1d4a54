"""SQLAlchemy models for automation persistence.

This module defines the database models behind the SQLAlchemy stores:
- AutomationModel: A workspace's automation definition (trigger plus raw steps)
- AutomationRunModel: One execution of a definition
- AutomationRunStepModel: Append-only audit record for one executed step
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from advanced_alchemy.base import UUIDAuditBase
from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from litestar_automations.core.types import RunStatus, StepStatus

__all__ = [
    "AutomationModel",
    "AutomationRunModel",
    "AutomationRunStepModel",
]


# JSONB on PostgreSQL, JSON everywhere else
JSONType = JSON().with_variant(JSONB, "postgresql")


class AutomationModel(UUIDAuditBase):
    """Persisted automation definition.

    Steps are stored exactly as authored and parsed when loaded, so unknown or
    malformed step shapes survive a round trip untouched.

    Attributes:
        workspace_id: Owning workspace.
        name: Display name.
        trigger: Trigger name the automation listens to.
        steps: Raw, JSON-shaped step list.
        is_active: Only active automations are dispatched.
        created_by: User who authored the automation.
    """

    __tablename__ = "automations"
    __table_args__ = (Index("ix_automations_workspace_trigger_active", "workspace_id", "trigger", "is_active"),)

    workspace_id: Mapped[str] = mapped_column(String(255))
    name: Mapped[str] = mapped_column(String(255))
    trigger: Mapped[str] = mapped_column(String(80))
    steps: Mapped[list[Any]] = mapped_column(JSONType, default=list)
    is_active: Mapped[bool] = mapped_column(default=True)
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Relationships
    runs: Mapped[list[AutomationRunModel]] = relationship(
        back_populates="automation",
        lazy="noload",
    )


class AutomationRunModel(UUIDAuditBase):
    """Persisted automation run.

    Attributes:
        workspace_id: Workspace the run belongs to.
        automation_id: Foreign key to the automation.
        user_id: Acting user.
        contact_id: Optional contact the run concerned.
        listing_id: Optional listing the run concerned.
        trigger: Trigger name the run was started for.
        payload: Copy of the trigger payload.
        idempotency_key: Optional key used to skip repeated dispatches.
        status: Run status.
        message: Failure message, or a completion summary.
        started_at: When the run was created.
        finished_at: When the run was finalized.
    """

    __tablename__ = "automation_runs"
    __table_args__ = (
        Index("ix_automation_runs_workspace_started", "workspace_id", "started_at"),
        Index("ix_automation_runs_workspace_contact", "workspace_id", "contact_id"),
        Index("ix_automation_runs_idempotency", "workspace_id", "automation_id", "idempotency_key"),
    )

    workspace_id: Mapped[str] = mapped_column(String(255))
    automation_id: Mapped[UUID] = mapped_column(
        ForeignKey("automations.id", ondelete="CASCADE"),
    )
    user_id: Mapped[str] = mapped_column(String(255))
    contact_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    listing_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    trigger: Mapped[str] = mapped_column(String(80))
    payload: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    idempotency_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[RunStatus] = mapped_column(
        Enum(RunStatus, native_enum=False, length=50),
        default=RunStatus.RUNNING,
    )
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    finished_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    automation: Mapped[AutomationModel] = relationship(
        back_populates="runs",
        lazy="noload",
    )
    steps: Mapped[list[AutomationRunStepModel]] = relationship(
        back_populates="run",
        lazy="noload",
        order_by="AutomationRunStepModel.step_index",
    )


class AutomationRunStepModel(UUIDAuditBase):
    """Audit record of one executed step.

    Attributes:
        run_id: Foreign key to the run.
        workspace_id: Workspace the run belongs to.
        step_index: Position in execution order, starting at 0. Branch steps count.
        step_id: The author's step id, if any.
        step_type: Step kind as authored (unknown kinds included).
        status: Step outcome.
        message: Human-readable outcome.
        payload: Outcome details (recipient, due date, condition result...).
        executed_at: When the step was recorded.
    """

    __tablename__ = "automation_run_steps"
    __table_args__ = (Index("ix_automation_run_steps_run_index", "run_id", "step_index", unique=True),)

    run_id: Mapped[UUID] = mapped_column(
        ForeignKey("automation_runs.id", ondelete="CASCADE"),
    )
    workspace_id: Mapped[str] = mapped_column(String(255))
    step_index: Mapped[int] = mapped_column(Integer)
    step_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    step_type: Mapped[str] = mapped_column(String(50))
    status: Mapped[StepStatus] = mapped_column(
        Enum(StepStatus, native_enum=False, length=50),
    )
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    payload: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    executed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    # Relationships
    run: Mapped[AutomationRunModel] = relationship(
        back_populates="steps",
    )
