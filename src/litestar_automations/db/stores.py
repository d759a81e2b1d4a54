"""SQLAlchemy-backed definition store and audit sink.

Both stores open one session per operation from an ``async_sessionmaker``, so a run
scheduled in the background never shares the session of the request that
triggered it.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from litestar_automations.core.models import AutomationDefinition, RunRecord, RunStepRecord
from litestar_automations.core.parsing import parse_steps
from litestar_automations.core.types import RunStatus, StepStatus
from litestar_automations.db.models import AutomationModel, AutomationRunModel, AutomationRunStepModel
from litestar_automations.db.repositories import (
    AutomationRepository,
    AutomationRunRepository,
    AutomationRunStepRepository,
)
from litestar_automations.exceptions import AutomationNotFoundError, RunAlreadyFinalizedError

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

__all__ = ["SQLAlchemyAuditSink", "SQLAlchemyDefinitionStore"]


def _aware(value: datetime | None) -> datetime | None:
    # SQLite drops the offset of timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SQLAlchemyDefinitionStore:
    """Definition store over the ``automations`` table.

    Example:
        >>> store = SQLAlchemyDefinitionStore(session_maker)
        >>> definition = await store.create(
        ...     "ws-1", "Welcome", "NEW_CONTACT", [{"type": "SMS", "config": {"text": "Hi {{firstName}}"}}]
        ... )
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self.session_maker = session_maker

    async def create(
        self,
        workspace_id: str,
        name: str,
        trigger: str,
        steps: list[Any],
        *,
        active: bool = True,
        created_by: str | None = None,
    ) -> AutomationDefinition:
        """Persist a new automation definition.

        Args:
            workspace_id: Owning workspace.
            name: Display name.
            trigger: Trigger name.
            steps: Raw, JSON-shaped step list, stored as given.
            active: Whether the automation is dispatched.
            created_by: Authoring user.

        Returns:
            The stored definition with parsed steps.
        """
        async with self.session_maker() as session:
            repo = AutomationRepository(session=session)
            model = await repo.add(
                AutomationModel(
                    workspace_id=workspace_id,
                    name=name,
                    trigger=trigger,
                    steps=steps,
                    is_active=active,
                    created_by=created_by,
                )
            )
            definition = self._to_definition(model)
            await session.commit()
            return definition

    async def set_active(self, workspace_id: str, automation_id: UUID, active: bool) -> AutomationDefinition:
        """Activate or deactivate an automation.

        Raises:
            AutomationNotFoundError: If the automation is not in the workspace.
        """
        async with self.session_maker() as session:
            repo = AutomationRepository(session=session)
            model = await repo.get_in_workspace(workspace_id, automation_id)
            if model is None:
                raise AutomationNotFoundError(automation_id, workspace_id)
            model.is_active = active
            definition = self._to_definition(model)
            await session.commit()
            return definition

    async def list_active(self, workspace_id: str, trigger: str) -> list[AutomationDefinition]:
        async with self.session_maker() as session:
            models = await AutomationRepository(session=session).find_active(workspace_id, trigger)
            return [self._to_definition(model) for model in models]

    async def get(self, workspace_id: str, automation_id: UUID) -> AutomationDefinition | None:
        async with self.session_maker() as session:
            model = await AutomationRepository(session=session).get_in_workspace(workspace_id, automation_id)
            return self._to_definition(model) if model else None

    @staticmethod
    def _to_definition(model: AutomationModel) -> AutomationDefinition:
        return AutomationDefinition(
            id=model.id,
            workspace_id=model.workspace_id,
            name=model.name,
            trigger=model.trigger,
            steps=parse_steps(model.steps),
            active=model.is_active,
            created_at=_aware(model.created_at),
            created_by=model.created_by,
        )


class SQLAlchemyAuditSink:
    """Audit sink over the ``automation_runs`` and ``automation_run_steps`` tables.

    Runs are inserted with the id the executor generated, so run steps can be
    appended before the run is finalized.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self.session_maker = session_maker

    async def create_run(self, run: RunRecord) -> None:
        async with self.session_maker() as session:
            session.add(self._to_run_model(run))
            await session.commit()

    async def append_step(self, step: RunStepRecord) -> None:
        async with self.session_maker() as session:
            session.add(
                AutomationRunStepModel(
                    run_id=step.run_id,
                    workspace_id=step.workspace_id,
                    step_index=step.index,
                    step_id=step.step_id,
                    step_type=step.step_type,
                    status=StepStatus(step.status),
                    message=step.message,
                    payload=dict(step.payload),
                    executed_at=step.executed_at,
                )
            )
            await session.commit()

    async def finalize_run(self, run: RunRecord) -> None:
        """Write the run's terminal status.

        Raises:
            RunAlreadyFinalizedError: If the stored run is no longer running.
        """
        async with self.session_maker() as session:
            repo = AutomationRunRepository(session=session)
            model = await repo.get_one_or_none(id=run.id)
            if model is None:
                session.add(self._to_run_model(run))
            else:
                if model.status != RunStatus.RUNNING:
                    raise RunAlreadyFinalizedError(run.id, model.status)
                model.status = RunStatus(run.status)
                model.message = run.message
                model.finished_at = run.finished_at
            await session.commit()

    async def find_run(self, workspace_id: str, automation_id: UUID, idempotency_key: str) -> RunRecord | None:
        async with self.session_maker() as session:
            repo = AutomationRunRepository(session=session)
            model = await repo.find_by_idempotency_key(workspace_id, automation_id, idempotency_key)
            return self._to_run(model) if model else None

    async def list_runs(
        self,
        workspace_id: str,
        *,
        contact_id: str | None = None,
        limit: int = 100,
    ) -> list[RunRecord]:
        async with self.session_maker() as session:
            repo = AutomationRunRepository(session=session)
            models = await repo.find_recent(workspace_id, contact_id=contact_id, limit=limit)
            return [self._to_run(model) for model in models]

    async def list_steps(self, workspace_id: str, run_id: UUID) -> list[RunStepRecord]:
        async with self.session_maker() as session:
            models = await AutomationRunStepRepository(session=session).find_by_run(workspace_id, run_id)
            return [
                RunStepRecord(
                    run_id=model.run_id,
                    workspace_id=model.workspace_id,
                    index=model.step_index,
                    step_type=model.step_type,
                    status=StepStatus(model.status),
                    executed_at=_aware(model.executed_at),
                    step_id=model.step_id,
                    message=model.message,
                    payload=dict(model.payload or {}),
                )
                for model in models
            ]

    @staticmethod
    def _to_run_model(run: RunRecord) -> AutomationRunModel:
        return AutomationRunModel(
            id=run.id,
            workspace_id=run.workspace_id,
            automation_id=run.automation_id,
            user_id=run.user_id,
            contact_id=run.contact_id,
            listing_id=run.listing_id,
            trigger=run.trigger,
            payload=dict(run.payload),
            idempotency_key=run.idempotency_key,
            status=RunStatus(run.status),
            message=run.message,
            started_at=run.started_at,
            finished_at=run.finished_at,
        )

    @staticmethod
    def _to_run(model: AutomationRunModel) -> RunRecord:
        return RunRecord(
            id=model.id,
            workspace_id=model.workspace_id,
            automation_id=model.automation_id,
            user_id=model.user_id,
            trigger=model.trigger,
            started_at=_aware(model.started_at),
            contact_id=model.contact_id,
            listing_id=model.listing_id,
            payload=dict(model.payload or {}),
            idempotency_key=model.idempotency_key,
            status=RunStatus(model.status),
            message=model.message,
            finished_at=_aware(model.finished_at),
        )
