"""Repository implementations for automation persistence.

This module provides async repositories for the automation models using
advanced-alchemy's repository pattern. Every query is scoped to a workspace.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from advanced_alchemy.filters import LimitOffset, OrderBy
from advanced_alchemy.repository import SQLAlchemyAsyncRepository
from sqlalchemy import and_, select

from litestar_automations.db.models import AutomationModel, AutomationRunModel, AutomationRunStepModel

if TYPE_CHECKING:
    from collections.abc import Sequence

__all__ = [
    "AutomationRepository",
    "AutomationRunRepository",
    "AutomationRunStepRepository",
]


class AutomationRepository(SQLAlchemyAsyncRepository[AutomationModel]):
    """Repository for automation definition CRUD operations."""

    model_type = AutomationModel

    async def find_active(self, workspace_id: str, trigger: str) -> Sequence[AutomationModel]:
        """Find the active automations of a workspace that listen to ``trigger``.

        Args:
            workspace_id: The workspace ID.
            trigger: The trigger name.

        Returns:
            Matching automations, oldest first.
        """
        stmt = (
            select(AutomationModel)
            .where(
                and_(
                    AutomationModel.workspace_id == workspace_id,
                    AutomationModel.trigger == trigger,
                    AutomationModel.is_active == True,  # noqa: E712
                )
            )
            .order_by(AutomationModel.created_at.asc(), AutomationModel.id)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def get_in_workspace(self, workspace_id: str, automation_id: UUID) -> AutomationModel | None:
        """Get an automation by ID, only if it belongs to the workspace.

        Args:
            workspace_id: The workspace ID.
            automation_id: The automation ID.

        Returns:
            The automation or None.
        """
        stmt = select(AutomationModel).where(
            and_(
                AutomationModel.id == automation_id,
                AutomationModel.workspace_id == workspace_id,
            )
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()


class AutomationRunRepository(SQLAlchemyAsyncRepository[AutomationRunModel]):
    """Repository for automation runs."""

    model_type = AutomationRunModel

    async def find_by_idempotency_key(
        self,
        workspace_id: str,
        automation_id: UUID,
        idempotency_key: str,
    ) -> AutomationRunModel | None:
        """Find the earliest run of an automation that used ``idempotency_key``.

        Args:
            workspace_id: The workspace ID.
            automation_id: The automation ID.
            idempotency_key: The key to look up.

        Returns:
            The run or None.
        """
        stmt = (
            select(AutomationRunModel)
            .where(
                and_(
                    AutomationRunModel.workspace_id == workspace_id,
                    AutomationRunModel.automation_id == automation_id,
                    AutomationRunModel.idempotency_key == idempotency_key,
                )
            )
            .order_by(AutomationRunModel.started_at)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_recent(
        self,
        workspace_id: str,
        *,
        contact_id: str | None = None,
        limit: int = 100,
    ) -> Sequence[AutomationRunModel]:
        """Find the most recent runs of a workspace.

        Args:
            workspace_id: The workspace ID.
            contact_id: Optional contact filter.
            limit: Maximum number of results.

        Returns:
            Runs, newest first.
        """
        conditions = [AutomationRunModel.workspace_id == workspace_id]

        if contact_id:
            conditions.append(AutomationRunModel.contact_id == contact_id)

        return await self.list(
            *conditions,
            LimitOffset(limit=limit, offset=0),
            OrderBy(field_name="started_at", sort_order="desc"),
        )


class AutomationRunStepRepository(SQLAlchemyAsyncRepository[AutomationRunStepModel]):
    """Repository for run step audit records."""

    model_type = AutomationRunStepModel

    async def find_by_run(self, workspace_id: str, run_id: UUID) -> Sequence[AutomationRunStepModel]:
        """Find all steps of a run.

        Args:
            workspace_id: The workspace ID.
            run_id: The run ID.

        Returns:
            Steps ordered by index.
        """
        stmt = (
            select(AutomationRunStepModel)
            .where(
                and_(
                    AutomationRunStepModel.workspace_id == workspace_id,
                    AutomationRunStepModel.run_id == run_id,
                )
            )
            .order_by(AutomationRunStepModel.step_index)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()
