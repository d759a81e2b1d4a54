"""In-memory implementations of the storage protocols.

Suitable for tests, local development and single-process deployments that do not
need the run history to survive a restart.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING
from uuid import UUID

from litestar_automations.exceptions import AutomationNotFoundError, RunAlreadyFinalizedError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from litestar_automations.core.models import AutomationDefinition, RunRecord, RunStepRecord

__all__ = ["InMemoryAuditSink", "InMemoryDefinitionStore"]


class InMemoryDefinitionStore:
    """Definition store backed by a dict keyed by definition id.

    Example:
        >>> store = InMemoryDefinitionStore()
        >>> store.add(definition)
        >>> await store.list_active("ws-1", "NEW_CONTACT")
    """

    def __init__(self, definitions: Iterable[AutomationDefinition] | None = None) -> None:
        self._definitions: dict[UUID, AutomationDefinition] = {}
        for definition in definitions or ():
            self.add(definition)

    def add(self, definition: AutomationDefinition) -> AutomationDefinition:
        self._definitions[definition.id] = definition
        return definition

    def remove(self, automation_id: UUID) -> None:
        """Remove a definition.

        Raises:
            AutomationNotFoundError: If no definition has this id.
        """
        if automation_id not in self._definitions:
            raise AutomationNotFoundError(automation_id)
        del self._definitions[automation_id]

    async def list_active(self, workspace_id: str, trigger: str) -> list[AutomationDefinition]:
        matches = [
            definition
            for definition in self._definitions.values()
            if definition.workspace_id == workspace_id and definition.trigger == trigger and definition.active
        ]
        # definitions without a creation time sort first, in insertion order
        return sorted(matches, key=lambda d: (d.created_at is not None, d.created_at or 0))

    async def get(self, workspace_id: str, automation_id: UUID) -> AutomationDefinition | None:
        definition = self._definitions.get(automation_id)
        if definition is None or definition.workspace_id != workspace_id:
            return None
        return definition


class InMemoryAuditSink:
    """Audit sink that keeps runs and run steps in process memory.

    Records are copied on write, so later mutation of the caller's ``RunRecord``
    does not leak into the stored history.

    Attributes:
        runs: Stored runs keyed by id.
        steps: Stored run steps keyed by run id, in append order.
    """

    def __init__(self) -> None:
        self.runs: dict[UUID, RunRecord] = {}
        self.steps: dict[UUID, list[RunStepRecord]] = {}

    async def create_run(self, run: RunRecord) -> None:
        self.runs[run.id] = replace(run, payload=dict(run.payload))
        self.steps[run.id] = []

    async def append_step(self, step: RunStepRecord) -> None:
        self.steps.setdefault(step.run_id, []).append(step)

    async def finalize_run(self, run: RunRecord) -> None:
        stored = self.runs.get(run.id)
        if stored is not None and stored.is_finalized:
            raise RunAlreadyFinalizedError(run.id, stored.status)
        self.runs[run.id] = replace(run, payload=dict(run.payload))

    async def find_run(self, workspace_id: str, automation_id: UUID, idempotency_key: str) -> RunRecord | None:
        for run in self.runs.values():
            if (
                run.workspace_id == workspace_id
                and run.automation_id == automation_id
                and run.idempotency_key == idempotency_key
            ):
                return run
        return None

    async def list_runs(
        self,
        workspace_id: str,
        *,
        contact_id: str | None = None,
        limit: int = 100,
    ) -> list[RunRecord]:
        runs = [
            run
            for run in self.runs.values()
            if run.workspace_id == workspace_id and (contact_id is None or run.contact_id == contact_id)
        ]
        runs.sort(key=lambda run: run.started_at, reverse=True)
        return runs[:limit]

    async def list_steps(self, workspace_id: str, run_id: UUID) -> list[RunStepRecord]:
        run = self.runs.get(run_id)
        if run is None or run.workspace_id != workspace_id:
            return []
        return sorted(self.steps.get(run_id, []), key=lambda step: step.index)
