"""Core protocols for litestar-automations.

The engine talks to the surrounding system only through the Protocol-based
interfaces defined here: entitlements, entity loading, workspace membership,
outbound messaging, task creation, definition storage and the audit sink. Using
Protocol allows duck typing while maintaining type safety.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from litestar_automations.core.models import (
        AutomationDefinition,
        ContactSnapshot,
        ListingSnapshot,
        RunRecord,
        RunStepRecord,
        TaskRequest,
        UserSnapshot,
    )
    from litestar_automations.core.types import Capability


__all__ = [
    "AuditSink",
    "DefinitionStore",
    "EmailSender",
    "EntitlementChecker",
    "EntityLoader",
    "EventBus",
    "SmsSender",
    "TaskCreator",
    "WorkspaceDirectory",
]


@runtime_checkable
class EntitlementChecker(Protocol):
    """Answers whether a user's plan currently includes a capability.

    Called with ``AUTOMATIONS_TRIGGER`` at dispatch time and with ``AUTOMATIONS_RUN``
    at run start and before every SMS or EMAIL step. Entitlements are only read,
    never changed, by the engine.
    """

    async def has_entitlement(self, user_id: str, capability: Capability) -> bool: ...


@runtime_checkable
class EntityLoader(Protocol):
    """Loads read-only snapshots of users, contacts and listings.

    Contact and listing lookups are scoped to ``scope_user_id`` and return None when
    the entity does not exist or is not visible to that user.
    """

    async def load_user(self, user_id: str) -> UserSnapshot | None: ...

    async def load_contact(self, contact_id: str, scope_user_id: str) -> ContactSnapshot | None: ...

    async def load_listing(self, listing_id: str, scope_user_id: str) -> ListingSnapshot | None: ...


@runtime_checkable
class WorkspaceDirectory(Protocol):
    """Answers workspace membership questions."""

    async def is_active_member(self, workspace_id: str, user_id: str) -> bool: ...


@runtime_checkable
class SmsSender(Protocol):
    """Outbound SMS transport. Raises on failure."""

    async def send_sms(self, to_phone: str, body: str) -> None: ...


@runtime_checkable
class EmailSender(Protocol):
    """Outbound email transport. Raises on failure."""

    async def send_email(self, to_email: str, subject: str, html: str) -> None: ...


@runtime_checkable
class TaskCreator(Protocol):
    """Creates follow-up tasks.

    Implementations own the dedupe logic: when a near-duplicate task for the same
    contact/listing exists inside ``request.dedupe_window_minutes``, return None
    instead of creating another one.
    """

    async def create_task(self, request: TaskRequest) -> Any | None: ...


@runtime_checkable
class DefinitionStore(Protocol):
    """Read access to automation definitions."""

    async def list_active(self, workspace_id: str, trigger: str) -> Sequence[AutomationDefinition]:
        """Return active definitions for ``trigger``, oldest first."""
        ...

    async def get(self, workspace_id: str, automation_id: UUID) -> AutomationDefinition | None: ...


@runtime_checkable
class AuditSink(Protocol):
    """Persistence for runs and run steps, scoped per workspace.

    Runs are created once and finalized once; run steps are append-only.
    """

    async def create_run(self, run: RunRecord) -> None: ...

    async def append_step(self, step: RunStepRecord) -> None: ...

    async def finalize_run(self, run: RunRecord) -> None:
        """Persist the run's terminal status and message.

        Raises:
            RunAlreadyFinalizedError: If the run was already finalized.
        """
        ...

    async def find_run(self, workspace_id: str, automation_id: UUID, idempotency_key: str) -> RunRecord | None: ...

    async def list_runs(
        self,
        workspace_id: str,
        *,
        contact_id: str | None = None,
        limit: int = 100,
    ) -> Sequence[RunRecord]:
        """Return the most recent runs first."""
        ...

    async def list_steps(self, workspace_id: str, run_id: UUID) -> Sequence[RunStepRecord]:
        """Return a run's steps ordered by index."""
        ...


class EventBus(Protocol):
    """Optional sink for engine lifecycle notifications."""

    async def emit(self, event_type: str, **kwargs: Any) -> None: ...
