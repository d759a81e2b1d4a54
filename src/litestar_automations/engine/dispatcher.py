"""Trigger dispatcher.

Turns a named event into zero or more automation runs. Dispatch is fire-and-forget
for the triggering operation: precondition failures are silent no-ops and every
error below this boundary is logged, never raised.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from litestar_automations.config import AutomationConfig
from litestar_automations.core.types import Capability, Trigger
from litestar_automations.exceptions import AutomationNotFoundError

if TYPE_CHECKING:
    from uuid import UUID

    from litestar_automations.core.models import AutomationDefinition, ExecutionContext, RunRecord
    from litestar_automations.core.protocols import (
        AuditSink,
        DefinitionStore,
        EntitlementChecker,
        EntityLoader,
        WorkspaceDirectory,
    )
    from litestar_automations.engine.executor import StepExecutor

__all__ = ["TriggerDispatcher"]

logger = logging.getLogger(__name__)


class TriggerDispatcher:
    """Resolves definitions for a trigger and runs them one after another.

    Attributes:
        definitions: Store the matching definitions are read from.
        directory: Workspace membership lookup.
        entitlements: Entitlement checker for ``AUTOMATIONS_TRIGGER``.
        loader: Entity loader used for the contact and listing preconditions.
        executor: Executor that performs each run.
        audit: The executor's audit sink, used for idempotency and history.
        config: Engine configuration.
    """

    def __init__(
        self,
        *,
        definitions: DefinitionStore,
        directory: WorkspaceDirectory,
        entitlements: EntitlementChecker,
        loader: EntityLoader,
        executor: StepExecutor,
        config: AutomationConfig | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            definitions: Definition store.
            directory: Workspace directory.
            entitlements: Entitlement checker.
            loader: Entity snapshot loader.
            executor: Step executor; its audit sink is reused for idempotency checks.
            config: Optional engine configuration, defaults to the executor's.
        """
        self.definitions = definitions
        self.directory = directory
        self.entitlements = entitlements
        self.loader = loader
        self.executor = executor
        self.audit: AuditSink = executor.audit
        self.config = config or executor.config
        self._pending: set[asyncio.Task[None]] = set()

    async def dispatch(self, trigger: str, context: ExecutionContext) -> None:
        """Run every active definition in the context's workspace that listens to ``trigger``.

        Never raises: failures are logged and recorded in the run history.

        Args:
            trigger: The trigger name, e.g. ``"NEW_CONTACT"``.
            context: Acting user, workspace, optional contact/listing and payload.

        Example:
            >>> await dispatcher.dispatch(
            ...     Trigger.LEAD_STAGE_CHANGE,
            ...     ExecutionContext(user_id="u1", workspace_id="w1", contact_id="c1",
            ...                      payload={"fromStage": "NEW", "toStage": "HOT"}),
            ... )
        """
        try:
            await self._dispatch(trigger, context)
        except Exception:
            logger.exception("Automation dispatch for trigger %r failed", trigger)

    def dispatch_nowait(self, trigger: str, context: ExecutionContext) -> asyncio.Task[None]:
        """Schedule :meth:`dispatch` in the background and return the task.

        The dispatcher holds a reference to the task until it completes.
        """
        task = asyncio.create_task(self.dispatch(trigger, context))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait for every background dispatch scheduled so far to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def run_definition(self, automation_id: UUID, context: ExecutionContext) -> RunRecord | None:
        """Run one definition immediately, regardless of its trigger and active flag.

        The dispatch preconditions still apply. Unlike :meth:`dispatch`, errors
        propagate to the caller.

        Args:
            automation_id: The definition to run.
            context: Execution context; ``trigger`` defaults to ``MANUAL_RUN``.

        Returns:
            The finalized run, or None when a precondition failed.

        Raises:
            AutomationNotFoundError: If the definition does not exist in the workspace.
        """
        workspace_id = context.workspace_id
        definition = await self.definitions.get(workspace_id, automation_id) if workspace_id else None
        if definition is None:
            raise AutomationNotFoundError(automation_id, workspace_id)
        if not await self._admit(context):
            return None

        context = replace(context, trigger=context.trigger or Trigger.MANUAL_RUN, payload=dict(context.payload or {}))
        return await self.executor.execute(definition.steps, context, automation_id=definition.id)

    async def _dispatch(self, trigger: str, context: ExecutionContext) -> None:
        name = (trigger or "").strip()[: self.config.max_trigger_length]
        if not name:
            logger.debug("Ignoring dispatch without a trigger name")
            return
        if not await self._admit(context):
            return

        definitions = await self.definitions.list_active(context.workspace_id, name)
        matching = [d for d in definitions if d.active and d.trigger == name]
        logger.debug("Trigger %s matched %d automation(s) in workspace %s", name, len(matching), context.workspace_id)

        # Runs are sequential so audit ordering stays deterministic
        for definition in matching:
            run_context = replace(context, trigger=name, payload=dict(context.payload or {}))
            await self._run_one(definition, run_context)

    async def _run_one(self, definition: AutomationDefinition, context: ExecutionContext) -> None:
        try:
            if context.idempotency_key:
                existing = await self.audit.find_run(context.workspace_id, definition.id, context.idempotency_key)
                if existing is not None:
                    logger.info(
                        "Skipping automation %s: run %s already used idempotency key %r",
                        definition.id,
                        existing.id,
                        context.idempotency_key,
                    )
                    return
            await self.executor.execute(definition.steps, context, automation_id=definition.id)
        except Exception:
            logger.exception("Automation %s failed for trigger %s", definition.id, context.trigger)

    async def _admit(self, context: ExecutionContext) -> bool:
        """Check the dispatch preconditions for ``context``."""
        user_id, workspace_id = context.user_id, context.workspace_id
        if not user_id or not workspace_id:
            logger.debug("Automation precondition failed: missing user or workspace")
            return False
        if not await self.entitlements.has_entitlement(user_id, Capability.AUTOMATIONS_TRIGGER):
            logger.debug("Automation precondition failed: user %s lacks %s", user_id, Capability.AUTOMATIONS_TRIGGER)
            return False
        if not await self.directory.is_active_member(workspace_id, user_id):
            logger.debug("Automation precondition failed: user %s is not active in %s", user_id, workspace_id)
            return False

        if context.contact_id:
            contact = await self.loader.load_contact(context.contact_id, user_id)
            if contact is None or contact.workspace_id != workspace_id:
                logger.debug("Automation precondition failed: contact %s not in %s", context.contact_id, workspace_id)
                return False
            if self.config.is_excluded_relationship(contact.relationship_type):
                logger.debug("Automation precondition failed: contact %s is excluded", context.contact_id)
                return False

        if context.listing_id:
            listing = await self.loader.load_listing(context.listing_id, user_id)
            if listing is None or listing.workspace_id != workspace_id:
                logger.debug("Automation precondition failed: listing %s not in %s", context.listing_id, workspace_id)
                return False
        return True
