"""Step executor: a recursive interpreter over the step union.

This module runs one automation's step list against one execution context. It
creates the Run record up front, appends one RunStep per executed step (branch
steps included, in execution order), threads the virtual time cursor through every
step, and writes the Run's terminal status exactly once.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from litestar_automations.config import AutomationConfig
from litestar_automations.core.models import (
    EmailStep,
    IfStep,
    RunRecord,
    RunStepRecord,
    SmsStep,
    TaskRequest,
    TaskStep,
    WaitStep,
)
from litestar_automations.core.types import Capability, RunStatus, StepKind, StepStatus
from litestar_automations.engine.conditions import evaluate
from litestar_automations.engine.cursor import advance
from litestar_automations.engine.template import build_template_variables, render, text_to_html
from litestar_automations.exceptions import RunAlreadyFinalizedError, StepTimeoutError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Sequence
    from uuid import UUID

    from litestar_automations.core.models import (
        ContactSnapshot,
        ExecutionContext,
        ListingSnapshot,
        Step,
        UserSnapshot,
    )
    from litestar_automations.core.protocols import (
        AuditSink,
        EmailSender,
        EntitlementChecker,
        EntityLoader,
        EventBus,
        SmsSender,
        TaskCreator,
    )
    from litestar_automations.core.types import Payload

__all__ = ["StepExecutor"]

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _RunState:
    """Mutable bookkeeping for one run. The time cursor is threaded separately."""

    run: RunRecord
    context: ExecutionContext
    user: UserSnapshot | None
    contact: ContactSnapshot | None
    listing: ListingSnapshot | None
    entitled: bool
    variables: dict[str, str] = field(default_factory=dict)
    next_index: int = 0
    failed: bool = False
    message: str | None = None
    finalized: bool = False

    @property
    def phone(self) -> str | None:
        # user-only test runs have no phone target
        return (self.contact.phone or None) if self.contact else None

    @property
    def email(self) -> str | None:
        if self.context.contact_id:
            return (self.contact.email or None) if self.contact else None
        # user-only test runs email the acting user
        return (self.user.email or None) if self.user else None

    @property
    def is_test_run(self) -> bool:
        return not self.context.contact_id

    def fail(self, message: str) -> None:
        self.failed = True
        self.message = message


class StepExecutor:
    """Executes automation step lists and records the audit trail.

    One ``execute`` call is one run. There is no parallelism inside a run: steps,
    adapter calls and audit writes are awaited strictly in order. WAIT steps never
    sleep; they only move the virtual cursor used for TASK due dates.

    Attributes:
        entitlements: Entitlement checker for ``AUTOMATIONS_RUN``.
        loader: Loader for user, contact and listing snapshots.
        sms: SMS transport.
        email: Email transport.
        tasks: Task-creation adapter (owns task dedupe).
        audit: Sink for Run and RunStep records.
        config: Engine configuration.
        event_bus: Optional event bus notified about run progress.
    """

    def __init__(
        self,
        *,
        entitlements: EntitlementChecker,
        loader: EntityLoader,
        sms: SmsSender,
        email: EmailSender,
        tasks: TaskCreator,
        audit: AuditSink,
        config: AutomationConfig | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        """Initialize the executor with its collaborators.

        Args:
            entitlements: Entitlement checker.
            loader: Entity snapshot loader.
            sms: SMS transport.
            email: Email transport.
            tasks: Task-creation adapter.
            audit: Run/RunStep persistence.
            config: Optional engine configuration.
            event_bus: Optional event bus implementing ``emit``.
        """
        self.entitlements = entitlements
        self.loader = loader
        self.sms = sms
        self.email = email
        self.tasks = tasks
        self.audit = audit
        self.config = config or AutomationConfig()
        self.event_bus = event_bus

    async def execute(
        self,
        steps: Sequence[Step],
        context: ExecutionContext,
        *,
        automation_id: UUID,
    ) -> RunRecord:
        """Run ``steps`` against ``context`` and return the finalized Run.

        Step failures never raise: they are recorded and halt the run. Errors from
        the loader or the audit sink propagate after the Run has been finalized as
        failed (when the sink still accepts writes).

        Args:
            steps: The parsed step list.
            context: Acting user, workspace, optional contact/listing, trigger and payload.
            automation_id: The definition the steps belong to.

        Returns:
            The finalized RunRecord.

        Raises:
            ValueError: If the context has no user or workspace.
        """
        if not context.user_id or not context.workspace_id:
            msg = "An execution context needs both user_id and workspace_id"
            raise ValueError(msg)

        run = RunRecord(
            workspace_id=context.workspace_id,
            automation_id=automation_id,
            user_id=context.user_id,
            trigger=str(context.trigger or ""),
            started_at=_utcnow(),
            contact_id=context.contact_id,
            listing_id=context.listing_id,
            payload=dict(context.payload or {}),
            idempotency_key=context.idempotency_key,
        )
        await self.audit.create_run(run)
        await self._emit("automation.run.started", run_id=run.id, automation_id=automation_id)

        state = _RunState(run=run, context=context, user=None, contact=None, listing=None, entitled=False)
        try:
            await self._prepare(state)
            await self._execute_steps(steps, state, run.started_at)
        except Exception as exc:
            if not state.finalized:
                state.fail(_describe(exc))
                await self._finalize(state)
            raise
        return await self._finalize(state)

    async def _prepare(self, state: _RunState) -> None:
        context = state.context
        user_id = state.run.user_id
        state.user = await self.loader.load_user(user_id)
        if context.contact_id:
            state.contact = await self.loader.load_contact(context.contact_id, user_id)
        if context.listing_id:
            state.listing = await self.loader.load_listing(context.listing_id, user_id)
        state.variables = build_template_variables(state.user, state.contact, state.listing)
        state.entitled = await self.entitlements.has_entitlement(user_id, Capability.AUTOMATIONS_RUN)

    async def _execute_steps(
        self,
        steps: Sequence[Step],
        state: _RunState,
        cursor: datetime,
    ) -> tuple[datetime, bool]:
        """Execute a step list, returning the advanced cursor and whether to keep going."""
        for step in steps:
            cursor, proceed = await self._execute_step(step, state, cursor)
            if not proceed:
                return cursor, False
        return cursor, True

    async def _execute_step(self, step: Step, state: _RunState, cursor: datetime) -> tuple[datetime, bool]:
        if isinstance(step, SmsStep):
            return cursor, await self._send_sms(step, state)
        if isinstance(step, EmailStep):
            return cursor, await self._send_email(step, state)
        if isinstance(step, TaskStep):
            return cursor, await self._create_task(step, state, cursor)
        if isinstance(step, WaitStep):
            return await self._wait(step, state, cursor), True
        if isinstance(step, IfStep):
            return await self._branch(step, state, cursor)
        return cursor, await self._halt(state, step, f"Unknown step type: {step.kind}")

    async def _send_sms(self, step: SmsStep, state: _RunState) -> bool:
        phone = state.phone
        if not phone:
            return await self._halt(state, step, "Missing phone number for SMS step")
        if not await self._still_entitled(state):
            return await self._halt(state, step, self.config.downgrade_message, status=StepStatus.SKIPPED)

        body = render(step.text, state.variables)
        try:
            await self._call_adapter(StepKind.SMS, self.sms.send_sms(phone, body))
        except Exception as exc:
            return await self._halt(state, step, _describe(exc), payload={"to": phone})

        await self._record(state, step, StepStatus.SUCCESS, message=f"SMS sent to {phone}", payload={"to": phone})
        return True

    async def _send_email(self, step: EmailStep, state: _RunState) -> bool:
        address = state.email
        if not address:
            return await self._halt(state, step, "Missing email address for EMAIL step")
        if not await self._still_entitled(state):
            return await self._halt(state, step, self.config.downgrade_message, status=StepStatus.SKIPPED)

        subject = render(step.subject, state.variables)
        html = render(text_to_html(step.body), state.variables)
        payload: Payload = {"to": address, "subject": subject, "testRun": state.is_test_run}
        try:
            await self._call_adapter(StepKind.EMAIL, self.email.send_email(address, subject, html))
        except Exception as exc:
            return await self._halt(state, step, _describe(exc), payload=payload)

        await self._record(state, step, StepStatus.SUCCESS, message=f"Email sent to {address}", payload=payload)
        return True

    async def _create_task(self, step: TaskStep, state: _RunState, cursor: datetime) -> bool:
        if not state.entitled:
            return await self._halt(state, step, self.config.downgrade_message, status=StepStatus.SKIPPED)

        due_at, basis = cursor, "cursor"
        if step.due_at is not None:
            due_at, basis = step.due_at, "explicit"
        elif step.due_offset is not None:
            # an offset past the datetime range falls back to the cursor
            with contextlib.suppress(OverflowError):
                due_at, basis = state.run.started_at + step.due_offset, "offset"

        window = step.dedupe_window_minutes or self.config.task_dedupe_window_minutes
        request = TaskRequest(
            user_id=state.run.user_id,
            title=render(step.title, state.variables).strip(),
            notes=render(step.notes, state.variables).strip() or None,
            due_at=due_at,
            dedupe_window_minutes=window,
            contact_id=state.contact.id if state.contact else None,
            listing_id=state.listing.id if state.listing else None,
        )
        payload: Payload = {"title": request.title, "dueAt": due_at.isoformat(), "dueBasis": basis}
        try:
            task = await self._call_adapter(StepKind.TASK, self.tasks.create_task(request))
        except Exception as exc:
            return await self._halt(state, step, _describe(exc), payload=payload)

        if task is None:
            message = "Task skipped: a matching task already exists"
        else:
            message = "Task created"
            task_id = getattr(task, "id", None)
            if task_id is not None:
                payload["taskId"] = str(task_id)
        payload["created"] = task is not None
        await self._record(state, step, StepStatus.SUCCESS, message=message, payload=payload)
        return True

    async def _wait(self, step: WaitStep, state: _RunState, cursor: datetime) -> datetime:
        if step.amount is None or step.unit is None:
            await self._record(
                state,
                step,
                StepStatus.SUCCESS,
                message="No delay configured",
                payload={"from": cursor.isoformat(), "to": cursor.isoformat()},
            )
            return cursor

        advanced = advance(cursor, step.amount, step.unit)
        await self._record(
            state,
            step,
            StepStatus.SUCCESS,
            message=f"Waited {step.amount:g} {step.unit}",
            payload={
                "amount": step.amount,
                "unit": str(step.unit),
                "from": cursor.isoformat(),
                "to": advanced.isoformat(),
            },
        )
        return advanced

    async def _branch(self, step: IfStep, state: _RunState, cursor: datetime) -> tuple[datetime, bool]:
        result = evaluate(step.condition, state.contact, state.listing, state.context.payload)
        await self._record(
            state,
            step,
            StepStatus.SUCCESS,
            message=f"Condition evaluated to {'true' if result else 'false'}",
            payload={"result": result, "condition": step.condition.to_dict()},
        )
        branch = step.then_steps if result else step.else_steps
        return await self._execute_steps(branch, state, cursor)

    async def _still_entitled(self, state: _RunState) -> bool:
        if not state.entitled:
            return False
        state.entitled = await self.entitlements.has_entitlement(state.run.user_id, Capability.AUTOMATIONS_RUN)
        return state.entitled

    async def _call_adapter(self, step_type: str, call: Awaitable[Any]) -> Any:
        timeout = self.config.step_timeout
        if timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout)
        except TimeoutError as exc:
            raise StepTimeoutError(step_type, timeout) from exc

    async def _record(
        self,
        state: _RunState,
        step: Step,
        status: StepStatus,
        *,
        message: str | None = None,
        payload: Payload | None = None,
    ) -> RunStepRecord:
        record = RunStepRecord(
            run_id=state.run.id,
            workspace_id=state.run.workspace_id,
            index=state.next_index,
            step_type=str(step.kind),
            status=status,
            executed_at=_utcnow(),
            step_id=step.id,
            message=message,
            payload=payload or {},
        )
        state.next_index += 1
        await self.audit.append_step(record)
        await self._emit("automation.run.step", run_id=state.run.id, index=record.index, status=status)
        return record

    async def _halt(
        self,
        state: _RunState,
        step: Step,
        message: str,
        *,
        status: StepStatus = StepStatus.ERROR,
        payload: Payload | None = None,
    ) -> bool:
        """Record the step, mark the run failed, and stop everything after it."""
        await self._record(state, step, status, message=message, payload=payload)
        state.fail(message)
        logger.info("Automation run %s halted at step %d (%s): %s", state.run.id, state.next_index - 1, step.kind, message)
        return False

    async def _finalize(self, state: _RunState) -> RunRecord:
        if state.finalized:
            raise RunAlreadyFinalizedError(state.run.id, state.run.status)
        state.finalized = True

        run = state.run
        run.status = RunStatus.FAILED if state.failed else RunStatus.SUCCESS
        run.message = state.message if state.failed else f"Completed {state.next_index} step(s)"
        run.finished_at = _utcnow()
        await self.audit.finalize_run(run)
        await self._emit("automation.run.finished", run_id=run.id, status=run.status)
        return run

    async def _emit(self, event_type: str, **kwargs: Any) -> None:
        if self.event_bus:
            await self.event_bus.emit(event_type, **kwargs)


def _describe(exc: Exception) -> str:
    return str(exc) or type(exc).__name__
