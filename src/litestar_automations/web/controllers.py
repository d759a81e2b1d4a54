"""REST API controller for automations.

Exposes three endpoints under the plugin's path prefix:
- ``POST /trigger``: fire a trigger for the acting user's workspace
- ``POST /{automation_id}/run``: run one automation by hand
- ``GET /runs``: recent run history with steps
"""

from __future__ import annotations

from typing import Any, ClassVar
from uuid import UUID

from litestar import Controller, Response, get, post
from litestar.exceptions import ValidationException
from litestar.params import Dependency, Parameter
from litestar.status_codes import HTTP_200_OK, HTTP_201_CREATED, HTTP_202_ACCEPTED

from litestar_automations.core.models import ExecutionContext
from litestar_automations.core.protocols import AuditSink  # noqa: TC001 - needed for DI
from litestar_automations.engine.dispatcher import TriggerDispatcher  # noqa: TC001 - needed for DI
from litestar_automations.web.actors import Actor  # noqa: TC001 - needed for DI
from litestar_automations.web.dto import ManualRunDTO, RunDTO, TriggerRequestDTO

__all__ = ["AutomationController"]


class AutomationController(Controller):
    """API controller for triggering automations and reading their run history.

    Every endpoint acts as the user and workspace resolved for the request.

    Tags: Automations
    """

    path = "/"
    tags: ClassVar[list[str]] = ["Automations"]

    @post("/trigger", status_code=HTTP_200_OK)
    async def fire_trigger(
        self,
        data: TriggerRequestDTO,
        automation_dispatcher: TriggerDispatcher,
        automation_actor: Actor = Dependency(skip_validation=True),
    ) -> dict[str, bool]:
        """Fire a trigger.

        Matching automations run before the response is sent, but their outcome is
        only visible in the run history: the response is the same whether zero,
        one or several automations ran, and whether they succeeded.

        Args:
            data: Trigger name and event context.
            automation_dispatcher: Injected dispatcher.
            automation_actor: Injected acting user and workspace.

        Returns:
            ``{"success": true}``.

        Raises:
            ValidationException: If the trigger name is blank.
        """
        trigger = (data.trigger or "").strip()
        if not trigger:
            raise ValidationException(detail="trigger is required")

        await automation_dispatcher.dispatch(
            trigger,
            ExecutionContext(
                user_id=automation_actor.user_id,
                workspace_id=automation_actor.workspace_id,
                contact_id=data.contact_id or None,
                listing_id=data.listing_id or None,
                payload=dict(data.payload or {}),
                idempotency_key=data.idempotency_key or None,
            ),
        )
        return {"success": True}

    @post("/{automation_id:uuid}/run")
    async def run_automation(
        self,
        automation_id: UUID,
        data: ManualRunDTO,
        automation_dispatcher: TriggerDispatcher,
        automation_actor: Actor = Dependency(skip_validation=True),
    ) -> Response[Any]:
        """Run one automation now, whatever its trigger and active flag.

        Args:
            automation_id: The automation to run.
            data: Optional contact, listing and payload.
            automation_dispatcher: Injected dispatcher.
            automation_actor: Injected acting user and workspace.

        Returns:
            The finished run with its steps (201), or ``{"skipped": true}`` (202)
            when the acting user may not run automations for this context.
        """
        run = await automation_dispatcher.run_definition(
            automation_id,
            ExecutionContext(
                user_id=automation_actor.user_id,
                workspace_id=automation_actor.workspace_id,
                contact_id=data.contact_id or None,
                listing_id=data.listing_id or None,
                payload=dict(data.payload or {}),
            ),
        )
        if run is None:
            return Response(content={"skipped": True}, status_code=HTTP_202_ACCEPTED)

        steps = await automation_dispatcher.audit.list_steps(run.workspace_id, run.id)
        return Response(content=RunDTO.from_record(run, steps), status_code=HTTP_201_CREATED)

    @get("/runs")
    async def list_runs(
        self,
        automation_dispatcher: TriggerDispatcher,
        automation_history: AuditSink = Dependency(skip_validation=True),
        automation_actor: Actor = Dependency(skip_validation=True),
        contact_id: str | None = Parameter(
            default=None,
            description="Only return runs for this contact",
        ),
    ) -> list[RunDTO]:
        """List the most recent runs of the acting workspace, newest first.

        Args:
            automation_dispatcher: Injected dispatcher, for the history limit.
            automation_history: Injected audit sink.
            automation_actor: Injected acting user and workspace.
            contact_id: Optional contact filter.

        Returns:
            Runs with their steps ordered by index.
        """
        workspace_id = automation_actor.workspace_id
        runs = await automation_history.list_runs(
            workspace_id,
            contact_id=contact_id or None,
            limit=automation_dispatcher.config.run_history_limit,
        )
        return [RunDTO.from_record(run, await automation_history.list_steps(workspace_id, run.id)) for run in runs]
