"""Litestar plugin for automation integration.

This module provides the AutomationPlugin, which wires a configured
:class:`~litestar_automations.engine.dispatcher.TriggerDispatcher` into a Litestar
application.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from litestar import Request
from litestar.di import Provide
from litestar.exceptions import NotAuthorizedException
from litestar.plugins import InitPluginProtocol

from litestar_automations.core.protocols import AuditSink
from litestar_automations.engine.dispatcher import TriggerDispatcher
from litestar_automations.web.actors import Actor, actor_from_headers

if TYPE_CHECKING:
    from litestar import Litestar
    from litestar.config.app import AppConfig

__all__ = ["AutomationPlugin", "AutomationPluginConfig"]


@dataclass
class AutomationPluginConfig:
    """Configuration for the AutomationPlugin.

    Attributes:
        dispatcher: The dispatcher serving triggers, manual runs and run history.
        actor_resolver: Resolves the acting user and workspace of a request, or
            returns None to reject it with 401. Defaults to the ``X-User-Id`` and
            ``X-Workspace-Id`` headers.
        dependency_key_dispatcher: The key used for dependency injection of the
            dispatcher. Defaults to "automation_dispatcher".
        dependency_key_history: The key used for dependency injection of the audit
            sink. Defaults to "automation_history".
        enable_api: Whether to enable the REST API endpoints. Defaults to True.
        api_path_prefix: URL path prefix for all automation API endpoints.
            Defaults to "/automations".
        api_guards: List of Litestar guards to apply to all automation API endpoints.
        api_tags: OpenAPI tags to apply to automation API endpoints.
        include_api_in_schema: Whether to include API endpoints in OpenAPI schema.
            Defaults to True.
    """

    dispatcher: TriggerDispatcher
    actor_resolver: Callable[[Request], Actor | None] = actor_from_headers
    dependency_key_dispatcher: str = "automation_dispatcher"
    dependency_key_history: str = "automation_history"
    enable_api: bool = True
    api_path_prefix: str = "/automations"
    api_guards: list[Any] = field(default_factory=list)
    api_tags: list[str] = field(default_factory=lambda: ["Automations"])
    include_api_in_schema: bool = True


class AutomationPlugin(InitPluginProtocol):
    """Litestar plugin for automations.

    Example:
        Wiring the engine into an app::

            from litestar import Litestar
            from litestar_automations import AutomationPlugin, AutomationPluginConfig

            executor = StepExecutor(entitlements=..., loader=..., sms=..., email=..., tasks=..., audit=...)
            dispatcher = TriggerDispatcher(
                definitions=..., directory=..., entitlements=..., loader=..., executor=executor
            )
            app = Litestar(plugins=[AutomationPlugin(AutomationPluginConfig(dispatcher=dispatcher))])

        Firing a trigger from a route handler::

            @post("/contacts")
            async def create_contact(data: ContactIn, automation_dispatcher: TriggerDispatcher) -> ContactOut:
                contact = await save(data)
                automation_dispatcher.dispatch_nowait(
                    Trigger.NEW_CONTACT,
                    ExecutionContext(user_id=..., workspace_id=..., contact_id=contact.id),
                )
                return contact
    """

    __slots__ = ("_config",)

    def __init__(self, config: AutomationPluginConfig) -> None:
        """Initialize the plugin.

        Args:
            config: Configuration for the plugin.
        """
        self._config = config

    @property
    def dispatcher(self) -> TriggerDispatcher:
        return self._config.dispatcher

    def on_app_init(self, app_config: AppConfig) -> AppConfig:
        """Register dependencies, the API router and the shutdown hook.

        Args:
            app_config: The Litestar application configuration.

        Returns:
            The modified application configuration.
        """
        config = self._config
        dispatcher = config.dispatcher
        resolver = config.actor_resolver

        # Create dependency providers
        def provide_dispatcher() -> TriggerDispatcher:
            return dispatcher

        def provide_history() -> AuditSink:
            return dispatcher.audit

        def provide_actor(request: Request) -> Actor:
            actor = resolver(request)
            if actor is None:
                raise NotAuthorizedException(detail="Missing acting user or workspace")
            return actor

        app_config.dependencies[config.dependency_key_dispatcher] = Provide(provide_dispatcher, sync_to_thread=False)
        app_config.dependencies[config.dependency_key_history] = Provide(provide_history, sync_to_thread=False)

        # Background dispatches finish before the app shuts down
        app_config.on_shutdown.append(self._drain)

        if config.enable_api:
            from litestar import Router

            from litestar_automations.exceptions import AutomationNotFoundError
            from litestar_automations.web.controllers import AutomationController
            from litestar_automations.web.exceptions import automation_not_found_handler

            automation_router = Router(
                path=config.api_path_prefix,
                route_handlers=[AutomationController],
                guards=config.api_guards,
                tags=config.api_tags,
                include_in_schema=config.include_api_in_schema,
                dependencies={"automation_actor": Provide(provide_actor, sync_to_thread=False)},
            )
            app_config.route_handlers.append(automation_router)
            app_config.exception_handlers[AutomationNotFoundError] = automation_not_found_handler  # type: ignore[assignment]

        return app_config

    async def _drain(self, _app: Litestar) -> None:
        await self._config.dispatcher.wait_idle()
