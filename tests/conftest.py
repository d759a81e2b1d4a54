"""Shared test fixtures for litestar-automations test suite."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import pytest

from litestar_automations.config import AutomationConfig
from litestar_automations.core.models import (
    AutomationDefinition,
    ContactSnapshot,
    ExecutionContext,
    ListingSnapshot,
    TaskRequest,
    UserSnapshot,
)
from litestar_automations.core.parsing import parse_steps
from litestar_automations.core.types import Capability, Trigger
from litestar_automations.engine.dispatcher import TriggerDispatcher
from litestar_automations.engine.executor import StepExecutor
from litestar_automations.engine.memory import InMemoryAuditSink, InMemoryDefinitionStore

if TYPE_CHECKING:
    from datetime import datetime

USER_ID = "user-1"
WORKSPACE_ID = "ws-1"
OTHER_WORKSPACE_ID = "ws-2"
CONTACT_ID = "contact-1"
PARTNER_ID = "contact-partner"
FOREIGN_CONTACT_ID = "contact-foreign"
NO_PHONE_CONTACT_ID = "contact-no-phone"
LISTING_ID = "listing-1"


# =============================================================================
# Collaborator fakes
# =============================================================================


class FakeEntitlements:
    """Entitlement checker with per-capability answers.

    ``run_answers`` queues answers for ``AUTOMATIONS_RUN`` checks; once it is
    exhausted the static answer applies.
    """

    def __init__(self, *, trigger: bool = True, run: bool = True) -> None:
        self.allowed = {Capability.AUTOMATIONS_TRIGGER: trigger, Capability.AUTOMATIONS_RUN: run}
        self.run_answers: list[bool] = []
        self.calls: list[tuple[str, Capability]] = []

    async def has_entitlement(self, user_id: str, capability: Capability) -> bool:
        self.calls.append((user_id, capability))
        if capability == Capability.AUTOMATIONS_RUN and self.run_answers:
            return self.run_answers.pop(0)
        return self.allowed[capability]

    def count(self, capability: Capability) -> int:
        return sum(1 for _, checked in self.calls if checked == capability)


class FakeLoader:
    """Entity loader over plain dicts."""

    def __init__(
        self,
        users: list[UserSnapshot],
        contacts: list[ContactSnapshot],
        listings: list[ListingSnapshot],
    ) -> None:
        self.users = {user.id: user for user in users}
        self.contacts = {contact.id: contact for contact in contacts}
        self.listings = {listing.id: listing for listing in listings}

    async def load_user(self, user_id: str) -> UserSnapshot | None:
        return self.users.get(user_id)

    async def load_contact(self, contact_id: str, scope_user_id: str) -> ContactSnapshot | None:
        return self.contacts.get(contact_id)

    async def load_listing(self, listing_id: str, scope_user_id: str) -> ListingSnapshot | None:
        return self.listings.get(listing_id)


class FakeDirectory:
    """Workspace directory with an explicit member set."""

    def __init__(self, members: set[tuple[str, str]]) -> None:
        self.members = members

    async def is_active_member(self, workspace_id: str, user_id: str) -> bool:
        return (workspace_id, user_id) in self.members


class RecordingSms:
    """SMS sender that records messages and can fail or stall on demand."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.error: Exception | None = None
        self.delay: float = 0.0

    async def send_sms(self, to_phone: str, body: str) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.sent.append((to_phone, body))


class RecordingEmail:
    """Email sender that records messages and can fail on demand."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self.error: Exception | None = None

    async def send_email(self, to_email: str, subject: str, html: str) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append((to_email, subject, html))


@dataclass
class FakeTask:
    title: str
    due_at: datetime
    id: str = field(default_factory=lambda: str(uuid4()))


class RecordingTasks:
    """Task creator that dedupes on (contact, title) when ``dedupe`` is enabled."""

    def __init__(self) -> None:
        self.requests: list[TaskRequest] = []
        self.created: list[FakeTask] = []
        self.dedupe = False
        self.error: Exception | None = None

    async def create_task(self, request: TaskRequest) -> FakeTask | None:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.dedupe and any(
            r.contact_id == request.contact_id and r.title == request.title for r in self.requests[:-1]
        ):
            return None
        task = FakeTask(title=request.title, due_at=request.due_at)
        self.created.append(task)
        return task


class RecordingEventBus:
    """Event bus that records every emitted event."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    async def emit(self, event_type: str, **kwargs: Any) -> None:
        self.events.append((event_type, kwargs))

    @property
    def types(self) -> list[str]:
        return [event_type for event_type, _ in self.events]


# =============================================================================
# Entity fixtures
# =============================================================================


@pytest.fixture
def user() -> UserSnapshot:
    """The acting agent."""
    return UserSnapshot(id=USER_ID, name="Alex Agent", email="alex@agency.test", phone="+15550000001")


@pytest.fixture
def contact() -> ContactSnapshot:
    """A client contact in the acting workspace."""
    return ContactSnapshot(
        id=CONTACT_ID,
        workspace_id=WORKSPACE_ID,
        first_name="Dana",
        last_name="Buyer",
        email="dana@example.test",
        phone="+15550000002",
        stage="warm",
        type="BUYER",
        source="Zillow",
        relationship_type="CLIENT",
    )


@pytest.fixture
def listing() -> ListingSnapshot:
    """A listing in the acting workspace."""
    return ListingSnapshot(
        id=LISTING_ID,
        workspace_id=WORKSPACE_ID,
        address="12 Harbor Lane",
        status="ACTIVE",
        price=650000.0,
    )


@pytest.fixture
def loader(user: UserSnapshot, contact: ContactSnapshot, listing: ListingSnapshot) -> FakeLoader:
    """Loader knowing the standard entities plus a few problem contacts."""
    return FakeLoader(
        users=[user],
        contacts=[
            contact,
            ContactSnapshot(
                id=PARTNER_ID,
                workspace_id=WORKSPACE_ID,
                first_name="Pat",
                email="pat@lender.test",
                phone="+15550000003",
                relationship_type="partner",
            ),
            ContactSnapshot(
                id=FOREIGN_CONTACT_ID,
                workspace_id=OTHER_WORKSPACE_ID,
                first_name="Fran",
                phone="+15550000004",
                relationship_type="CLIENT",
            ),
            ContactSnapshot(
                id=NO_PHONE_CONTACT_ID,
                workspace_id=WORKSPACE_ID,
                first_name="Noel",
                email="noel@example.test",
                relationship_type="CLIENT",
            ),
        ],
        listings=[listing],
    )


# =============================================================================
# Collaborator fixtures
# =============================================================================


@pytest.fixture
def entitlements() -> FakeEntitlements:
    return FakeEntitlements()


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory({(WORKSPACE_ID, USER_ID)})


@pytest.fixture
def sms() -> RecordingSms:
    return RecordingSms()


@pytest.fixture
def email() -> RecordingEmail:
    return RecordingEmail()


@pytest.fixture
def tasks() -> RecordingTasks:
    return RecordingTasks()


@pytest.fixture
def event_bus() -> RecordingEventBus:
    return RecordingEventBus()


@pytest.fixture
def audit() -> InMemoryAuditSink:
    return InMemoryAuditSink()


@pytest.fixture
def definitions() -> InMemoryDefinitionStore:
    return InMemoryDefinitionStore()


@pytest.fixture
def config() -> AutomationConfig:
    """Engine configuration with a short step timeout."""
    return AutomationConfig(step_timeout=0.5)


# =============================================================================
# Engine fixtures
# =============================================================================


@pytest.fixture
def executor(
    entitlements: FakeEntitlements,
    loader: FakeLoader,
    sms: RecordingSms,
    email: RecordingEmail,
    tasks: RecordingTasks,
    audit: InMemoryAuditSink,
    config: AutomationConfig,
    event_bus: RecordingEventBus,
) -> StepExecutor:
    """Step executor wired to the recording fakes."""
    return StepExecutor(
        entitlements=entitlements,
        loader=loader,
        sms=sms,
        email=email,
        tasks=tasks,
        audit=audit,
        config=config,
        event_bus=event_bus,
    )


@pytest.fixture
def dispatcher(
    definitions: InMemoryDefinitionStore,
    directory: FakeDirectory,
    entitlements: FakeEntitlements,
    loader: FakeLoader,
    executor: StepExecutor,
) -> TriggerDispatcher:
    """Trigger dispatcher over the in-memory stores."""
    return TriggerDispatcher(
        definitions=definitions,
        directory=directory,
        entitlements=entitlements,
        loader=loader,
        executor=executor,
    )


@pytest.fixture
def context() -> ExecutionContext:
    """Execution context for the standard contact and listing."""
    return ExecutionContext(
        user_id=USER_ID,
        workspace_id=WORKSPACE_ID,
        contact_id=CONTACT_ID,
        listing_id=LISTING_ID,
        trigger=Trigger.NEW_CONTACT,
    )


@pytest.fixture
def make_definition(definitions: InMemoryDefinitionStore):
    """Factory adding a definition with raw steps to the in-memory store."""

    def _make(
        steps: list[dict[str, Any]],
        *,
        trigger: str = Trigger.NEW_CONTACT,
        active: bool = True,
        workspace_id: str = WORKSPACE_ID,
        name: str = "Automation",
        created_at: datetime | None = None,
    ) -> AutomationDefinition:
        return definitions.add(
            AutomationDefinition(
                id=uuid4(),
                workspace_id=workspace_id,
                name=name,
                trigger=str(trigger),
                steps=parse_steps(steps),
                active=active,
                created_at=created_at,
            )
        )

    return _make
