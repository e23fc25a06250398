"""
Visibility scoping.

Given the acting user and a snapshot of every collection, compute the subset
each role may read and act on. Every filter derives from a single ownership
traversal, visible_building_ids(); nothing here performs I/O except
load_snapshot(), which takes the live snapshot the filters run over.

The actor is always passed in explicitly. There is no "current user" state.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from maintbot.database.models import (
    User, UserRole, Building, Unit, Component, MaintenanceTask,
    ServiceProvider, ServiceRequest, Expense, ContingencyDocument, Notification
)


@dataclass(frozen=True)
class Actor:
    id: str
    role: str
    display_name: str

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(id=user.id, role=UserRole(user.role).value, display_name=user.username)

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.super_admin.value

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin.value

    @property
    def is_manager(self) -> bool:
        return self.role == UserRole.property_manager.value

    @property
    def is_provider(self) -> bool:
        return self.role == UserRole.service_provider.value


@dataclass
class Snapshot:
    """Unscoped collections as read from the store at one point in time."""
    users: List[User] = field(default_factory=list)
    buildings: List[Building] = field(default_factory=list)
    units: List[Unit] = field(default_factory=list)
    components: List[Component] = field(default_factory=list)
    tasks: List[MaintenanceTask] = field(default_factory=list)
    providers: List[ServiceProvider] = field(default_factory=list)
    requests: List[ServiceRequest] = field(default_factory=list)
    expenses: List[Expense] = field(default_factory=list)
    contingency_documents: List[ContingencyDocument] = field(default_factory=list)
    notifications: List[Notification] = field(default_factory=list)


@dataclass
class ScopedView:
    """What one actor may see. Lookups return None for anything out of scope."""
    actor: Actor
    buildings: List[Building]
    units: List[Unit]
    components: List[Component]
    tasks: List[MaintenanceTask]
    providers: List[ServiceProvider]
    requests: List[ServiceRequest]
    expenses: List[Expense]
    contingency_documents: List[ContingencyDocument]
    notifications: List[Notification]

    @property
    def building_ids(self) -> Set[str]:
        return {b.id for b in self.buildings}

    def building(self, building_id: str) -> Optional[Building]:
        return _find(self.buildings, building_id)

    def unit(self, unit_id: str) -> Optional[Unit]:
        return _find(self.units, unit_id)

    def component(self, component_id: str) -> Optional[Component]:
        return _find(self.components, component_id)

    def task(self, task_id: str) -> Optional[MaintenanceTask]:
        return _find(self.tasks, task_id)

    def provider(self, provider_id: str) -> Optional[ServiceProvider]:
        return _find(self.providers, provider_id)

    def request(self, request_id: str) -> Optional[ServiceRequest]:
        return _find(self.requests, request_id)

    def expense(self, expense_id: str) -> Optional[Expense]:
        return _find(self.expenses, expense_id)

    def contingency_document(self, document_id: str) -> Optional[ContingencyDocument]:
        return _find(self.contingency_documents, document_id)

    def requests_for_task(self, task_id: str) -> List[ServiceRequest]:
        return [r for r in self.requests if r.task_id == task_id]


def _find(items, item_id):
    for item in items:
        if item.id == item_id:
            return item
    return None


async def load_snapshot(session: AsyncSession) -> Snapshot:
    """Read every collection. Called once per actor action, never cached."""
    async def _all(model):
        result = await session.execute(select(model))
        return list(result.scalars().all())

    return Snapshot(
        users=await _all(User),
        buildings=await _all(Building),
        units=await _all(Unit),
        components=await _all(Component),
        tasks=await _all(MaintenanceTask),
        providers=await _all(ServiceProvider),
        requests=await _all(ServiceRequest),
        expenses=await _all(Expense),
        contingency_documents=await _all(ContingencyDocument),
        notifications=await _all(Notification),
    )


def managed_user_ids(actor: Actor, users: List[User]) -> Set[str]:
    """The actor plus, for an Admin, the Property Managers it provisioned."""
    ids = {actor.id}
    if actor.is_admin:
        ids.update(
            u.id for u in users
            if u.role == UserRole.property_manager.value and u.created_by == actor.id
        )
    return ids


def visible_building_ids(actor: Actor, snapshot: Snapshot) -> Set[str]:
    """Single ownership traversal every other filter is derived from."""
    if actor.is_super_admin:
        return {b.id for b in snapshot.buildings}
    if actor.is_admin or actor.is_manager:
        owners = managed_user_ids(actor, snapshot.users)
        return {b.id for b in snapshot.buildings if b.created_by in owners}
    # Service providers reach buildings only through their requests
    return set()


def visible_providers(actor: Actor, snapshot: Snapshot) -> List[ServiceProvider]:
    if actor.is_super_admin or actor.is_admin:
        return list(snapshot.providers)
    if actor.is_manager:
        global_creators = {
            u.id for u in snapshot.users
            if u.role in (UserRole.super_admin.value, UserRole.admin.value)
        }
        return [
            p for p in snapshot.providers
            if p.created_by in global_creators or p.created_by == actor.id
        ]
    return [p for p in snapshot.providers if p.user_id == actor.id]


def visible_contingency_documents(actor: Actor, snapshot: Snapshot) -> List[ContingencyDocument]:
    # Documents record the uploader's display name, not an id
    if actor.is_super_admin:
        return list(snapshot.contingency_documents)
    if actor.is_admin or actor.is_manager:
        owner_ids = managed_user_ids(actor, snapshot.users)
        names = {u.username for u in snapshot.users if u.id in owner_ids}
        names.add(actor.display_name)
        return [d for d in snapshot.contingency_documents if d.uploaded_by in names]
    return []


def scope_for(actor: Actor, snapshot: Snapshot) -> ScopedView:
    """Filter the snapshot down to what the actor may read."""
    if actor.is_provider:
        return scope_for_provider(actor, snapshot)

    building_ids = visible_building_ids(actor, snapshot)
    tasks = [t for t in snapshot.tasks if t.building_id in building_ids]
    task_ids = {t.id for t in tasks}

    return ScopedView(
        actor=actor,
        buildings=[b for b in snapshot.buildings if b.id in building_ids],
        units=[u for u in snapshot.units if u.building_id in building_ids],
        components=[c for c in snapshot.components if c.building_id in building_ids],
        tasks=tasks,
        providers=visible_providers(actor, snapshot),
        # A request whose task vanished is still reachable through its copied building_id
        requests=[
            r for r in snapshot.requests
            if r.task_id in task_ids or r.building_id in building_ids
        ],
        expenses=[e for e in snapshot.expenses if e.building_id in building_ids],
        contingency_documents=visible_contingency_documents(actor, snapshot),
        notifications=[n for n in snapshot.notifications if n.user_id == actor.id],
    )


def scope_for_provider(actor: Actor, snapshot: Snapshot) -> ScopedView:
    """
    Service provider view: requests addressed to the provider profile linked
    to this login, and the tasks/buildings those requests point at.
    """
    profile_ids = {p.id for p in snapshot.providers if p.user_id == actor.id}
    requests = [r for r in snapshot.requests if r.provider_id in profile_ids]
    task_ids = {r.task_id for r in requests}
    tasks = [t for t in snapshot.tasks if t.id in task_ids]
    building_ids = {t.building_id for t in tasks}

    return ScopedView(
        actor=actor,
        buildings=[b for b in snapshot.buildings if b.id in building_ids],
        units=[],
        components=[],
        tasks=tasks,
        providers=[p for p in snapshot.providers if p.id in profile_ids],
        requests=requests,
        expenses=[],
        contingency_documents=[],
        notifications=[n for n in snapshot.notifications if n.user_id == actor.id],
    )


def can_delete_provider(actor: Actor, provider: ServiceProvider) -> bool:
    return actor.is_super_admin or actor.is_admin or provider.created_by == actor.id


def can_manage(actor: Actor) -> bool:
    """Roles allowed to create and delete buildings, tasks and requests."""
    return actor.is_super_admin or actor.is_admin or actor.is_manager


async def scoped_view(session: AsyncSession, actor: Actor) -> ScopedView:
    """Live snapshot + scope in one call; what every service uses before reading."""
    snapshot = await load_snapshot(session)
    return scope_for(actor, snapshot)
