"""
Cascading deletes for buildings, tasks and providers.

Every cascade is first built as a DeletePlan: an ordered list of single-row
deletes computed from one snapshot. The plan is then executed step by step,
each delete committed on its own. Deleting a row that is already gone is a
no-op, so a plan that failed halfway can simply be executed again with
resume_cascade().

Building order: tasks, their requests, components, units, expenses, building.
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from maintbot.database.models import (
    Building, Unit, Component, MaintenanceTask, ServiceProvider, ServiceRequest, Expense
)
from maintbot.services.errors import (
    AuthorizationError, ConflictError, PartialCascadeFailure, ValidationError
)
from maintbot.services.visibility_service import (
    Actor, can_delete_provider, can_manage, load_snapshot, scope_for
)

MODELS = {
    "task": MaintenanceTask,
    "request": ServiceRequest,
    "component": Component,
    "unit": Unit,
    "expense": Expense,
    "building": Building,
    "provider": ServiceProvider,
}

LABELS = {
    "task": ("task", "tasks"),
    "request": ("related service request", "related service requests"),
    "component": ("component", "components"),
    "unit": ("unit", "units"),
    "expense": ("expense", "expenses"),
}


@dataclass(frozen=True)
class DeleteStep:
    kind: str
    record_id: str


@dataclass
class DeletePlan:
    root_kind: str
    root_id: str
    title: str
    steps: List[DeleteStep] = field(default_factory=list)

    def add(self, kind: str, record_ids):
        seen = set(self.steps)
        for record_id in record_ids:
            step = DeleteStep(kind, record_id)
            if step not in seen:
                self.steps.append(step)
                seen.add(step)

    def counts(self) -> Dict[str, int]:
        """Planned deletes per kind, the root record excluded."""
        counter = Counter(
            s.kind for s in self.steps
            if not (s.kind == self.root_kind and s.record_id == self.root_id)
        )
        return dict(counter)


@dataclass
class CascadeResult:
    plan: DeletePlan
    deleted: int
    message: str

    @property
    def removed(self) -> Dict[str, int]:
        return self.plan.counts()


def plural(count: int, kind: str) -> str:
    one, many = LABELS[kind]
    return f"{count} {one if count == 1 else many}"


def describe(plan: DeletePlan) -> str:
    """'Task deleted; 3 related service requests also removed'"""
    # Instances of a master are already named in the title
    counts = {k: n for k, n in plan.counts().items() if k != plan.root_kind}
    parts = [plural(n, kind) for kind, n in counts.items() if n]
    if not parts:
        return f"{plan.title} deleted"
    return f"{plan.title} deleted; {', '.join(parts)} also removed"


async def _delete_record(session: AsyncSession, model, record_id: str) -> bool:
    """Delete one row and commit. False if it did not exist."""
    result = await session.execute(delete(model).where(model.id == record_id))
    await session.commit()
    return bool(result.rowcount)


async def execute_plan(session: AsyncSession, plan: DeletePlan) -> CascadeResult:
    """
    Run every step in order. On failure the failing statement is rolled
    back, earlier deletes stay committed and PartialCascadeFailure carries
    the plan for a retry.
    """
    deleted = 0
    for index, step in enumerate(plan.steps):
        try:
            if await _delete_record(session, MODELS[step.kind], step.record_id):
                deleted += 1
        except Exception as e:
            await session.rollback()
            logging.error(
                f"Cascade for {plan.root_kind} {plan.root_id} failed at step {index + 1}/"
                f"{len(plan.steps)} ({step.kind} {step.record_id}): {e}"
            )
            raise PartialCascadeFailure(
                f"Delete stopped after {index} of {len(plan.steps)} steps. Retry to finish.",
                plan=plan,
                completed=index,
                step=f"{step.kind} {step.record_id}",
            ) from e

    message = describe(plan)
    logging.info(f"Cascade {plan.root_kind} {plan.root_id}: {deleted}/{len(plan.steps)} rows deleted")
    return CascadeResult(plan=plan, deleted=deleted, message=message)


async def resume_cascade(session: AsyncSession, plan: DeletePlan) -> CascadeResult:
    """Execute a plan again from the top; already deleted rows are skipped."""
    logging.info(f"Resuming cascade for {plan.root_kind} {plan.root_id}")
    return await execute_plan(session, plan)


# --- Plans ---

async def plan_building_delete(session: AsyncSession, actor: Actor, building_id: str) -> DeletePlan:
    if not can_manage(actor):
        raise AuthorizationError("You cannot delete buildings")

    snapshot = await load_snapshot(session)
    view = scope_for(actor, snapshot)
    building = view.building(building_id)
    if not building:
        raise ValidationError("Building not found")

    task_ids = [t.id for t in snapshot.tasks if t.building_id == building_id]
    task_id_set = set(task_ids)

    plan = DeletePlan("building", building_id, "Building")
    plan.add("task", task_ids)
    # Copied building_id catches requests whose task a previous run already removed
    plan.add("request", [
        r.id for r in snapshot.requests
        if r.task_id in task_id_set or r.building_id == building_id
    ])
    # Components before units, they may point at one
    plan.add("component", [c.id for c in snapshot.components if c.building_id == building_id])
    plan.add("unit", [u.id for u in snapshot.units if u.building_id == building_id])
    plan.add("expense", [e.id for e in snapshot.expenses if e.building_id == building_id])
    plan.add("building", [building_id])
    return plan


async def plan_task_delete(session: AsyncSession, actor: Actor, task_id: str) -> DeletePlan:
    if not can_manage(actor):
        raise AuthorizationError("You cannot delete tasks")

    snapshot = await load_snapshot(session)
    view = scope_for(actor, snapshot)
    task = view.task(task_id)
    if not task:
        raise ValidationError("Task not found")

    task_ids = [task.id]
    title = "Task"
    if task.is_master:
        instance_ids = [t.id for t in snapshot.tasks if t.recurring_task_id == task.id]
        task_ids = instance_ids + task_ids
        title = f"Recurring task and {len(instance_ids)} instance{'' if len(instance_ids) == 1 else 's'}"

    id_set = set(task_ids)
    plan = DeletePlan("task", task.id, title)
    plan.add("request", [r.id for r in snapshot.requests if r.task_id in id_set])
    plan.add("task", task_ids)
    return plan


async def plan_provider_delete(session: AsyncSession, actor: Actor, provider_id: str) -> DeletePlan:
    snapshot = await load_snapshot(session)
    view = scope_for(actor, snapshot)
    provider = view.provider(provider_id)
    if not provider:
        raise ValidationError("Service provider not found")
    if not can_delete_provider(actor, provider):
        raise AuthorizationError("Only the creator of this provider or an admin can delete it")

    plan = DeletePlan("provider", provider_id, "Provider")
    plan.add("request", [r.id for r in snapshot.requests if r.provider_id == provider_id])
    plan.add("provider", [provider_id])
    return plan


# --- Entry points ---

async def delete_building(session: AsyncSession, actor: Actor, building_id: str) -> CascadeResult:
    plan = await plan_building_delete(session, actor, building_id)
    logging.info(f"User {actor.id} deleting building {building_id}: {len(plan.steps)} steps")
    return await execute_plan(session, plan)


async def delete_task(session: AsyncSession, actor: Actor, task_id: str) -> CascadeResult:
    plan = await plan_task_delete(session, actor, task_id)
    logging.info(f"User {actor.id} deleting task {task_id}: {len(plan.steps)} steps")
    return await execute_plan(session, plan)


async def delete_provider(session: AsyncSession, actor: Actor, provider_id: str) -> CascadeResult:
    plan = await plan_provider_delete(session, actor, provider_id)
    logging.info(f"User {actor.id} deleting provider {provider_id}: {len(plan.steps)} steps")
    return await execute_plan(session, plan)


async def delete_unit(session: AsyncSession, actor: Actor, unit_id: str) -> str:
    """Delete a unit nothing references. Raises ConflictError otherwise."""
    if not can_manage(actor):
        raise AuthorizationError("You cannot delete units")

    snapshot = await load_snapshot(session)
    view = scope_for(actor, snapshot)
    unit = view.unit(unit_id)
    if not unit:
        raise ValidationError("Unit not found")

    blocking = {
        "task": [t.id for t in snapshot.tasks if t.unit_id == unit_id],
        "component": [c.id for c in snapshot.components if c.unit_id == unit_id],
    }
    blocking = {kind: ids for kind, ids in blocking.items() if ids}
    if blocking:
        raise ConflictError(_conflict_message("Unit", blocking), blocking)

    await _delete_record(session, Unit, unit_id)
    logging.info(f"Unit {unit_id} deleted by {actor.id}")
    return "Unit deleted"


async def delete_component(session: AsyncSession, actor: Actor, component_id: str) -> str:
    """Delete a component no task references. Raises ConflictError otherwise."""
    if not can_manage(actor):
        raise AuthorizationError("You cannot delete components")

    snapshot = await load_snapshot(session)
    view = scope_for(actor, snapshot)
    component = view.component(component_id)
    if not component:
        raise ValidationError("Component not found")

    task_ids = [t.id for t in snapshot.tasks if t.component_id == component_id]
    if task_ids:
        blocking = {"task": task_ids}
        raise ConflictError(_conflict_message("Component", blocking), blocking)

    await _delete_record(session, Component, component_id)
    logging.info(f"Component {component_id} deleted by {actor.id}")
    return "Component deleted"


def _conflict_message(what: str, blocking: Dict[str, List[str]]) -> str:
    parts = [f"{len(ids)} {kind}{'' if len(ids) == 1 else 's'}" for kind, ids in blocking.items()]
    return f"{what} is still used by {', '.join(parts)}. Remove those first."
