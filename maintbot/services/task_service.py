"""
Maintenance task service: create, edit and read tasks within the actor's scope.
"""
import logging
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from maintbot.database.models import MaintenanceTask, Recurrence, new_id
from maintbot.schemas.validation import TaskCreate, TaskUpdate
from maintbot.services.errors import AuthorizationError, ValidationError
from maintbot.services.recurrence_service import expand_recurring_task
from maintbot.services.visibility_service import Actor, ScopedView, can_manage, scoped_view

# Columns an edit may change but never clear
REQUIRED_TASK_FIELDS = ("name", "description", "specialty", "status")


def _resolve_location(view: ScopedView, building_id: str, unit_id: Optional[str], component_id: Optional[str]):
    """Check building/unit/component exist in scope and belong together."""
    building = view.building(building_id)
    if not building:
        raise ValidationError("Building not found")

    unit = None
    if unit_id:
        unit = view.unit(unit_id)
        if not unit or unit.building_id != building.id:
            raise ValidationError("Unit not found in this building")

    component = None
    if component_id:
        component = view.component(component_id)
        if not component or component.building_id != building.id:
            raise ValidationError("Component not found in this building")
        if unit and component.unit_id and component.unit_id != unit.id:
            raise ValidationError("Component belongs to another unit")
        if not unit and component.unit_id:
            unit = view.unit(component.unit_id)

    return building, unit, component


async def create_task(
    session: AsyncSession,
    actor: Actor,
    data: TaskCreate
) -> Tuple[MaintenanceTask, List[MaintenanceTask]]:
    """
    Create a one-time task, or a master recurring task plus its instances.

    The master is persisted first, then one instance per occurrence date.
    Returns (task, instances); instances is empty for one-time tasks.
    """
    if not can_manage(actor):
        raise AuthorizationError("Only managers can create tasks")

    view = await scoped_view(session, actor)
    building, unit, component = _resolve_location(view, data.building_id, data.unit_id, data.component_id)

    if data.provider_id and not view.provider(data.provider_id):
        raise ValidationError("Service provider not found")

    if data.start_date and data.end_date and data.start_date > data.end_date:
        raise ValidationError("Start date is after end date")

    task = MaintenanceTask(
        id=new_id(),
        building_id=building.id,
        component_id=component.id if component else None,
        component_name=component.name if component else None,
        unit_id=unit.id if unit else None,
        unit_number=unit.unit_number if unit else None,
        name=data.name,
        description=data.description,
        specialty=data.specialty,
        recurrence=data.recurrence,
        status=data.status,
        cost=data.cost,
        provider_id=data.provider_id,
        task_date=data.task_date,
        start_date=data.start_date,
        end_date=data.end_date,
    )
    session.add(task)
    await session.commit()

    instances = []
    if task.is_master:
        for payload in expand_recurring_task(task):
            instance = MaintenanceTask(id=new_id(), **payload)
            session.add(instance)
            instances.append(instance)
        await session.commit()

    logging.info(
        f"Task {task.id} ({task.recurrence}) created in building {building.id} "
        f"by {actor.id}, {len(instances)} instances"
    )
    return task, instances


async def get_task(session: AsyncSession, actor: Actor, task_id: str) -> MaintenanceTask:
    view = await scoped_view(session, actor)
    task = view.task(task_id)
    if not task:
        raise ValidationError("Task not found")
    return task


async def update_task(
    session: AsyncSession,
    actor: Actor,
    task_id: str,
    data: TaskUpdate
) -> MaintenanceTask:
    """
    Edit task fields. Editing a master does not touch instances that were
    already generated.
    """
    if not can_manage(actor):
        raise AuthorizationError("Only managers can edit tasks")

    view = await scoped_view(session, actor)
    task = view.task(task_id)
    if not task:
        raise ValidationError("Task not found")

    changes = data.model_dump(exclude_unset=True)
    for key in REQUIRED_TASK_FIELDS:
        if key in changes and changes[key] is None:
            raise ValidationError(f"Task {key.replace('_', ' ')} cannot be cleared")
    if task.is_master and changes.get("task_date"):
        raise ValidationError("Recurring tasks use start and end dates")
    if not task.is_master and (changes.get("start_date") or changes.get("end_date")):
        raise ValidationError("One-time tasks use a single task date")
    if not task.is_master and "task_date" in changes and changes["task_date"] is None:
        raise ValidationError("One-time tasks need a task date")
    if changes.get("provider_id") and not view.provider(changes["provider_id"]):
        raise ValidationError("Service provider not found")

    start = changes.get("start_date", task.start_date)
    end = changes.get("end_date", task.end_date)
    if task.is_master and (not start or not end):
        raise ValidationError("Recurring tasks need a start and an end date")
    if start and end and start > end:
        raise ValidationError("Start date is after end date")

    for key, value in changes.items():
        setattr(task, key, value)
    await session.commit()

    logging.info(f"Task {task.id} updated by {actor.id}: {sorted(changes)}")
    return task


async def list_tasks(
    session: AsyncSession,
    actor: Actor,
    building_id: Optional[str] = None,
    include_masters: bool = False
) -> List[MaintenanceTask]:
    """Dated tasks in scope, soonest first. Masters are hidden unless asked for."""
    view = await scoped_view(session, actor)
    tasks = view.tasks
    if building_id:
        tasks = [t for t in tasks if t.building_id == building_id]
    if not include_masters:
        tasks = [t for t in tasks if t.recurrence == Recurrence.one_time.value]
    return sorted(tasks, key=lambda t: t.task_date or date.max)