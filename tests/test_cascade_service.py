import pytest
from datetime import date

from sqlalchemy import select, func

from maintbot.database.models import (
    Building, Unit, Component, MaintenanceTask, ServiceProvider, ServiceRequest, Expense,
    UserRole, Recurrence
)
from maintbot.services import cascade_service
from maintbot.services.errors import AuthorizationError, ConflictError, PartialCascadeFailure, ValidationError

from conftest import make_user, actor_of, make_building, make_unit, make_component, make_task, make_provider


async def _count(session, model, **filters):
    stmt = select(func.count()).select_from(model)
    for key, value in filters.items():
        stmt = stmt.where(getattr(model, key) == value)
    return (await session.execute(stmt)).scalar_one()


def _request(task, provider):
    return ServiceRequest(
        task_id=task.id, provider_id=provider.id, specialty=task.specialty,
        building_id=task.building_id, status="Sent",
        status_history=[], comments=[], documents=[]
    )


async def _populated_building(session, pm, name="Maple Court"):
    """Building with a unit, a component, a master with 2 instances, a one-time task, 2 requests, 1 expense."""
    building = await make_building(session, pm, name)
    unit = await make_unit(session, building)
    component = await make_component(session, building, unit=unit)
    provider = await make_provider(session, pm)

    master = await make_task(session, building, name="Filter", task_date=None,
                             recurrence=Recurrence.monthly.value,
                             start_date=date(2024, 1, 1), end_date=date(2024, 2, 1))
    first = await make_task(session, building, name="Filter", task_date=date(2024, 1, 1),
                            recurring_task_id=master.id)
    second = await make_task(session, building, name="Filter", task_date=date(2024, 2, 1),
                             recurring_task_id=master.id)
    single = await make_task(session, building, name="Paint lobby", component_id=component.id, unit_id=unit.id)

    session.add_all([_request(first, provider), _request(single, provider)])
    session.add(Expense(building_id=building.id, building_name=building.name, component_id=component.id,
                        component_name=component.name, year=2023, cost=500))
    await session.commit()
    return building, provider, master, [first, second]


@pytest.mark.asyncio
async def test_delete_building_removes_everything_beneath(async_session):
    pm = await make_user(async_session, UserRole.property_manager, "Pat")
    building, provider, _, _ = await _populated_building(async_session, pm)
    other, _, _, _ = await _populated_building(async_session, pm, "Oak Plaza")

    result = await cascade_service.delete_building(async_session, actor_of(pm), building.id)

    assert result.message == (
        "Building deleted; 4 tasks, 2 related service requests, 1 component, 1 unit, 1 expense also removed"
    )
    assert result.deleted == len(result.plan.steps) == 10
    for model in (MaintenanceTask, ServiceRequest, Component, Unit, Expense):
        assert await _count(async_session, model, building_id=building.id) == 0
    assert await async_session.get(Building, building.id) is None

    # Sibling building and the shared provider are untouched
    assert await _count(async_session, MaintenanceTask, building_id=other.id) == 4
    assert await _count(async_session, ServiceRequest, building_id=other.id) == 2
    assert await async_session.get(ServiceProvider, provider.id) is not None


@pytest.mark.asyncio
async def test_partial_failure_can_be_resumed(async_session, monkeypatch):
    pm = await make_user(async_session, UserRole.property_manager, "Pat")
    building, _, _, _ = await _populated_building(async_session, pm)
    building_id = building.id

    original = cascade_service._delete_record

    async def flaky_delete(session, model, record_id):
        if model is Unit:
            raise RuntimeError("connection reset")
        return await original(session, model, record_id)

    monkeypatch.setattr(cascade_service, "_delete_record", flaky_delete)

    with pytest.raises(PartialCascadeFailure) as exc_info:
        await cascade_service.delete_building(async_session, actor_of(pm), building_id)

    failure = exc_info.value
    # tasks, requests and the component went through before the unit step
    assert failure.completed == 7
    assert failure.step.startswith("unit ")
    assert await _count(async_session, MaintenanceTask, building_id=building_id) == 0
    assert await _count(async_session, Unit, building_id=building_id) == 1
    assert await _count(async_session, Building, id=building_id) == 1

    monkeypatch.setattr(cascade_service, "_delete_record", original)
    result = await cascade_service.resume_cascade(async_session, failure.plan)

    # Already deleted rows are skipped: unit, expense and building remain
    assert result.deleted == 3
    assert await _count(async_session, Unit, building_id=building_id) == 0
    assert await _count(async_session, Expense, building_id=building_id) == 0
    assert await _count(async_session, Building, id=building_id) == 0


@pytest.mark.asyncio
async def test_executing_a_plan_twice_is_harmless(async_session):
    pm = await make_user(async_session, UserRole.property_manager, "Pat")
    building, _, _, _ = await _populated_building(async_session, pm)

    plan = await cascade_service.plan_building_delete(async_session, actor_of(pm), building.id)
    await cascade_service.execute_plan(async_session, plan)
    again = await cascade_service.execute_plan(async_session, plan)

    assert again.deleted == 0


@pytest.mark.asyncio
async def test_delete_master_task_with_instances(async_session):
    pm = await make_user(async_session, UserRole.property_manager, "Pat")
    building, _, master, instances = await _populated_building(async_session, pm)

    result = await cascade_service.delete_task(async_session, actor_of(pm), master.id)

    assert result.message == "Recurring task and 2 instances deleted; 1 related service request also removed"
    assert await _count(async_session, MaintenanceTask, recurring_task_id=master.id) == 0
    assert await async_session.get(MaintenanceTask, master.id) is None
    # The one-time task and its request stay
    assert await _count(async_session, MaintenanceTask, building_id=building.id) == 1
    assert await _count(async_session, ServiceRequest, building_id=building.id) == 1


@pytest.mark.asyncio
async def test_delete_single_task(async_session):
    pm = await make_user(async_session, UserRole.property_manager, "Pat")
    building = await make_building(async_session, pm)
    task = await make_task(async_session, building)
    await async_session.commit()

    result = await cascade_service.delete_task(async_session, actor_of(pm), task.id)

    assert result.message == "Task deleted"
    assert result.removed == {}


@pytest.mark.asyncio
async def test_delete_outside_scope(async_session):
    pm = await make_user(async_session, UserRole.property_manager, "Pat")
    stranger = await make_user(async_session, UserRole.property_manager, "Sam")
    provider_login = await make_user(async_session, UserRole.service_provider, "Fixer")
    building = await make_building(async_session, pm)
    await async_session.commit()

    with pytest.raises(ValidationError):
        await cascade_service.delete_building(async_session, actor_of(stranger), building.id)
    with pytest.raises(AuthorizationError):
        await cascade_service.delete_building(async_session, actor_of(provider_login), building.id)
    assert await async_session.get(Building, building.id) is not None


@pytest.mark.asyncio
async def test_unit_delete_blocked_by_references(async_session):
    pm = await make_user(async_session, UserRole.property_manager, "Pat")
    building = await make_building(async_session, pm)
    unit = await make_unit(async_session, building)
    component = await make_component(async_session, building, unit=unit)
    task = await make_task(async_session, building, unit_id=unit.id)
    await async_session.commit()

    with pytest.raises(ConflictError) as exc_info:
        await cascade_service.delete_unit(async_session, actor_of(pm), unit.id)

    assert exc_info.value.blocking == {"task": [task.id], "component": [component.id]}
    assert await _count(async_session, Unit, id=unit.id) == 1


@pytest.mark.asyncio
async def test_component_delete(async_session):
    pm = await make_user(async_session, UserRole.property_manager, "Pat")
    building = await make_building(async_session, pm)
    used = await make_component(async_session, building, "Boiler")
    free = await make_component(async_session, building, "Fence")
    await make_task(async_session, building, component_id=used.id)
    await async_session.commit()

    with pytest.raises(ConflictError):
        await cascade_service.delete_component(async_session, actor_of(pm), used.id)

    assert await cascade_service.delete_component(async_session, actor_of(pm), free.id) == "Component deleted"
    assert await _count(async_session, Component, building_id=building.id) == 1


@pytest.mark.asyncio
async def test_unreferenced_unit_delete(async_session):
    pm = await make_user(async_session, UserRole.property_manager, "Pat")
    building = await make_building(async_session, pm)
    unit = await make_unit(async_session, building)
    await async_session.commit()

    assert await cascade_service.delete_unit(async_session, actor_of(pm), unit.id) == "Unit deleted"
    assert await _count(async_session, Unit, id=unit.id) == 0


@pytest.mark.asyncio
async def test_provider_delete_permissions(async_session):
    admin = await make_user(async_session, UserRole.admin, "Ada")
    pm = await make_user(async_session, UserRole.property_manager, "Pat", created_by=admin.id)
    building = await make_building(async_session, pm)
    task = await make_task(async_session, building)
    shared = await make_provider(async_session, admin, "Global Plumbing", "Plumbing")
    async_session.add(_request(task, shared))
    await async_session.commit()

    with pytest.raises(AuthorizationError):
        await cascade_service.delete_provider(async_session, actor_of(pm), shared.id)

    result = await cascade_service.delete_provider(async_session, actor_of(admin), shared.id)

    assert result.message == "Provider deleted; 1 related service request also removed"
    assert await _count(async_session, ServiceRequest, provider_id=shared.id) == 0
    assert await async_session.get(MaintenanceTask, task.id) is not None
