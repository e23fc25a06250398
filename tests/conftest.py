import os

# Must be set before maintbot.database.core builds its engine
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

from datetime import date
from typing import Optional

import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from maintbot.database.core import Base
from maintbot.database.models import (
    User, UserRole, Building, Unit, Component, MaintenanceTask, ServiceProvider, Recurrence, TaskStatus
)
from maintbot.services.visibility_service import Actor


@pytest_asyncio.fixture
async def async_session():
    # In-memory SQLite, one connection shared by schema setup and the session
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session

    await engine.dispose()


# --- Factories ---

async def make_user(
    session,
    role: UserRole,
    username: str,
    created_by: Optional[str] = None,
    tg_id: Optional[int] = None
) -> User:
    user = User(
        email=f"{username.lower().replace(' ', '.')}@example.com",
        username=username,
        role=role.value,
        created_by=created_by,
        tg_id=tg_id,
        is_active=True
    )
    session.add(user)
    await session.flush()
    return user


def actor_of(user: User) -> Actor:
    return Actor.from_user(user)


async def make_building(session, owner: User, name: str = "Maple Court") -> Building:
    building = Building(name=name, address=f"{name} 1, Springfield", created_by=owner.id)
    session.add(building)
    await session.flush()
    return building


async def make_unit(session, building: Building, number: str = "101") -> Unit:
    unit = Unit(building_id=building.id, unit_number=number, images=[])
    session.add(unit)
    await session.flush()
    return unit


async def make_component(session, building: Building, name: str = "Boiler", unit: Unit = None) -> Component:
    component = Component(
        building_id=building.id,
        unit_id=unit.id if unit else None,
        unit_number=unit.unit_number if unit else None,
        name=name,
        parent_category="Mechanical",
        sub_category="Heating",
        images=[]
    )
    session.add(component)
    await session.flush()
    return component


async def make_task(
    session,
    building: Building,
    name: str = "Inspect boiler",
    task_date: Optional[date] = date(2030, 5, 1),
    specialty: str = "HVAC",
    status: TaskStatus = TaskStatus.new,
    **fields
) -> MaintenanceTask:
    task = MaintenanceTask(
        building_id=building.id,
        name=name,
        description="",
        specialty=specialty,
        recurrence=fields.pop("recurrence", Recurrence.one_time.value),
        status=status.value,
        task_date=task_date,
        **fields
    )
    session.add(task)
    await session.flush()
    return task


async def make_provider(
    session,
    creator: User,
    name: str = "Cool Air Ltd",
    specialty: str = "HVAC",
    login: Optional[User] = None
) -> ServiceProvider:
    provider = ServiceProvider(
        name=name,
        email=f"{name.lower().replace(' ', '.')}@example.com",
        specialty=specialty,
        user_id=login.id if login else None,
        created_by=creator.id
    )
    session.add(provider)
    await session.flush()
    return provider
