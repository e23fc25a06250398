"""
Buildings, units and components, plus their image galleries.

Deletes of buildings, units and components live in cascade_service.
"""
import logging
import uuid
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from maintbot.database.models import Building, Unit, Component, ComponentType, utcnow
from maintbot.schemas.validation import BuildingCreate, UnitCreate, ComponentCreate
from maintbot.services.errors import AuthorizationError, ValidationError
from maintbot.services.visibility_service import Actor, ScopedView, can_manage, scoped_view


def _require_manager(actor: Actor):
    if not can_manage(actor):
        raise AuthorizationError("Only managers can change buildings")


async def _building_in_scope(session: AsyncSession, actor: Actor, building_id: str):
    view = await scoped_view(session, actor)
    building = view.building(building_id)
    if not building:
        raise ValidationError("Building not found")
    return view, building


async def create_building(session: AsyncSession, actor: Actor, data: BuildingCreate) -> Building:
    _require_manager(actor)

    building = Building(
        name=data.name,
        address=data.address,
        image_url=data.image_url,
        created_by=actor.id
    )
    session.add(building)
    await session.commit()

    logging.info(f"Building {building.id} ({building.name}) created by {actor.id}")
    return building


async def update_building(session: AsyncSession, actor: Actor, building_id: str, data: BuildingCreate) -> Building:
    _require_manager(actor)
    _, building = await _building_in_scope(session, actor, building_id)

    building.name = data.name
    building.address = data.address
    if data.image_url is not None:
        building.image_url = data.image_url
    await session.commit()
    return building


async def list_buildings(session: AsyncSession, actor: Actor) -> List[Building]:
    view = await scoped_view(session, actor)
    return sorted(view.buildings, key=lambda b: b.name.lower())


# --- Units ---

async def create_unit(session: AsyncSession, actor: Actor, data: UnitCreate) -> Unit:
    _require_manager(actor)
    view, building = await _building_in_scope(session, actor, data.building_id)

    number = data.unit_number.strip()
    if any(u.building_id == building.id and u.unit_number == number for u in view.units):
        raise ValidationError(f"Unit {number} already exists in {building.name}")

    unit = Unit(
        building_id=building.id,
        unit_number=number,
        occupant_name=data.occupant_name,
        occupant_type=data.occupant_type,
        occupant_start_date=data.occupant_start_date,
        occupant_end_date=data.occupant_end_date,
        images=[]
    )
    session.add(unit)
    await session.commit()

    logging.info(f"Unit {unit.id} ({number}) added to building {building.id}")
    return unit


async def update_unit(session: AsyncSession, actor: Actor, unit_id: str, data: UnitCreate) -> Unit:
    """Edit the number and occupant of a unit. The building cannot change."""
    _require_manager(actor)
    view = await scoped_view(session, actor)
    unit = view.unit(unit_id)
    if not unit:
        raise ValidationError("Unit not found")
    if data.building_id != unit.building_id:
        raise ValidationError("A unit cannot move to another building")

    number = data.unit_number.strip()
    if any(
        u.building_id == unit.building_id and u.unit_number == number and u.id != unit.id
        for u in view.units
    ):
        raise ValidationError(f"Unit {number} already exists in this building")

    unit.unit_number = number
    unit.occupant_name = data.occupant_name
    unit.occupant_type = data.occupant_type
    unit.occupant_start_date = data.occupant_start_date
    unit.occupant_end_date = data.occupant_end_date
    await session.commit()
    return unit


# --- Components ---

def _resolve_unit(view: ScopedView, building: Building, unit_id: Optional[str]) -> Optional[Unit]:
    if not unit_id:
        return None
    unit = view.unit(unit_id)
    if not unit or unit.building_id != building.id:
        raise ValidationError("Unit not found in this building")
    return unit


async def create_component(session: AsyncSession, actor: Actor, data: ComponentCreate) -> Component:
    _require_manager(actor)
    view, building = await _building_in_scope(session, actor, data.building_id)
    unit = _resolve_unit(view, building, data.unit_id)

    if data.type == ComponentType.unit.value and not unit:
        raise ValidationError("Unit components need a unit")

    fields = data.model_dump(exclude={"building_id", "unit_id"})
    component = Component(
        building_id=building.id,
        unit_id=unit.id if unit else None,
        unit_number=unit.unit_number if unit else None,
        images=[],
        **fields
    )
    session.add(component)
    await session.commit()

    logging.info(f"Component {component.id} ({component.name}) added to building {building.id}")
    return component


async def update_component(session: AsyncSession, actor: Actor, component_id: str, data: ComponentCreate) -> Component:
    _require_manager(actor)
    view = await scoped_view(session, actor)
    component = view.component(component_id)
    if not component:
        raise ValidationError("Component not found")
    building = view.building(component.building_id)
    if data.building_id != building.id:
        raise ValidationError("A component cannot move to another building")
    unit = _resolve_unit(view, building, data.unit_id)

    for key, value in data.model_dump(exclude={"building_id", "unit_id"}).items():
        setattr(component, key, value)
    component.unit_id = unit.id if unit else None
    component.unit_number = unit.unit_number if unit else None
    await session.commit()
    return component


def components_for(view: ScopedView, building_id: str, unit_id: Optional[str] = None) -> List[Component]:
    items = [c for c in view.components if c.building_id == building_id]
    if unit_id:
        items = [c for c in items if c.unit_id == unit_id]
    return sorted(items, key=lambda c: (c.parent_category, c.sub_category, c.name))


# --- Images ---

async def _image_owner(session: AsyncSession, actor: Actor, kind: str, owner_id: str):
    _require_manager(actor)
    view = await scoped_view(session, actor)
    owner = view.unit(owner_id) if kind == "unit" else view.component(owner_id)
    if not owner:
        raise ValidationError(f"{kind.capitalize()} not found")
    return owner


async def add_image(
    session: AsyncSession,
    actor: Actor,
    kind: str,
    owner_id: str,
    filename: str,
    data: bytes,
    storage,
    caption: str = ""
) -> dict:
    """Store an image for a unit or component ("unit" / "component")."""
    owner = await _image_owner(session, actor, kind, owner_id)

    url = await storage.save(owner.id, filename, data)
    image = {
        "id": str(uuid.uuid4()),
        "url": url,
        "caption": caption,
        "uploaded_at": utcnow().isoformat(),
    }
    owner.images = [*(owner.images or []), image]
    await session.commit()
    return image


async def delete_image(session: AsyncSession, actor: Actor, kind: str, owner_id: str, image_id: str) -> bool:
    """Remove an image from a unit or component. False when it was already gone."""
    owner = await _image_owner(session, actor, kind, owner_id)

    images = owner.images or []
    remaining = [i for i in images if i.get("id") != image_id]
    if len(remaining) == len(images):
        return False
    owner.images = remaining
    await session.commit()
    return True
