"""
Historical expenses and the contingency fund document library.
"""
import logging
from typing import List, Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from maintbot.database.models import Expense, ContingencyDocument
from maintbot.schemas.validation import ExpenseCreate
from maintbot.services.errors import AuthorizationError, ValidationError
from maintbot.services.visibility_service import Actor, can_manage, scoped_view


async def add_expense(session: AsyncSession, actor: Actor, data: ExpenseCreate) -> Expense:
    """
    Record a past cost for a component. Building and component must both be
    visible and belong together; their names are copied onto the record.
    """
    if not can_manage(actor):
        raise AuthorizationError("Only managers can record expenses")

    view = await scoped_view(session, actor)
    building = view.building(data.building_id)
    if not building:
        raise ValidationError("Building not found")
    component = view.component(data.component_id)
    if not component or component.building_id != building.id:
        raise ValidationError("Component not found in this building")

    expense = Expense(
        building_id=building.id,
        building_name=building.name,
        component_id=component.id,
        component_name=component.name,
        year=data.year,
        cost=data.cost
    )
    session.add(expense)
    await session.commit()

    logging.info(f"Expense {expense.id}: {data.cost} for {component.name} ({data.year}) by {actor.id}")
    return expense


async def list_expenses(session: AsyncSession, actor: Actor, building_id: Optional[str] = None) -> List[Expense]:
    view = await scoped_view(session, actor)
    expenses = view.expenses
    if building_id:
        expenses = [e for e in expenses if e.building_id == building_id]
    return sorted(expenses, key=lambda e: (e.year, e.building_name, e.component_name), reverse=True)


async def delete_expense(session: AsyncSession, actor: Actor, expense_id: str) -> str:
    if not can_manage(actor):
        raise AuthorizationError("Only managers can delete expenses")

    view = await scoped_view(session, actor)
    if not view.expense(expense_id):
        raise ValidationError("Expense not found")

    await session.execute(delete(Expense).where(Expense.id == expense_id))
    await session.commit()
    return "Expense deleted"


# --- Contingency fund documents ---

async def add_contingency_document(
    session: AsyncSession,
    actor: Actor,
    filename: str,
    data: bytes,
    storage
) -> ContingencyDocument:
    if not can_manage(actor):
        raise AuthorizationError("Only managers can upload fund documents")

    url = await storage.save(actor.id, filename, data)
    document = ContingencyDocument(
        name=filename,
        url=url,
        uploaded_by=actor.display_name
    )
    session.add(document)
    await session.commit()

    logging.info(f"Contingency document {document.id} uploaded by {actor.id}")
    return document


async def list_contingency_documents(session: AsyncSession, actor: Actor) -> List[ContingencyDocument]:
    view = await scoped_view(session, actor)
    return sorted(view.contingency_documents, key=lambda d: d.name.lower())


async def delete_contingency_document(session: AsyncSession, actor: Actor, document_id: str) -> str:
    if not can_manage(actor):
        raise AuthorizationError("Only managers can delete fund documents")

    view = await scoped_view(session, actor)
    if not view.contingency_document(document_id):
        raise ValidationError("Document not found")

    await session.execute(delete(ContingencyDocument).where(ContingencyDocument.id == document_id))
    await session.commit()
    return "Document deleted"
