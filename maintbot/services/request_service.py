"""
Service request lifecycle.

A request moves Sent -> Accepted/Refused, Accepted -> In Progress/Completed,
In Progress -> Completed. Refused and Completed are terminal. Every change
appends one status_history entry and may move the linked task:

    Accepted  -> task On Hold
    Refused   -> task New
    Completed -> task Completed

The task is only written when its status actually differs.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from maintbot.database.models import (
    Building, MaintenanceTask, ServiceRequest, RequestStatus, TaskStatus, utcnow
)
from maintbot.schemas.validation import ServiceRequestCreate, ServiceRequestUpdate
from maintbot.services.errors import AuthorizationError, StaleReferenceError, ValidationError
from maintbot.services.notification_service import create_notification
from maintbot.services.visibility_service import Actor, ScopedView, can_manage, scoped_view

REQUEST_TRANSITIONS = {
    RequestStatus.sent.value: {RequestStatus.accepted.value, RequestStatus.refused.value},
    RequestStatus.accepted.value: {RequestStatus.in_progress.value, RequestStatus.completed.value},
    RequestStatus.in_progress.value: {RequestStatus.completed.value},
    RequestStatus.refused.value: set(),
    RequestStatus.completed.value: set(),
}

TASK_STATUS_FOR_REQUEST = {
    RequestStatus.accepted.value: TaskStatus.on_hold.value,
    RequestStatus.refused.value: TaskStatus.new.value,
    RequestStatus.completed.value: TaskStatus.completed.value,
}

# Overdue tasks get a request scheduled this many days out
URGENT_LEAD_DAYS = 2


@dataclass
class StatusUpdateResult:
    request: ServiceRequest
    task_status_changed: bool = False
    warnings: List[StaleReferenceError] = field(default_factory=list)


def allowed_transitions(status: str) -> List[str]:
    """Next statuses reachable from the given one, in lifecycle order."""
    targets = REQUEST_TRANSITIONS.get(RequestStatus(status).value, set())
    return [s.value for s in RequestStatus if s.value in targets]


def _history_entry(status: str, actor: Actor) -> dict:
    return {
        "status": status,
        "changed_at": utcnow().isoformat(),
        "changed_by": actor.display_name,
    }


def _get_request(view: ScopedView, request_id: str) -> ServiceRequest:
    request = view.request(request_id)
    if not request:
        raise ValidationError("Service request not found")
    return request


async def create_service_request(
    session: AsyncSession,
    actor: Actor,
    data: ServiceRequestCreate,
    today: Optional[date] = None
) -> ServiceRequest:
    """
    Send a task to a provider.

    The task and the provider are looked up in the actor's scoped view, so
    anything out of scope is reported as not found. The task moves to Sent
    even if it already was. When the task is overdue and no date was given,
    the request is scheduled two days out and marked urgent.
    """
    if not can_manage(actor):
        raise AuthorizationError("Only managers can send service requests")

    view = await scoped_view(session, actor)
    task = view.task(data.task_id)
    if not task:
        raise ValidationError("Task not found")
    if task.is_master:
        raise ValidationError("Recurring tasks are sent per occurrence")
    provider = view.provider(data.provider_id)
    if not provider:
        raise ValidationError("Service provider not found")

    specialty = data.specialty or task.specialty or provider.specialty
    if specialty not in (task.specialty, provider.specialty):
        raise ValidationError(
            f"Specialty '{specialty}' matches neither the task nor the provider"
        )

    today = today or date.today()
    is_overdue = (
        task.task_date is not None
        and task.task_date < today
        and task.status != TaskStatus.completed.value
    )

    scheduled_date = data.scheduled_date
    is_urgent = bool(data.is_urgent)
    if scheduled_date is None:
        if is_overdue:
            scheduled_date = today + timedelta(days=URGENT_LEAD_DAYS)
            is_urgent = data.is_urgent if data.is_urgent is not None else True
        else:
            scheduled_date = task.task_date

    request = ServiceRequest(
        id=str(uuid.uuid4()),
        task_id=task.id,
        provider_id=provider.id,
        specialty=specialty,
        notes=data.notes,
        generated_email=data.generated_email,
        sent_at=utcnow(),
        status=RequestStatus.sent.value,
        scheduled_date=scheduled_date,
        cost=data.cost,
        is_urgent=is_urgent,
        status_history=[_history_entry(RequestStatus.sent.value, actor)],
        comments=[],
        documents=[],
        building_id=task.building_id,
        unit_id=task.unit_id,
        unit_number=task.unit_number,
        component_name=task.component_name,
    )
    session.add(request)
    task.status = TaskStatus.sent.value
    await session.commit()

    logging.info(f"Request {request.id} sent to provider {provider.id} for task {task.id} by {actor.id}")

    if provider.user_id:
        await create_notification(
            session,
            provider.user_id,
            "New service request",
            f"{task.name} ({scheduled_date or 'no date'})" + (" - urgent" if is_urgent else ""),
            link_view="request",
            link_id=request.id,
        )

    return request


async def update_request_status(
    session: AsyncSession,
    actor: Actor,
    request_id: str,
    status: str
) -> StatusUpdateResult:
    """
    Move a request to a new status and sync its task.

    Illegal transitions (including re-applying the current status) raise
    ValidationError before anything is written. A task that no longer
    exists is reported in result.warnings; the request update still goes
    through.
    """
    try:
        status = RequestStatus(status).value
    except ValueError:
        raise ValidationError(f"Unknown request status: {status}")

    view = await scoped_view(session, actor)
    request = _get_request(view, request_id)

    current = RequestStatus(request.status).value
    if status not in REQUEST_TRANSITIONS[current]:
        raise ValidationError(f"Cannot change a request from {current} to {status}")

    request.status = status
    request.status_history = [*(request.status_history or []), _history_entry(status, actor)]

    result = StatusUpdateResult(request=request)
    task = await session.get(MaintenanceTask, request.task_id)
    target = TASK_STATUS_FOR_REQUEST.get(status)
    if task is None:
        warning = StaleReferenceError(f"Task {request.task_id} of request {request.id} no longer exists")
        logging.warning(str(warning))
        result.warnings.append(warning)
    elif target and task.status != target:
        task.status = target
        result.task_status_changed = True

    await session.commit()
    logging.info(f"Request {request.id}: {current} -> {status} by {actor.id}")

    if actor.is_provider:
        await _notify_building_owner(session, request, task, actor, status)

    return result


async def _notify_building_owner(session, request, task, actor, status):
    building_id = request.building_id or (task.building_id if task else None)
    building = await session.get(Building, building_id) if building_id else None
    if not building:
        return
    await create_notification(
        session,
        building.created_by,
        f"Request {status}",
        f"{actor.display_name} set the request for {task.name if task else 'a deleted task'} to {status}",
        link_view="request",
        link_id=request.id,
    )


async def update_request(
    session: AsyncSession,
    actor: Actor,
    request_id: str,
    data: ServiceRequestUpdate
) -> ServiceRequest:
    """Edit notes, cost, schedule, provider or urgency. Status has its own path."""
    if not can_manage(actor):
        raise AuthorizationError("Only managers can edit service requests")

    view = await scoped_view(session, actor)
    request = _get_request(view, request_id)

    changes = data.model_dump(exclude_unset=True)
    for key in ("notes", "is_urgent"):
        if key in changes and changes[key] is None:
            raise ValidationError(f"Request {key.replace('_', ' ')} cannot be cleared")
    if changes.get("provider_id"):
        if not view.provider(changes["provider_id"]):
            raise ValidationError("Service provider not found")
    elif "provider_id" in changes:
        raise ValidationError("A request must keep a provider")

    for key, value in changes.items():
        setattr(request, key, value)
    await session.commit()

    logging.info(f"Request {request.id} updated by {actor.id}: {sorted(changes)}")
    return request


async def add_comment(session: AsyncSession, actor: Actor, request_id: str, text: str) -> dict:
    text = (text or "").strip()
    if not text:
        raise ValidationError("Comment is empty")

    view = await scoped_view(session, actor)
    request = _get_request(view, request_id)

    comment = {
        "id": str(uuid.uuid4()),
        "author_id": actor.id,
        "author_name": actor.display_name,
        "text": text,
        "created_at": utcnow().isoformat(),
    }
    request.comments = [*(request.comments or []), comment]
    await session.commit()
    return comment


async def add_document(
    session: AsyncSession,
    actor: Actor,
    request_id: str,
    filename: str,
    data: bytes,
    storage
) -> dict:
    """Upload a file to blob storage and attach its URL to the request."""
    view = await scoped_view(session, actor)
    request = _get_request(view, request_id)

    url = await storage.save(request.id, filename, data)
    document = {
        "id": str(uuid.uuid4()),
        "name": filename,
        "url": url,
        "uploaded_at": utcnow().isoformat(),
        "uploaded_by": actor.display_name,
    }
    request.documents = [*(request.documents or []), document]
    await session.commit()

    logging.info(f"Document {document['id']} attached to request {request.id}")
    return document


async def delete_document(session: AsyncSession, actor: Actor, request_id: str, document_id: str) -> bool:
    """Detach a document. Idempotent: False when it was already gone."""
    view = await scoped_view(session, actor)
    request = _get_request(view, request_id)

    documents = request.documents or []
    remaining = [d for d in documents if d.get("id") != document_id]
    if len(remaining) == len(documents):
        return False

    request.documents = remaining
    await session.commit()
    return True


async def list_requests(session: AsyncSession, actor: Actor, status: Optional[str] = None) -> List[ServiceRequest]:
    """
    Requests the actor can see, newest first. For a service provider these
    are the requests addressed to its own profile.
    """
    view = await scoped_view(session, actor)
    requests = view.requests
    if status:
        status = RequestStatus(status).value
        requests = [r for r in requests if r.status == status]
    return sorted(requests, key=lambda r: r.sent_at.isoformat() if r.sent_at else "", reverse=True)
