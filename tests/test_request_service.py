import pytest
from datetime import date, timedelta

from sqlalchemy import delete, select

from maintbot.database.models import MaintenanceTask, Notification, UserRole, TaskStatus, RequestStatus
from maintbot.schemas.validation import ServiceRequestCreate, ServiceRequestUpdate
from maintbot.services import request_service
from maintbot.services.errors import AuthorizationError, StaleReferenceError, ValidationError
from maintbot.services.storage_service import LocalBlobStorage

from conftest import make_user, actor_of, make_building, make_task, make_provider


async def _setup(session, task_date=date(2030, 5, 1)):
    pm = await make_user(session, UserRole.property_manager, "Pat")
    login = await make_user(session, UserRole.service_provider, "Cool Air")
    building = await make_building(session, pm)
    task = await make_task(session, building, task_date=task_date)
    provider = await make_provider(session, pm, login=login)
    await session.commit()
    return pm, login, building, task, provider


async def _send(session, pm, task, provider, **fields):
    return await request_service.create_service_request(
        session, actor_of(pm), ServiceRequestCreate(task_id=task.id, provider_id=provider.id, **fields)
    )


@pytest.mark.asyncio
async def test_create_request(async_session):
    pm, login, building, task, provider = await _setup(async_session)

    request = await _send(async_session, pm, task, provider, notes="Side door code 1234")

    assert request.status == RequestStatus.sent.value
    assert request.specialty == "HVAC"
    assert request.scheduled_date == date(2030, 5, 1)
    assert request.is_urgent is False
    assert request.building_id == building.id
    assert [h["status"] for h in request.status_history] == ["Sent"]
    assert request.status_history[0]["changed_by"] == "Pat"
    assert task.status == TaskStatus.sent.value

    result = await async_session.execute(select(Notification).where(Notification.user_id == login.id))
    notification = result.scalar_one()
    assert notification.link_view == "request"
    assert notification.link_id == request.id


@pytest.mark.asyncio
async def test_overdue_task_gets_urgent_request(async_session):
    today = date(2024, 6, 10)
    pm, _, _, task, provider = await _setup(async_session, task_date=today - timedelta(days=5))

    request = await request_service.create_service_request(
        async_session, actor_of(pm),
        ServiceRequestCreate(task_id=task.id, provider_id=provider.id),
        today=today,
    )

    assert request.scheduled_date == date(2024, 6, 12)
    assert request.is_urgent is True


@pytest.mark.asyncio
async def test_explicit_date_overrides_overdue_rule(async_session):
    today = date(2024, 6, 10)
    pm, _, _, task, provider = await _setup(async_session, task_date=today - timedelta(days=5))

    request = await request_service.create_service_request(
        async_session, actor_of(pm),
        ServiceRequestCreate(task_id=task.id, provider_id=provider.id, scheduled_date=date(2024, 7, 1)),
        today=today,
    )

    assert request.scheduled_date == date(2024, 7, 1)
    assert request.is_urgent is False


@pytest.mark.asyncio
async def test_specialty_must_match(async_session):
    pm, _, _, task, provider = await _setup(async_session)

    with pytest.raises(ValidationError):
        await _send(async_session, pm, task, provider, specialty="Plumbing")


@pytest.mark.asyncio
async def test_provider_cannot_send_requests(async_session):
    _, login, _, task, provider = await _setup(async_session)

    with pytest.raises(AuthorizationError):
        await _send(async_session, login, task, provider)


@pytest.mark.asyncio
async def test_accept_then_complete_syncs_task(async_session):
    pm, login, _, task, provider = await _setup(async_session)
    request = await _send(async_session, pm, task, provider)
    sp = actor_of(login)

    result = await request_service.update_request_status(async_session, sp, request.id, "Accepted")
    assert result.task_status_changed is True
    assert task.status == TaskStatus.on_hold.value

    result = await request_service.update_request_status(async_session, sp, request.id, "In Progress")
    assert result.task_status_changed is False
    assert task.status == TaskStatus.on_hold.value

    result = await request_service.update_request_status(async_session, sp, request.id, "Completed")
    assert task.status == TaskStatus.completed.value
    assert [h["status"] for h in result.request.status_history] == ["Sent", "Accepted", "In Progress", "Completed"]
    assert result.warnings == []


@pytest.mark.asyncio
async def test_refuse_returns_task_to_new(async_session):
    pm, login, _, task, provider = await _setup(async_session)
    request = await _send(async_session, pm, task, provider)

    await request_service.update_request_status(async_session, actor_of(login), request.id, "Refused")
    assert task.status == TaskStatus.new.value

    # Refused is terminal; the manager sends a new request instead
    with pytest.raises(ValidationError):
        await request_service.update_request_status(async_session, actor_of(login), request.id, "Accepted")

    second = await _send(async_session, pm, task, provider)
    assert second.id != request.id
    assert task.status == TaskStatus.sent.value


@pytest.mark.asyncio
async def test_task_write_skipped_when_status_already_matches(async_session):
    pm, login, _, task, provider = await _setup(async_session)
    request = await _send(async_session, pm, task, provider)
    task.status = TaskStatus.on_hold.value
    await async_session.commit()

    result = await request_service.update_request_status(async_session, actor_of(login), request.id, "Accepted")

    assert result.task_status_changed is False
    assert task.status == TaskStatus.on_hold.value
    assert len(result.request.status_history) == 2


@pytest.mark.asyncio
async def test_invalid_transitions(async_session):
    pm, login, _, task, provider = await _setup(async_session)
    request = await _send(async_session, pm, task, provider)
    sp = actor_of(login)

    with pytest.raises(ValidationError):
        await request_service.update_request_status(async_session, sp, request.id, "Completed")
    with pytest.raises(ValidationError):
        await request_service.update_request_status(async_session, sp, request.id, "Sent")
    with pytest.raises(ValidationError):
        await request_service.update_request_status(async_session, sp, request.id, "Lost")

    assert request.status == RequestStatus.sent.value
    assert len(request.status_history) == 1
    assert task.status == TaskStatus.sent.value


def test_allowed_transitions():
    assert request_service.allowed_transitions("Sent") == ["Accepted", "Refused"]
    assert request_service.allowed_transitions("Accepted") == ["In Progress", "Completed"]
    assert request_service.allowed_transitions("Completed") == []


@pytest.mark.asyncio
async def test_missing_task_is_a_warning(async_session):
    pm, _, _, task, provider = await _setup(async_session)
    request = await _send(async_session, pm, task, provider)

    await async_session.execute(delete(MaintenanceTask).where(MaintenanceTask.id == task.id))
    await async_session.commit()

    result = await request_service.update_request_status(async_session, actor_of(pm), request.id, "Accepted")

    assert result.request.status == RequestStatus.accepted.value
    assert len(result.warnings) == 1
    assert isinstance(result.warnings[0], StaleReferenceError)
    assert result.task_status_changed is False


@pytest.mark.asyncio
async def test_provider_status_change_notifies_owner(async_session):
    pm, login, _, task, provider = await _setup(async_session)
    request = await _send(async_session, pm, task, provider)

    await request_service.update_request_status(async_session, actor_of(login), request.id, "Accepted")

    result = await async_session.execute(select(Notification).where(Notification.user_id == pm.id))
    notification = result.scalar_one()
    assert notification.title == "Request Accepted"
    assert "Cool Air" in notification.message


@pytest.mark.asyncio
async def test_other_provider_cannot_see_request(async_session):
    pm, _, _, task, provider = await _setup(async_session)
    request = await _send(async_session, pm, task, provider)
    outsider = await make_user(async_session, UserRole.service_provider, "Other Co")

    with pytest.raises(ValidationError):
        await request_service.update_request_status(async_session, actor_of(outsider), request.id, "Accepted")
    assert await request_service.list_requests(async_session, actor_of(outsider)) == []


@pytest.mark.asyncio
async def test_update_request_fields(async_session):
    pm, _, _, task, provider = await _setup(async_session)
    request = await _send(async_session, pm, task, provider)

    updated = await request_service.update_request(
        async_session, actor_of(pm), request.id, ServiceRequestUpdate(cost=320.0, is_urgent=True)
    )

    assert float(updated.cost) == 320.0
    assert updated.is_urgent is True
    assert updated.notes == ""
    with pytest.raises(ValidationError):
        await request_service.update_request(
            async_session, actor_of(pm), request.id, ServiceRequestUpdate(provider_id="missing")
        )


@pytest.mark.asyncio
async def test_comments_and_documents(async_session, tmp_path):
    pm, login, _, task, provider = await _setup(async_session)
    request = await _send(async_session, pm, task, provider)
    storage = LocalBlobStorage(root=str(tmp_path), base_url="/media")

    comment = await request_service.add_comment(async_session, actor_of(login), request.id, "  On my way  ")
    assert comment["text"] == "On my way"
    assert comment["author_name"] == "Cool Air"
    with pytest.raises(ValidationError):
        await request_service.add_comment(async_session, actor_of(pm), request.id, "   ")

    document = await request_service.add_document(
        async_session, actor_of(login), request.id, "invoice.pdf", b"%PDF-1.4", storage
    )
    assert document["url"].startswith(f"/media/{request.id}/")
    assert len(request.documents) == 1

    assert await request_service.delete_document(async_session, actor_of(pm), request.id, document["id"]) is True
    assert await request_service.delete_document(async_session, actor_of(pm), request.id, document["id"]) is False
    assert request.documents == []
    assert len(request.comments) == 1


@pytest.mark.asyncio
async def test_list_requests_filters_by_status(async_session):
    pm, login, building, task, provider = await _setup(async_session)
    other_task = await make_task(async_session, building, name="Service chiller")
    first = await _send(async_session, pm, task, provider)
    second = await _send(async_session, pm, other_task, provider)
    await request_service.update_request_status(async_session, actor_of(login), first.id, "Accepted")

    everything = await request_service.list_requests(async_session, actor_of(pm))
    assert {r.id for r in everything} == {first.id, second.id}

    accepted = await request_service.list_requests(async_session, actor_of(login), status="Accepted")
    assert [r.id for r in accepted] == [first.id]


@pytest.mark.asyncio
async def test_update_request_cannot_clear_required_fields(async_session):
    pm, _, _, task, provider = await _setup(async_session)
    request = await _send(async_session, pm, task, provider, notes="Gate code 42")

    with pytest.raises(ValidationError, match="cannot be cleared"):
        await request_service.update_request(
            async_session, actor_of(pm), request.id, ServiceRequestUpdate(is_urgent=None)
        )
    with pytest.raises(ValidationError, match="cannot be cleared"):
        await request_service.update_request(
            async_session, actor_of(pm), request.id, ServiceRequestUpdate(notes=None)
        )

    await async_session.refresh(request)
    assert request.notes == "Gate code 42"
    assert request.is_urgent is False


@pytest.mark.asyncio
async def test_recurring_master_cannot_be_sent(async_session):
    pm, _, building, _, provider = await _setup(async_session)
    master = await make_task(
        async_session, building, name="Service chiller", task_date=None,
        recurrence="Monthly", start_date=date(2030, 1, 1), end_date=date(2030, 6, 1)
    )
    await async_session.commit()

    with pytest.raises(ValidationError, match="per occurrence"):
        await _send(async_session, pm, master, provider)

    await async_session.refresh(master)
    assert master.status == TaskStatus.new.value
    assert await request_service.list_requests(async_session, actor_of(pm)) == []
