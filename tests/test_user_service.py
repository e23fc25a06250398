import pytest

from sqlalchemy import select

from maintbot.database.models import User, UserRole, ServiceProvider
from maintbot.schemas.validation import ProviderCreate, UserCreate
from maintbot.services import user_service
from maintbot.services.errors import AuthorizationError, ValidationError

from conftest import make_user, actor_of, make_provider


@pytest.mark.asyncio
async def test_provisioning_rules(async_session):
    root = await make_user(async_session, UserRole.super_admin, "Root")
    await async_session.commit()

    admin = await user_service.provision_user(async_session, actor_of(root), UserCreate(
        email="Ada@Example.com", username="Ada", role=UserRole.admin
    ))
    assert admin.email == "ada@example.com"
    assert admin.created_by == root.id

    pm = await user_service.provision_user(async_session, actor_of(admin), UserCreate(
        email="pat@example.com", username="Pat", role=UserRole.property_manager
    ))
    assert pm.role == UserRole.property_manager.value

    with pytest.raises(AuthorizationError):
        await user_service.provision_user(async_session, actor_of(admin), UserCreate(
            email="other@example.com", username="Other", role=UserRole.admin
        ))
    with pytest.raises(AuthorizationError):
        await user_service.provision_user(async_session, actor_of(pm), UserCreate(
            email="sp@example.com", username="Sp", role=UserRole.service_provider
        ))
    with pytest.raises(ValidationError):
        await user_service.provision_user(async_session, actor_of(root), UserCreate(
            email="pat@example.com", username="Pat again", role=UserRole.property_manager
        ))


@pytest.mark.asyncio
async def test_resolve_actor_by_telegram_id(async_session):
    await make_user(async_session, UserRole.property_manager, "Pat", tg_id=555)
    await async_session.commit()

    actor = await user_service.resolve_actor(async_session, 555)
    assert actor.display_name == "Pat"
    assert actor.is_manager
    assert await user_service.resolve_actor(async_session, 999) is None


@pytest.mark.asyncio
async def test_delete_user_rules(async_session):
    root = await make_user(async_session, UserRole.super_admin, "Root")
    admin = await make_user(async_session, UserRole.admin, "Ada", created_by=root.id)
    other_admin = await make_user(async_session, UserRole.admin, "Bea", created_by=root.id)
    pm = await make_user(async_session, UserRole.property_manager, "Pat", created_by=admin.id)
    foreign_pm = await make_user(async_session, UserRole.property_manager, "Sam", created_by=other_admin.id)
    await async_session.commit()

    with pytest.raises(ValidationError):
        await user_service.delete_user(async_session, actor_of(admin), admin.id)
    with pytest.raises(AuthorizationError):
        await user_service.delete_user(async_session, actor_of(admin), root.id)
    with pytest.raises(AuthorizationError):
        await user_service.delete_user(async_session, actor_of(admin), foreign_pm.id)

    message = await user_service.delete_user(async_session, actor_of(admin), pm.id)
    assert message == "User profile deleted."
    assert await user_service.get_user_by_email(async_session, "pat@example.com") is None


@pytest.mark.asyncio
async def test_deleting_provider_login_keeps_profile(async_session):
    root = await make_user(async_session, UserRole.super_admin, "Root")
    login = await make_user(async_session, UserRole.service_provider, "Fixer", created_by=root.id)
    provider = await make_provider(async_session, root, login=login)
    await async_session.commit()

    await user_service.delete_user(async_session, actor_of(root), login.id)

    stored = await async_session.get(ServiceProvider, provider.id)
    assert stored is not None
    assert stored.user_id is None


@pytest.mark.asyncio
async def test_save_provider_with_user(async_session):
    pm = await make_user(async_session, UserRole.property_manager, "Pat")
    await async_session.commit()
    data = ProviderCreate(name="Bright Sparks", email="office@sparks.example.com", specialty="Electrical")

    provider = await user_service.save_provider_with_user(
        async_session, actor_of(pm), data, username="Bright Sparks", tg_id=777
    )

    login = await async_session.get(User, provider.user_id)
    assert login.role == UserRole.service_provider.value
    assert login.email == "office@sparks.example.com"
    assert login.created_by == pm.id
    assert provider.created_by == pm.id

    actor = await user_service.resolve_actor(async_session, 777)
    assert actor.is_provider

    # Saving again updates the same login
    renamed = ProviderCreate(name="Bright Sparks Inc", email="office@sparks.example.com", specialty="Electrical")
    same = await user_service.save_provider_with_user(
        async_session, actor_of(pm), renamed, username="Sparks", provider_id=provider.id
    )
    assert same.id == provider.id
    assert same.name == "Bright Sparks Inc"
    result = await async_session.execute(select(User).where(User.role == UserRole.service_provider.value))
    logins = result.scalars().all()
    assert [u.username for u in logins] == ["Sparks"]


@pytest.mark.asyncio
async def test_link_telegram(async_session):
    root = await make_user(async_session, UserRole.super_admin, "Root")
    pm = await make_user(async_session, UserRole.property_manager, "Pat", created_by=root.id, tg_id=100)
    other = await make_user(async_session, UserRole.property_manager, "Sam", created_by=root.id)
    await async_session.commit()

    with pytest.raises(ValidationError):
        await user_service.link_telegram(async_session, actor_of(root), other.id, 100)
    with pytest.raises(AuthorizationError):
        await user_service.link_telegram(async_session, actor_of(pm), other.id, 200)

    linked = await user_service.link_telegram(async_session, actor_of(root), other.id, 200)
    assert linked.tg_id == 200


@pytest.mark.asyncio
async def test_list_users(async_session):
    root = await make_user(async_session, UserRole.super_admin, "Root")
    admin = await make_user(async_session, UserRole.admin, "Ada", created_by=root.id)
    await make_user(async_session, UserRole.property_manager, "Pat", created_by=admin.id)
    await async_session.commit()

    assert len(await user_service.list_users(async_session, actor_of(root))) == 3
    assert [u.username for u in await user_service.list_users(async_session, actor_of(admin))] == ["Pat"]
