"""
User Service - accounts, roles and the Telegram identity binding
"""
import logging
from typing import Optional, List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from maintbot.database.models import User, UserRole, ServiceProvider
from maintbot.schemas.validation import ProviderCreate, UserCreate
from maintbot.services import provider_service
from maintbot.services.errors import AuthorizationError, ValidationError
from maintbot.services.visibility_service import Actor

# Roles each role may provision
PROVISIONING = {
    UserRole.super_admin.value: {
        UserRole.admin.value, UserRole.property_manager.value, UserRole.service_provider.value
    },
    UserRole.admin.value: {
        UserRole.property_manager.value, UserRole.service_provider.value
    },
}


async def get_user_by_tg_id(session: AsyncSession, tg_id: int) -> Optional[User]:
    """Get active user by Telegram ID"""
    stmt = select(User).where(User.tg_id == tg_id, User.is_active == True)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[User]:
    stmt = select(User).where(User.email == email.strip().lower())
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def resolve_actor(session: AsyncSession, tg_id: int) -> Optional[Actor]:
    """The Actor behind a Telegram account, or None if it is not registered."""
    user = await get_user_by_tg_id(session, tg_id)
    return Actor.from_user(user) if user else None


async def _create_user(session: AsyncSession, actor: Actor, data: UserCreate) -> User:
    if await get_user_by_email(session, data.email):
        raise ValidationError("A user with this email already exists")
    if data.tg_id and await get_user_by_tg_id(session, data.tg_id):
        raise ValidationError("This Telegram account is already linked to a user")

    user = User(
        email=data.email.strip().lower(),
        username=data.username,
        role=data.role,
        created_by=actor.id,
        tg_id=data.tg_id,
        is_active=True
    )
    session.add(user)
    return user


async def provision_user(session: AsyncSession, actor: Actor, data: UserCreate) -> User:
    """
    Create a login on behalf of a higher-privileged actor.

    SuperAdmin may create Admins, Property Managers and Service Providers;
    an Admin may create Property Managers and Service Providers.
    """
    role = UserRole(data.role).value
    if role not in PROVISIONING.get(actor.role, set()):
        raise AuthorizationError(f"You cannot create {role} accounts")

    user = await _create_user(session, actor, data)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ValidationError("A user with this email already exists")

    logging.info(f"User {user.id} ({role}) provisioned by {actor.id}")
    return user


async def save_provider_with_user(
    session: AsyncSession,
    actor: Actor,
    data: ProviderCreate,
    username: str,
    email: Optional[str] = None,
    provider_id: Optional[str] = None,
    tg_id: Optional[int] = None
) -> ServiceProvider:
    """
    Create or update a provider profile together with its Service Provider
    login. The login email defaults to the provider's email. Profile and
    login are committed together.
    """
    if not (actor.is_super_admin or actor.is_admin or actor.is_manager):
        raise AuthorizationError("You cannot manage provider accounts")

    email = (email or data.email).strip().lower()

    if provider_id:
        provider = await provider_service.update_provider(session, actor, provider_id, data, commit=False)
        user = await session.get(User, provider.user_id) if provider.user_id else None
        if user:
            other = await get_user_by_email(session, email)
            if other and other.id != user.id:
                raise ValidationError("A user with this email already exists")
            user.username = username
            user.email = email
        else:
            user = await _create_user(session, actor, UserCreate(
                email=email, username=username, role=UserRole.service_provider, tg_id=tg_id
            ))
            await session.flush()
            provider.user_id = user.id
    else:
        user = await _create_user(session, actor, UserCreate(
            email=email, username=username, role=UserRole.service_provider, tg_id=tg_id
        ))
        await session.flush()
        provider = await provider_service.create_provider(session, actor, data, user_id=user.id, commit=False)

    await session.commit()
    logging.info(f"Provider {provider.id} saved with login {user.id} by {actor.id}")
    return provider


async def list_users(session: AsyncSession, actor: Actor) -> List[User]:
    """SuperAdmin sees every account, an Admin the accounts it created."""
    stmt = select(User).order_by(User.role, User.username)
    if actor.is_admin:
        stmt = stmt.where(User.created_by == actor.id)
    elif not actor.is_super_admin:
        return []
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def delete_user(session: AsyncSession, actor: Actor, user_id: str) -> str:
    """
    Delete a login. Never your own account, never a SuperAdmin. An Admin may
    only delete accounts it created. A linked provider profile stays, without
    its login.
    """
    if user_id == actor.id:
        raise ValidationError("You cannot delete your own account.")

    user = await session.get(User, user_id)
    if not user:
        raise ValidationError("User not found")
    if user.role == UserRole.super_admin.value:
        raise AuthorizationError("The Super Admin account cannot be deleted.")
    if not (actor.is_super_admin or (actor.is_admin and user.created_by == actor.id)):
        raise AuthorizationError("You cannot delete this account")

    result = await session.execute(select(ServiceProvider).where(ServiceProvider.user_id == user_id))
    for provider in result.scalars().all():
        provider.user_id = None

    await session.delete(user)
    await session.commit()
    logging.info(f"User {user_id} deleted by {actor.id}")
    return "User profile deleted."


async def link_telegram(session: AsyncSession, actor: Actor, user_id: str, tg_id: int) -> User:
    """Bind a Telegram account to a login the actor is allowed to manage."""
    user = await session.get(User, user_id)
    if not user:
        raise ValidationError("User not found")
    if not (actor.id == user_id or actor.is_super_admin or (actor.is_admin and user.created_by == actor.id)):
        raise AuthorizationError("You cannot change this account")

    existing = await get_user_by_tg_id(session, tg_id)
    if existing and existing.id != user_id:
        raise ValidationError("This Telegram account is already linked to a user")

    user.tg_id = tg_id
    await session.commit()
    return user
