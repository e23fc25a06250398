"""
Service Provider Service - provider directory
"""
import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from maintbot.database.models import ServiceProvider
from maintbot.schemas.validation import ProviderCreate
from maintbot.services.errors import AuthorizationError, ValidationError
from maintbot.services.visibility_service import Actor, can_delete_provider, scoped_view


async def create_provider(
    session: AsyncSession,
    actor: Actor,
    data: ProviderCreate,
    user_id: Optional[str] = None,
    commit: bool = True
) -> ServiceProvider:
    """Add a provider. Created by a SuperAdmin/Admin it is offered to every manager."""
    if actor.is_provider:
        raise AuthorizationError("Service providers cannot add providers")

    provider = ServiceProvider(
        **data.model_dump(),
        user_id=user_id,
        created_by=actor.id
    )
    session.add(provider)
    if commit:
        await session.commit()
        logging.info(f"Provider {provider.id} ({provider.name}) created by {actor.id}")
    return provider


async def update_provider(
    session: AsyncSession,
    actor: Actor,
    provider_id: str,
    data: ProviderCreate,
    commit: bool = True
) -> ServiceProvider:
    """
    Replace the profile fields of a provider. Allowed for whoever may delete
    it, and for the provider's own linked login.
    """
    view = await scoped_view(session, actor)
    provider = view.provider(provider_id)
    if not provider:
        raise ValidationError("Service provider not found")
    if not (can_delete_provider(actor, provider) or provider.user_id == actor.id):
        raise AuthorizationError("You cannot edit this provider")

    for key, value in data.model_dump().items():
        setattr(provider, key, value)
    if commit:
        await session.commit()
        logging.info(f"Provider {provider.id} updated by {actor.id}")
    return provider


async def list_providers(session: AsyncSession, actor: Actor, specialty: Optional[str] = None) -> List[ServiceProvider]:
    """Providers visible to the actor, optionally only one trade, by name."""
    view = await scoped_view(session, actor)
    providers = view.providers
    if specialty:
        wanted = specialty.strip().lower()
        providers = [p for p in providers if (p.specialty or "").lower() == wanted]
    return sorted(providers, key=lambda p: p.name.lower())
