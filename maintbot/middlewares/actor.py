from typing import Callable, Dict, Any, Awaitable
from aiogram import BaseMiddleware
from aiogram.types import Update
from sqlalchemy.ext.asyncio import AsyncSession
from maintbot.services.user_service import resolve_actor

# Commands an unregistered Telegram account may still use
PUBLIC_COMMANDS = ("/start", "/id", "/help")


class ActorMiddleware(BaseMiddleware):
    """
    Resolve the Actor behind the Telegram user and hand it to handlers as
    data["actor"]. Unregistered users only reach the public commands.
    """

    async def __call__(
        self,
        handler: Callable[[Update, Dict[str, Any]], Awaitable[Any]],
        event: Update,
        data: Dict[str, Any]
    ) -> Any:
        user = data.get("event_from_user")
        session: AsyncSession = data.get("session")
        if not user or not session:
            return await handler(event, data)

        actor = await resolve_actor(session, user.id)
        data["actor"] = actor
        if actor:
            return await handler(event, data)

        message = getattr(event, "message", None)
        callback = getattr(event, "callback_query", None)

        if message and (message.text or "").split(" ")[0] in PUBLIC_COMMANDS:
            return await handler(event, data)

        if message:
            await message.answer(
                "⛔ Your Telegram account is not linked to a user.\n"
                f"Send your ID <code>{user.id}</code> to your administrator."
            )
        elif callback:
            await callback.answer("Account not linked.", show_alert=True)
        return None
