from typing import Callable, Dict, Any, Awaitable
from aiogram import BaseMiddleware
from aiogram.types import TelegramObject
from maintbot.database.core import AsyncSessionLocal

class DbSessionMiddleware(BaseMiddleware):
    """One AsyncSession per update. Services commit their own writes."""

    def __init__(self, session_factory=AsyncSessionLocal):
        self.session_factory = session_factory

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any]
    ) -> Any:
        async with self.session_factory() as session:
            data["session"] = session
            try:
                result = await handler(event, data)
                # Anything a handler left pending is committed here
                await session.commit()
                return result
            except Exception:
                await session.rollback()
                raise
