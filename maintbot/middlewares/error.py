import logging
from typing import Callable, Dict, Any, Awaitable
from aiogram import BaseMiddleware
from aiogram.types import TelegramObject, Message, CallbackQuery, Update
from pydantic import ValidationError as InputError
from maintbot.services.errors import MaintenanceError
from maintbot.utils.ui import UIMessages


def input_error_text(error: InputError) -> str:
    """First pydantic error as a short sentence."""
    first = error.errors()[0]
    field = ".".join(str(p) for p in first.get("loc", ())) or "input"
    return f"{field}: {first.get('msg', 'invalid value')}"


class GlobalErrorMiddleware(BaseMiddleware):
    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any]
    ) -> Any:
        try:
            return await handler(event, data)
        except MaintenanceError as e:
            # Rejected action with a reason the user can act on
            logging.info(f"Rejected: {type(e).__name__}: {e}")
            await self._reply(event, UIMessages.error(str(e)))
            return None
        except InputError as e:
            await self._reply(event, UIMessages.error(input_error_text(e)))
            return None
        except Exception as e:
            logging.exception(f"Unhandled exception in bot update: {e}")
            await self._reply(
                event,
                "⚠️ <b>A technical error occurred.</b>\n\nPlease try again later.",
                alert="⚠️ Something went wrong. Try again later."
            )
            # Swallowed so polling keeps running; logged above
            return None

    async def _reply(self, event: TelegramObject, text: str, alert: str = None):
        if isinstance(event, Update):
            event = event.message or event.callback_query
        try:
            if isinstance(event, Message):
                await event.answer(text)
            elif isinstance(event, CallbackQuery):
                await event.answer((alert or text)[:200], show_alert=True)
        except Exception as e:
            logging.warning(f"Could not report error to user: {e}")
