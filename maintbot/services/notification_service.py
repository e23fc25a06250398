import logging
from typing import List, Optional

from aiogram import Bot
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from maintbot.database.models import Notification, User
from maintbot.services.visibility_service import Actor


class NotificationService:
    def __init__(self, bot: Bot):
        self.bot = bot

    async def notify_user(self, tg_id: int, text: str):
        """Send notification to a user by their Telegram ID"""
        try:
            await self.bot.send_message(tg_id, text, parse_mode="HTML")
            logging.info(f"Notification sent to {tg_id}")
        except Exception as e:
            logging.warning(f"Failed to notify user {tg_id}: {e}")
            raise

notification_service = None

def setup_notifications(bot: Bot):
    global notification_service
    notification_service = NotificationService(bot)


async def create_notification(
    session: AsyncSession,
    user_id: str,
    title: str,
    message: str,
    link_view: Optional[str] = None,
    link_id: Optional[str] = None,
    commit: bool = True
) -> Notification:
    """
    Store a notification for a user and push it to Telegram when the user
    has a linked chat. A failed push is logged, the stored record stays.
    """
    notification = Notification(
        user_id=user_id,
        title=title,
        message=message,
        link_view=link_view,
        link_id=link_id,
        is_read=False
    )
    session.add(notification)
    if commit:
        await session.commit()

    if notification_service is not None:
        user = await session.get(User, user_id)
        if user and user.tg_id:
            try:
                await notification_service.notify_user(user.tg_id, f"🔔 <b>{title}</b>\n{message}")
            except Exception as e:
                logging.warning(f"Push for notification to {user_id} failed: {e}")

    return notification


async def list_notifications(session: AsyncSession, actor: Actor, unread_only: bool = False) -> List[Notification]:
    """Notifications addressed to the actor, newest first."""
    stmt = select(Notification).where(Notification.user_id == actor.id)
    if unread_only:
        stmt = stmt.where(Notification.is_read == False)
    stmt = stmt.order_by(Notification.created_at.desc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def mark_read(session: AsyncSession, actor: Actor, notification_id: str) -> bool:
    """Mark one of the actor's notifications as read. False if it is not theirs."""
    notification = await session.get(Notification, notification_id)
    if not notification or notification.user_id != actor.id:
        return False
    notification.is_read = True
    await session.commit()
    return True


async def mark_all_read(session: AsyncSession, actor: Actor) -> int:
    """Mark every unread notification of the actor as read. Returns count."""
    result = await session.execute(
        update(Notification)
        .where(Notification.user_id == actor.id, Notification.is_read == False)
        .values(is_read=True)
    )
    await session.commit()
    return result.rowcount or 0
