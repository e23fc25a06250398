import asyncio
import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from maintbot.config import config
from maintbot.database.core import AsyncSessionLocal
from maintbot.database.models import Building, MaintenanceTask, Notification, TaskStatus, Recurrence
from maintbot.services.notification_service import create_notification
from maintbot.utils.ui import format_date


async def send_task_reminders(session: AsyncSession, today: Optional[date] = None, days: Optional[int] = None) -> int:
    """
    Notify each building's creator about open tasks due within `days`.
    A task is reminded about once. Returns the number of reminders created.
    """
    today = today or date.today()
    days = config.REMINDER_DAYS if days is None else days
    horizon = today + timedelta(days=days)

    stmt = (
        select(MaintenanceTask, Building)
        .join(Building, MaintenanceTask.building_id == Building.id)
        .where(
            MaintenanceTask.recurrence == Recurrence.one_time.value,
            MaintenanceTask.status != TaskStatus.completed.value,
            MaintenanceTask.task_date >= today,
            MaintenanceTask.task_date <= horizon,
        )
        .order_by(MaintenanceTask.task_date)
    )
    rows = (await session.execute(stmt)).all()

    sent_stmt = select(Notification.user_id, Notification.link_id).where(Notification.link_view == "task")
    already_sent = {(user_id, link_id) for user_id, link_id in (await session.execute(sent_stmt)).all()}

    created = 0
    for task, building in rows:
        if (building.created_by, task.id) in already_sent:
            continue
        try:
            await create_notification(
                session,
                building.created_by,
                "Upcoming maintenance",
                f"{task.name} at {building.name} is due {format_date(task.task_date)}",
                link_view="task",
                link_id=task.id,
            )
            created += 1
        except Exception as e:
            logging.error(f"Error creating reminder for task {task.id}: {e}")
            await session.rollback()

    return created


async def daily_reminder_job():
    logging.info("Running daily reminder job...")

    async with AsyncSessionLocal() as session:
        count = await send_task_reminders(session)

    logging.info(f"Daily reminder job finished: {count} reminders.")


async def scheduler_loop():
    """Run the reminder job once a day at REMINDER_HOUR."""
    logging.info("Scheduler started.")

    # Initial delay to settle startup
    await asyncio.sleep(10)

    while True:
        try:
            now = datetime.now()
            today_target = now.replace(hour=config.REMINDER_HOUR, minute=0, second=0, microsecond=0)

            if now < today_target:
                next_run = today_target
            else:
                next_run = today_target + timedelta(days=1)

            wait_seconds = (next_run - now).total_seconds()

            logging.info(f"Next scheduler job at {next_run} (in {wait_seconds/3600:.1f}h)")
            await asyncio.sleep(wait_seconds)

            await daily_reminder_job()

            # Buffer to skip current minute
            await asyncio.sleep(60)

        except Exception as e:
            logging.error(f"Error in scheduler loop: {e}")
            await asyncio.sleep(60)  # Prevent tight loop on error
