from aiogram import Router, F
from aiogram.types import Message, CallbackQuery, InlineKeyboardMarkup, InlineKeyboardButton
from aiogram.filters import CommandStart, Command
from aiogram.fsm.context import FSMContext
from sqlalchemy.ext.asyncio import AsyncSession

from maintbot.services.notification_service import list_notifications, mark_read, mark_all_read
from maintbot.services.visibility_service import Actor
from maintbot.utils.ui import UIEmojis, UIMessages, UIKeyboards

router = Router()


@router.message(CommandStart())
async def cmd_start(message: Message, state: FSMContext, actor: Actor = None):
    await state.clear()

    if not actor:
        text = UIMessages.header("Welcome!", UIEmojis.BUILDING)
        text += "This bot is used by property managers and their service providers.\n\n"
        text += f"Your Telegram ID is <code>{message.from_user.id}</code>.\n"
        text += "Send it to your administrator to get access."
        await message.answer(text)
        return

    text = UIMessages.header(f"Hello, {actor.display_name}!", UIEmojis.BUILDING)
    text += UIMessages.field("Role", actor.role)
    text += "\nUse the menu below to navigate."
    await message.answer(text, reply_markup=UIKeyboards.main_reply_keyboard(is_manager=not actor.is_provider))


@router.message(Command("id"))
async def cmd_id(message: Message):
    await message.answer(f"Your Telegram ID: <code>{message.from_user.id}</code>")


@router.message(Command("help"))
async def cmd_help(message: Message, actor: Actor = None):
    text = UIMessages.header("Help", UIEmojis.INFO)
    if actor and not actor.is_provider:
        text += "🏢 <b>Buildings</b> — units, components, tasks, deletes\n"
        text += "🛠️ <b>Upcoming</b> — tasks due in the next weeks\n"
        text += "📨 <b>Requests</b> — service requests and their status\n"
        text += "📊 <b>Finances</b> — task costs and expenses per year\n"
        text += "/checklist &lt;unit&gt; &lt;activity&gt; — draft a unit checklist\n"
    else:
        text += "📨 <b>My requests</b> — accept, refuse and update requests sent to you\n"
    text += "🔔 <b>Notifications</b> — unread messages\n"
    text += "/cancel — abort the current input"
    await message.answer(text)


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, state: FSMContext):
    await state.clear()
    await message.answer("Cancelled.")


# --- Notifications ---

@router.message(F.text.contains("Notifications"))
@router.message(Command("notifications"))
async def show_notifications(message: Message, session: AsyncSession, actor: Actor):
    notifications = await list_notifications(session, actor, unread_only=True)
    if not notifications:
        await message.answer(f"{UIEmojis.BELL} No unread notifications.")
        return

    text = UIMessages.header(f"Notifications ({len(notifications)})", UIEmojis.BELL)
    buttons = []
    for n in notifications[:10]:
        text += f"\n<b>{n.title}</b>\n{n.message}\n"
        buttons.append([InlineKeyboardButton(text=f"✓ {n.title[:40]}", callback_data=f"ntf_read_{n.id}")])
    buttons.append([InlineKeyboardButton(text=f"{UIEmojis.CHECK} Mark all as read", callback_data="ntf_read_all")])

    await message.answer(text, reply_markup=InlineKeyboardMarkup(inline_keyboard=buttons))


@router.callback_query(F.data == "ntf_read_all")
async def read_all_notifications(call: CallbackQuery, session: AsyncSession, actor: Actor):
    count = await mark_all_read(session, actor)
    await call.message.edit_reply_markup(reply_markup=None)
    await call.answer(f"{count} marked as read")


@router.callback_query(F.data.startswith("ntf_read_"))
async def read_notification(call: CallbackQuery, session: AsyncSession, actor: Actor):
    notification_id = call.data.removeprefix("ntf_read_")
    if await mark_read(session, actor, notification_id):
        await call.answer("Marked as read")
    else:
        await call.answer("Notification not found", show_alert=True)
