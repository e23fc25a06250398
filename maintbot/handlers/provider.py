"""
Service request screens.

Providers reach them from "My requests"; managers open the same detail view
from their request list. What each actor sees comes from its scoped view.
"""
from aiogram import Router, F, Bot
from aiogram.fsm.context import FSMContext
from aiogram.types import Message, CallbackQuery, InlineKeyboardMarkup, InlineKeyboardButton
from sqlalchemy.ext.asyncio import AsyncSession

from maintbot.services import request_service
from maintbot.services.storage_service import storage
from maintbot.services.visibility_service import Actor, scoped_view
from maintbot.states import CommentState, DocumentState
from maintbot.utils.ui import UIEmojis, UIMessages, UIKeyboards, format_amount, format_date, request_line

router = Router()

MAX_DOCUMENT_SIZE = 20 * 1024 * 1024


@router.message(F.text.contains("My requests"))
async def my_requests(message: Message, session: AsyncSession, actor: Actor):
    view = await scoped_view(session, actor)
    requests = await request_service.list_requests(session, actor)
    if not requests:
        await message.answer(f"{UIEmojis.REQUEST} No requests addressed to you.")
        return

    items = []
    for r in requests[:20]:
        task = view.task(r.task_id)
        items.append((request_line(r, task.name if task else ""), f"req_{r.id}"))
    await message.answer(
        UIMessages.header("My requests", UIEmojis.REQUEST),
        reply_markup=UIKeyboards.menu_grid(items, columns=1)
    )


async def render_request(session: AsyncSession, actor: Actor, request_id: str):
    view = await scoped_view(session, actor)
    request = view.request(request_id)
    if not request:
        return None, None

    task = view.task(request.task_id)
    building = view.building(request.building_id) if request.building_id else None

    text = UIMessages.header(task.name if task else "Service request", UIEmojis.REQUEST)
    text += UIMessages.field("Status", request.status)
    if building:
        text += UIMessages.field("Building", f"{building.name}, {building.address}", UIEmojis.BUILDING)
    if request.unit_number:
        text += UIMessages.field("Unit", request.unit_number, UIEmojis.UNIT)
    if request.component_name:
        text += UIMessages.field("Component", request.component_name, UIEmojis.COMPONENT)
    text += UIMessages.field("Scheduled", format_date(request.scheduled_date), UIEmojis.CALENDAR)
    if request.cost is not None:
        text += UIMessages.field("Cost", format_amount(request.cost), UIEmojis.MONEY)
    if request.is_urgent:
        text += UIMessages.warning("Urgent") + "\n"
    if request.notes:
        text += f"\n<i>{request.notes}</i>\n"

    if request.comments:
        text += f"\n{UIEmojis.MESSAGE} <b>Comments</b>\n"
        for c in request.comments[-5:]:
            text += f"<b>{c['author_name']}</b>: {c['text']}\n"
    if request.documents:
        text += f"\n{UIEmojis.DOCUMENT} <b>Documents</b>\n"
        for d in request.documents:
            text += f"• <a href=\"{d['url']}\">{d['name']}</a>\n"

    buttons = [
        [InlineKeyboardButton(text=f"➡️ {status}", callback_data=f"rst_{status.replace(' ', '_')}_{request.id}")]
        for status in request_service.allowed_transitions(request.status)
    ]
    buttons.append([
        InlineKeyboardButton(text=f"{UIEmojis.MESSAGE} Comment", callback_data=f"rcm_{request.id}"),
        InlineKeyboardButton(text=f"{UIEmojis.DOCUMENT} Upload", callback_data=f"rdoc_{request.id}"),
    ])
    return text, InlineKeyboardMarkup(inline_keyboard=buttons)


@router.callback_query(F.data.startswith("req_"))
async def show_request(call: CallbackQuery, session: AsyncSession, actor: Actor):
    text, kb = await render_request(session, actor, call.data.removeprefix("req_"))
    if not text:
        await call.answer("Request not found", show_alert=True)
        return
    await call.message.answer(text, reply_markup=kb)
    await call.answer()


@router.callback_query(F.data.startswith("rst_"))
async def change_status(call: CallbackQuery, session: AsyncSession, actor: Actor):
    # rst_<Status_With_Underscores>_<request uuid>
    payload = call.data.removeprefix("rst_")
    status, request_id = payload[:-37].replace('_', ' '), payload[-36:]

    result = await request_service.update_request_status(session, actor, request_id, status)
    await call.answer(f"Request {result.request.status}")
    for warning in result.warnings:
        await call.message.answer(UIMessages.warning(str(warning)))

    text, kb = await render_request(session, actor, request_id)
    if text:
        await call.message.edit_text(text, reply_markup=kb)


@router.callback_query(F.data.startswith("rcm_"))
async def start_comment(call: CallbackQuery, state: FSMContext):
    await state.update_data(request_id=call.data.removeprefix("rcm_"))
    await call.message.answer("Write your comment:")
    await state.set_state(CommentState.waiting_for_text)
    await call.answer()


@router.message(CommentState.waiting_for_text)
async def process_comment(message: Message, state: FSMContext, session: AsyncSession, actor: Actor):
    if not message.text or message.text.startswith("/"):
        await message.answer("❌ Cancelled.")
        await state.clear()
        return

    data = await state.get_data()
    await request_service.add_comment(session, actor, data["request_id"], message.text)
    await state.clear()
    await message.answer(UIMessages.success("Comment added."))


@router.callback_query(F.data.startswith("rdoc_"))
async def start_document(call: CallbackQuery, state: FSMContext):
    await state.update_data(request_id=call.data.removeprefix("rdoc_"))
    await call.message.answer(f"{UIEmojis.DOCUMENT} Send the document or photo:")
    await state.set_state(DocumentState.waiting_for_file)
    await call.answer()


@router.message(DocumentState.waiting_for_file, F.document | F.photo)
async def process_document(message: Message, state: FSMContext, session: AsyncSession, actor: Actor, bot: Bot):
    if message.document:
        file_id = message.document.file_id
        filename = message.document.file_name or "document"
        size = message.document.file_size or 0
    else:
        photo = message.photo[-1]
        file_id = photo.file_id
        filename = f"photo_{photo.file_unique_id}.jpg"
        size = photo.file_size or 0

    if size > MAX_DOCUMENT_SIZE:
        await message.answer(UIMessages.error("File is too large (max 20 MB)."))
        return

    file_info = await bot.get_file(file_id)
    downloaded = await bot.download_file(file_info.file_path)
    file_bytes = downloaded.read()

    data = await state.get_data()
    document = await request_service.add_document(
        session, actor, data["request_id"], filename, file_bytes, storage
    )
    await state.clear()
    await message.answer(UIMessages.success(f"Document <b>{document['name']}</b> uploaded."))


@router.message(DocumentState.waiting_for_file)
async def process_document_invalid(message: Message, state: FSMContext):
    if message.text and message.text.startswith("/"):
        await state.clear()
        await message.answer("❌ Cancelled.")
        return
    await message.answer(UIMessages.warning("Please send a file or a photo, or /cancel."))
