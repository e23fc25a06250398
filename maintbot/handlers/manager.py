import html
import logging
from datetime import date

from aiogram import Router, F
from aiogram.filters import Filter, Command, CommandObject
from aiogram.fsm.context import FSMContext
from aiogram.types import Message, CallbackQuery, InlineKeyboardMarkup, InlineKeyboardButton
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from maintbot.config import config
from maintbot.database.models import Recurrence, TaskStatus
from maintbot.middlewares.error import input_error_text
from maintbot.schemas.validation import BuildingCreate, TaskCreate, ServiceRequestCreate
from maintbot.services import analytics_service, building_service, cascade_service, task_service
from maintbot.services.errors import PartialCascadeFailure
from maintbot.services.provider_service import list_providers
from maintbot.services.request_service import create_service_request, list_requests
from maintbot.services.textgen import textgen_manager, EmailDetails, ChecklistDetails
from maintbot.services.visibility_service import Actor, can_manage, scoped_view
from maintbot.states import AddBuildingState, AddTaskState, SendRequestState
from maintbot.utils.ui import UIEmojis, UIMessages, UIKeyboards, format_amount, format_date, task_line, request_line


class ManagerFilter(Filter):
    async def __call__(self, event, actor: Actor = None) -> bool:
        return actor is not None and can_manage(actor)

router = Router()
router.message.filter(ManagerFilter())
router.callback_query.filter(ManagerFilter())


# --- Buildings ---

@router.message(F.text.contains("Buildings"))
@router.message(Command("buildings"))
async def list_buildings_msg(message: Message, session: AsyncSession, actor: Actor):
    buildings = await building_service.list_buildings(session, actor)

    text = UIMessages.header("Buildings", UIEmojis.BUILDING)
    if not buildings:
        text += "No buildings yet."
    items = [(f"{UIEmojis.BUILDING} {b.name}", f"bld_{b.id}") for b in buildings]
    items.append((f"{UIEmojis.ADD} Add building", "add_building"))

    await message.answer(text, reply_markup=UIKeyboards.menu_grid(items, columns=1))


@router.callback_query(F.data == "add_building")
async def start_add_building(call: CallbackQuery, state: FSMContext):
    await call.message.answer(UIMessages.header("New building", UIEmojis.ADD) + "Enter the building name:")
    await state.set_state(AddBuildingState.waiting_for_name)
    await call.answer()


@router.message(AddBuildingState.waiting_for_name)
async def process_building_name(message: Message, state: FSMContext):
    if not message.text or message.text.startswith("/"):
        await message.answer("❌ Cancelled.")
        await state.clear()
        return
    await state.update_data(name=message.text)
    await message.answer("Enter the address:")
    await state.set_state(AddBuildingState.waiting_for_address)


@router.message(AddBuildingState.waiting_for_address)
async def process_building_address(message: Message, state: FSMContext, session: AsyncSession, actor: Actor):
    data = await state.get_data()
    try:
        payload = BuildingCreate(name=data.get("name", ""), address=message.text or "")
    except ValidationError as e:
        await message.answer(UIMessages.error(input_error_text(e)))
        return

    building = await building_service.create_building(session, actor, payload)
    await state.clear()
    await message.answer(UIMessages.success(f"Building <b>{building.name}</b> created."))


@router.callback_query(F.data.startswith("bld_") & ~F.data.startswith("bld_del") & ~F.data.startswith("bld_tasks_"))
async def show_building(call: CallbackQuery, session: AsyncSession, actor: Actor):
    building_id = call.data.removeprefix("bld_")
    view = await scoped_view(session, actor)
    building = view.building(building_id)
    if not building:
        await call.answer("Building not found", show_alert=True)
        return

    units = [u for u in view.units if u.building_id == building.id]
    components = building_service.components_for(view, building.id)
    open_tasks = [t for t in view.tasks if t.building_id == building.id and t.task_date and t.status != TaskStatus.completed.value]

    text = UIMessages.header(building.name, UIEmojis.BUILDING)
    text += UIMessages.field("Address", building.address)
    text += UIMessages.field("Units", str(len(units)), UIEmojis.UNIT)
    text += UIMessages.field("Components", str(len(components)), UIEmojis.COMPONENT)
    text += UIMessages.field("Open tasks", str(len(open_tasks)), UIEmojis.TASK)
    for c in components[:10]:
        where = f" (Unit {c.unit_number})" if c.unit_number else ""
        text += f"   {UIEmojis.COMPONENT} {c.name}{where}\n"

    kb = InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text=f"{UIEmojis.TASK} Tasks", callback_data=f"bld_tasks_{building.id}")],
        [InlineKeyboardButton(text=f"{UIEmojis.ADD} Add task", callback_data=f"task_add_{building.id}")],
        [InlineKeyboardButton(text=f"{UIEmojis.DELETE} Delete building", callback_data=f"bld_del_{building.id}")],
    ])
    await call.message.answer(text, reply_markup=kb)
    await call.answer()


@router.callback_query(F.data.startswith("bld_tasks_"))
async def show_building_tasks(call: CallbackQuery, session: AsyncSession, actor: Actor):
    building_id = call.data.removeprefix("bld_tasks_")
    tasks = await task_service.list_tasks(session, actor, building_id=building_id)
    tasks = [t for t in tasks if t.status != TaskStatus.completed.value][:20]

    if not tasks:
        await call.answer("No open tasks", show_alert=True)
        return

    today = date.today()
    items = [(task_line(t, today), f"task_{t.id}") for t in tasks]
    await call.message.answer(
        UIMessages.header("Open tasks", UIEmojis.TASK),
        reply_markup=UIKeyboards.menu_grid(items, columns=1)
    )
    await call.answer()


@router.callback_query(F.data.startswith("bld_del_ok_"))
async def confirm_delete_building(call: CallbackQuery, state: FSMContext, session: AsyncSession, actor: Actor):
    building_id = call.data.removeprefix("bld_del_ok_")
    try:
        result = await cascade_service.delete_building(session, actor, building_id)
    except PartialCascadeFailure as e:
        await state.update_data(cascade_plan=e.plan)
        kb = InlineKeyboardMarkup(inline_keyboard=[
            [InlineKeyboardButton(text="🔄 Retry", callback_data="cascade_retry")]
        ])
        await call.message.edit_text(UIMessages.warning(str(e)), reply_markup=kb)
        await call.answer()
        return

    await call.message.edit_text(UIMessages.success(result.message))
    await call.answer()


@router.callback_query(F.data.startswith("bld_del_"))
async def ask_delete_building(call: CallbackQuery, session: AsyncSession, actor: Actor):
    building_id = call.data.removeprefix("bld_del_")
    plan = await cascade_service.plan_building_delete(session, actor, building_id)
    counts = plan.counts()

    text = UIMessages.warning("<b>Delete this building?</b>\n\nThis also removes:\n")
    for kind in ("task", "request", "component", "unit", "expense"):
        text += f"• {cascade_service.plural(counts.get(kind, 0), kind)}\n"

    await call.message.answer(text, reply_markup=UIKeyboards.confirm_cancel(
        confirm_text="Delete", confirm_callback=f"bld_del_ok_{building_id}", cancel_callback="cancel_action"
    ))
    await call.answer()


@router.callback_query(F.data == "cascade_retry")
async def retry_cascade(call: CallbackQuery, state: FSMContext, session: AsyncSession):
    data = await state.get_data()
    plan = data.get("cascade_plan")
    if not plan:
        await call.answer("Nothing to retry", show_alert=True)
        return

    try:
        result = await cascade_service.resume_cascade(session, plan)
    except PartialCascadeFailure as e:
        await call.answer(str(e), show_alert=True)
        return

    await state.update_data(cascade_plan=None)
    await call.message.edit_text(UIMessages.success(result.message))
    await call.answer()


@router.callback_query(F.data == "cancel_action")
async def cancel_action(call: CallbackQuery, state: FSMContext):
    await state.clear()
    await call.message.edit_text("Cancelled.")
    await call.answer()


# --- Tasks ---

@router.callback_query(F.data.startswith("task_add_"))
async def start_add_task(call: CallbackQuery, state: FSMContext):
    await state.update_data(building_id=call.data.removeprefix("task_add_"))
    await call.message.answer(UIMessages.header("New task", UIEmojis.TASK) + "Task name:")
    await state.set_state(AddTaskState.waiting_for_name)
    await call.answer()


@router.message(AddTaskState.waiting_for_name)
async def process_task_name(message: Message, state: FSMContext):
    if not message.text or message.text.startswith("/"):
        await message.answer("❌ Cancelled.")
        await state.clear()
        return
    await state.update_data(name=message.text)
    await message.answer("Specialty (e.g. Plumbing, HVAC, Electrical):")
    await state.set_state(AddTaskState.waiting_for_specialty)


@router.message(AddTaskState.waiting_for_specialty)
async def process_task_specialty(message: Message, state: FSMContext):
    await state.update_data(specialty=(message.text or "").strip())
    items = [(r.value, f"rec_{r.name}") for r in Recurrence]
    await message.answer("How often?", reply_markup=UIKeyboards.menu_grid(items, columns=2))
    await state.set_state(AddTaskState.waiting_for_recurrence)


@router.callback_query(AddTaskState.waiting_for_recurrence, F.data.startswith("rec_"))
async def process_task_recurrence(call: CallbackQuery, state: FSMContext):
    recurrence = Recurrence[call.data.removeprefix("rec_")]
    await state.update_data(recurrence=recurrence.value)
    if recurrence == Recurrence.one_time:
        await call.message.answer("Date (YYYY-MM-DD):")
    else:
        await call.message.answer("Start and end date (YYYY-MM-DD YYYY-MM-DD):")
    await state.set_state(AddTaskState.waiting_for_dates)
    await call.answer()


@router.message(AddTaskState.waiting_for_dates)
async def process_task_dates(message: Message, state: FSMContext, session: AsyncSession, actor: Actor):
    data = await state.get_data()
    parts = (message.text or "").split()
    try:
        dates = [date.fromisoformat(p) for p in parts]
    except ValueError:
        await message.answer(UIMessages.error("Use the format YYYY-MM-DD"))
        return

    fields = dict(
        building_id=data["building_id"],
        name=data["name"],
        specialty=data.get("specialty", ""),
        recurrence=data["recurrence"],
    )
    if data["recurrence"] == Recurrence.one_time.value:
        fields["task_date"] = dates[0] if dates else None
    else:
        fields["start_date"] = dates[0] if dates else None
        fields["end_date"] = dates[1] if len(dates) > 1 else None

    try:
        payload = TaskCreate(**fields)
    except ValidationError as e:
        await message.answer(UIMessages.error(input_error_text(e)))
        return

    task, instances = await task_service.create_task(session, actor, payload)
    await state.clear()

    text = UIMessages.success(f"Task <b>{task.name}</b> created.")
    if instances:
        text += f"\n{UIEmojis.RECURRING} {len(instances)} occurrences scheduled, "
        text += f"from {format_date(instances[0].task_date)} to {format_date(instances[-1].task_date)}."
    await message.answer(text)


@router.callback_query(F.data.startswith("task_del_ok_"))
async def confirm_delete_task(call: CallbackQuery, session: AsyncSession, actor: Actor):
    result = await cascade_service.delete_task(session, actor, call.data.removeprefix("task_del_ok_"))
    await call.message.edit_text(UIMessages.success(result.message))
    await call.answer()


@router.callback_query(F.data.startswith("task_del_"))
async def ask_delete_task(call: CallbackQuery, session: AsyncSession, actor: Actor):
    task_id = call.data.removeprefix("task_del_")
    plan = await cascade_service.plan_task_delete(session, actor, task_id)
    text = UIMessages.warning(f"<b>{plan.title}</b> will be deleted.")
    requests = plan.counts().get("request", 0)
    if requests:
        text += f"\n{cascade_service.plural(requests, 'request')} will also be removed."

    await call.message.answer(text, reply_markup=UIKeyboards.confirm_cancel(
        confirm_text="Delete", confirm_callback=f"task_del_ok_{task_id}", cancel_callback="cancel_action"
    ))
    await call.answer()


@router.callback_query(F.data.startswith("task_req_"))
async def start_send_request(call: CallbackQuery, state: FSMContext, session: AsyncSession, actor: Actor):
    task = await task_service.get_task(session, actor, call.data.removeprefix("task_req_"))
    providers = await list_providers(session, actor, specialty=task.specialty or None)
    if not providers:
        providers = await list_providers(session, actor)
    if not providers:
        await call.answer("No service providers available", show_alert=True)
        return

    await state.update_data(task_id=task.id)
    items = [(f"{UIEmojis.PROVIDER} {p.name} ({p.specialty})", f"reqprov_{p.id}") for p in providers[:20]]
    await call.message.answer("Choose a provider:", reply_markup=UIKeyboards.menu_grid(items, columns=1))
    await state.set_state(SendRequestState.waiting_for_provider)
    await call.answer()


@router.callback_query(SendRequestState.waiting_for_provider, F.data.startswith("reqprov_"))
async def process_request_provider(call: CallbackQuery, state: FSMContext):
    await state.update_data(provider_id=call.data.removeprefix("reqprov_"))
    await call.message.answer("Notes for the provider (or '-' for none):")
    await state.set_state(SendRequestState.waiting_for_notes)
    await call.answer()


@router.message(SendRequestState.waiting_for_notes)
async def process_request_notes(message: Message, state: FSMContext, session: AsyncSession, actor: Actor):
    notes = "" if (message.text or "").strip() == "-" else (message.text or "").strip()
    data = await state.get_data()

    view = await scoped_view(session, actor)
    task = view.task(data["task_id"])
    provider = view.provider(data["provider_id"])
    if not task or not provider:
        await state.clear()
        await message.answer(UIMessages.error("Task or provider no longer available."))
        return
    building = view.building(task.building_id)

    email = await textgen_manager.request_email(EmailDetails(
        provider_name=provider.name,
        building_name=building.name,
        building_address=building.address,
        task_name=task.name,
        task_description=task.description or "",
        unit_number=task.unit_number,
        component_name=task.component_name,
        scheduled_date=task.task_date,
        notes=notes,
    ))
    await state.update_data(notes=notes, generated_email=email)

    await message.answer(
        UIMessages.header("Draft email", UIEmojis.MAIL) + f"<pre>{html.escape(email[:3500])}</pre>",
        reply_markup=UIKeyboards.confirm_cancel(
            confirm_text="Send", confirm_callback="req_send", cancel_callback="cancel_action"
        )
    )
    await state.set_state(SendRequestState.confirm)


@router.callback_query(SendRequestState.confirm, F.data == "req_send")
async def confirm_send_request(call: CallbackQuery, state: FSMContext, session: AsyncSession, actor: Actor):
    data = await state.get_data()
    request = await create_service_request(session, actor, ServiceRequestCreate(
        task_id=data["task_id"],
        provider_id=data["provider_id"],
        notes=data.get("notes", ""),
        generated_email=data.get("generated_email", ""),
    ))
    await state.clear()

    text = UIMessages.success("Service request sent!")
    text += "\n" + UIMessages.field("Scheduled", format_date(request.scheduled_date), UIEmojis.CALENDAR)
    if request.is_urgent:
        text += UIMessages.warning("Task is overdue, request marked urgent.")
    await call.message.edit_text(text)
    await call.answer()


# --- Dashboard ---

@router.message(F.text.contains("Upcoming"))
@router.message(Command("upcoming"))
async def upcoming_tasks(message: Message, session: AsyncSession, actor: Actor):
    view = await scoped_view(session, actor)
    today = date.today()
    summary = analytics_service.dashboard_summary(view, today, config.UPCOMING_WINDOW_DAYS)

    text = UIMessages.header("Upcoming tasks", UIEmojis.CALENDAR)
    text += f"{len(summary.upcoming_tasks)} open, {len(summary.overdue_tasks)} overdue, "
    text += f"{len(summary.urgent_requests)} requests need attention.\n"
    if not summary.upcoming_tasks:
        await message.answer(text)
        return

    items = [(task_line(t, today), f"task_{t.id}") for t in summary.upcoming_tasks[:20]]
    await message.answer(text, reply_markup=UIKeyboards.menu_grid(items, columns=1))


@router.callback_query(F.data.startswith("task_"))
async def show_task(call: CallbackQuery, session: AsyncSession, actor: Actor):
    task = await task_service.get_task(session, actor, call.data.removeprefix("task_"))

    text = UIMessages.header(task.name, UIEmojis.TASK)
    text += UIMessages.field("Due", format_date(task.task_date), UIEmojis.CALENDAR)
    text += UIMessages.field("Status", task.status)
    if task.specialty:
        text += UIMessages.field("Specialty", task.specialty)
    if task.unit_number:
        text += UIMessages.field("Unit", task.unit_number, UIEmojis.UNIT)
    if task.component_name:
        text += UIMessages.field("Component", task.component_name, UIEmojis.COMPONENT)
    if task.cost is not None:
        text += UIMessages.field("Cost", format_amount(task.cost), UIEmojis.MONEY)
    if task.description:
        text += f"\n{task.description}\n"

    kb = InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text=f"{UIEmojis.REQUEST} Send request", callback_data=f"task_req_{task.id}")],
        [InlineKeyboardButton(text=f"{UIEmojis.DELETE} Delete", callback_data=f"task_del_{task.id}")],
    ])
    await call.message.answer(text, reply_markup=kb)
    await call.answer()


@router.message(F.text.contains("Requests"))
@router.message(Command("requests"))
async def list_requests_msg(message: Message, session: AsyncSession, actor: Actor):
    view = await scoped_view(session, actor)
    requests = await list_requests(session, actor)
    if not requests:
        await message.answer(f"{UIEmojis.REQUEST} No service requests yet.")
        return

    items = []
    for r in requests[:20]:
        task = view.task(r.task_id)
        items.append((request_line(r, task.name if task else ""), f"req_{r.id}"))
    await message.answer(
        UIMessages.header("Service requests", UIEmojis.REQUEST),
        reply_markup=UIKeyboards.menu_grid(items, columns=1)
    )


@router.message(F.text.contains("Finances"))
@router.message(Command("finances"))
async def financial_summary(message: Message, session: AsyncSession, actor: Actor):
    view = await scoped_view(session, actor)
    costs = analytics_service.task_costs_by_building(view)
    expenses = analytics_service.expense_totals(view)

    text = UIMessages.header("Financial summary", UIEmojis.CHART)
    if not costs:
        text += "No task costs recorded.\n"
    for entry in costs:
        text += f"\n{UIEmojis.BUILDING} <b>{entry.building_name}</b>: {format_amount(entry.total_cost)}\n"
        for year, amount in sorted(entry.costs_by_year.items()):
            text += f"   {year}: {format_amount(amount)}\n"

    if expenses:
        text += "\n<b>Historical expenses</b>\n"
        for year, by_building in expenses.items():
            text += f"   {year}: {format_amount(sum(by_building.values()))}\n"

    await message.answer(text)


@router.message(Command("checklist"))
async def draft_checklist(message: Message, command: CommandObject):
    args = (command.args or "").split(maxsplit=1)
    if len(args) < 2:
        await message.answer("Usage: /checklist &lt;unit&gt; &lt;activity&gt;, e.g. /checklist 4B Move-out")
        return

    text = await textgen_manager.checklist(ChecklistDetails(
        unit_number=args[0], property_type="Apartment", activity_type=args[1]
    ))
    logging.info(f"Checklist drafted for unit {args[0]}")
    await message.answer(f"<pre>{html.escape(text[:3800])}</pre>")
