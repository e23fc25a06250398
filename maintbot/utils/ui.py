from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton, ReplyKeyboardMarkup, KeyboardButton
from typing import List, Tuple

# ========== UI Constants ==========
class UIEmojis:
    # Main Icons
    MONEY = "💰"
    CHECK = "✅"
    CANCEL = "❌"
    INFO = "ℹ️"

    # Actions
    ADD = "➕"
    DELETE = "🗑️"

    # Status
    URGENT = "🔴"

    # Maintenance
    BUILDING = "🏢"
    UNIT = "🚪"
    COMPONENT = "🔧"
    TASK = "🛠️"
    REQUEST = "📨"
    PROVIDER = "👷"
    RECURRING = "🔁"

    # Documents
    DOCUMENT = "📄"

    # Communication
    MESSAGE = "💬"
    BELL = "🔔"
    MAIL = "📧"

    # Reports
    CHART = "📊"
    CALENDAR = "📅"


class UIMessages:
    """Formatted message templates"""

    DIVIDER_FULL = "━" * 30

    @staticmethod
    def header(title: str, emoji: str = "") -> str:
        """Create a formatted header"""
        if emoji:
            return f"\n{emoji} <b>{title}</b>\n{UIMessages.DIVIDER_FULL}\n"
        return f"\n<b>{title}</b>\n{UIMessages.DIVIDER_FULL}\n"

    @staticmethod
    def field(name: str, value: str, emoji: str = "") -> str:
        prefix = f"{emoji} " if emoji else "• "
        return f"{prefix}<b>{name}:</b> {value}\n"

    @staticmethod
    def success(text: str) -> str:
        return f"✅ {text}"

    @staticmethod
    def error(text: str) -> str:
        return f"❌ {text}"

    @staticmethod
    def warning(text: str) -> str:
        return f"⚠️ {text}"


class UIKeyboards:
    """Common keyboard layouts"""

    @staticmethod
    def confirm_cancel(
        confirm_text: str = "Confirm",
        cancel_text: str = "Cancel",
        confirm_callback: str = "confirm",
        cancel_callback: str = "cancel"
    ) -> InlineKeyboardMarkup:
        """Confirm/Cancel buttons"""
        return InlineKeyboardMarkup(inline_keyboard=[
            [
                InlineKeyboardButton(text=f"{UIEmojis.CHECK} {confirm_text}", callback_data=confirm_callback),
                InlineKeyboardButton(text=f"{UIEmojis.CANCEL} {cancel_text}", callback_data=cancel_callback)
            ]
        ])

    @staticmethod
    def menu_grid(items: List[Tuple[str, str]], columns: int = 2) -> InlineKeyboardMarkup:
        """Create a grid menu from list of (text, callback_data) tuples"""
        keyboard = []
        row = []

        for text, callback in items:
            row.append(InlineKeyboardButton(text=text, callback_data=callback))
            if len(row) == columns:
                keyboard.append(row)
                row = []

        if row:  # Add remaining buttons
            keyboard.append(row)

        return InlineKeyboardMarkup(inline_keyboard=keyboard)

    @staticmethod
    def main_reply_keyboard(is_manager: bool = False) -> ReplyKeyboardMarkup:
        """Create persistent main menu keyboard"""
        if is_manager:
            keyboard = [
                [KeyboardButton(text="🏢 Buildings"), KeyboardButton(text="🛠️ Upcoming")],
                [KeyboardButton(text="📨 Requests"), KeyboardButton(text="📊 Finances")],
                [KeyboardButton(text="🔔 Notifications")]
            ]
        else:
            # Service provider
            keyboard = [
                [KeyboardButton(text="📨 My requests")],
                [KeyboardButton(text="🔔 Notifications")]
            ]

        return ReplyKeyboardMarkup(keyboard=keyboard, resize_keyboard=True)


# === Helper Functions ===

def format_amount(amount) -> str:
    if amount is None:
        return "—"
    return f"${float(amount):,.2f}"


def format_date(date_obj) -> str:
    if not date_obj:
        return "—"
    return date_obj.strftime("%b %d, %Y")


def get_status_badge(status: str) -> str:
    """Status badge emoji for task and request statuses"""
    badges = {
        "New": "⚪",
        "Sent": "📨",
        "On Hold": "🟡",
        "Accepted": "🟢",
        "Refused": "❌",
        "In Progress": "🔄",
        "Completed": "✅",
    }
    return badges.get(status, "⚪")


def task_line(task, today=None) -> str:
    """One-line summary of a task for lists"""
    overdue = today is not None and task.task_date and task.task_date < today
    prefix = UIEmojis.URGENT if overdue else get_status_badge(task.status)
    where = f" · Unit {task.unit_number}" if task.unit_number else ""
    return f"{prefix} {format_date(task.task_date)} — {task.name}{where}"


def request_line(request, task_name: str = "") -> str:
    urgent = f" {UIEmojis.URGENT}" if request.is_urgent else ""
    return (
        f"{get_status_badge(request.status)} {task_name or request.specialty} "
        f"({format_date(request.scheduled_date)}){urgent}"
    )
