from aiogram.fsm.state import State, StatesGroup

class AddBuildingState(StatesGroup):
    waiting_for_name = State()
    waiting_for_address = State()

class AddTaskState(StatesGroup):
    waiting_for_name = State()
    waiting_for_specialty = State()
    waiting_for_recurrence = State()
    waiting_for_dates = State()

class SendRequestState(StatesGroup):
    waiting_for_provider = State()
    waiting_for_notes = State()
    confirm = State()

class CommentState(StatesGroup):
    waiting_for_text = State()

class DocumentState(StatesGroup):
    waiting_for_file = State()
