from datetime import date, timedelta
from typing import Dict, List, Optional

from maintbot.database.models import TaskStatus, RequestStatus
from maintbot.services.visibility_service import ScopedView


class BuildingCosts:
    def __init__(self, building_id: str, building_name: str):
        self.building_id = building_id
        self.building_name = building_name
        self.total_cost = 0.0
        self.costs_by_year: Dict[int, float] = {}

    def add(self, year: int, cost):
        cost = float(cost or 0)
        self.total_cost += cost
        self.costs_by_year[year] = self.costs_by_year.get(year, 0.0) + cost


class DashboardSummary:
    def __init__(self, upcoming_tasks, overdue_tasks, urgent_requests):
        self.upcoming_tasks = upcoming_tasks
        self.overdue_tasks = overdue_tasks
        self.urgent_requests = urgent_requests


def dashboard_summary(view: ScopedView, today: Optional[date] = None, window_days: int = 30) -> DashboardSummary:
    """
    Open tasks and requests needing attention.

    Upcoming tasks: dated, not completed, due on or before today + window
    (overdue ones included). Urgent requests: not completed, with a
    scheduled date that is past, within the window, or flagged urgent.
    """
    today = today or date.today()
    horizon = today + timedelta(days=window_days)

    upcoming = [
        t for t in view.tasks
        if t.task_date and t.status != TaskStatus.completed.value and t.task_date <= horizon
    ]
    upcoming.sort(key=lambda t: t.task_date)
    overdue = [t for t in upcoming if t.task_date < today]

    urgent = []
    for r in view.requests:
        if r.status == RequestStatus.completed.value or not r.scheduled_date:
            continue
        is_overdue = r.scheduled_date < today
        is_upcoming = today <= r.scheduled_date <= horizon
        if is_overdue or is_upcoming or r.is_urgent:
            urgent.append(r)
    urgent.sort(key=lambda r: r.scheduled_date)

    return DashboardSummary(upcoming, overdue, urgent)


def task_costs_by_building(view: ScopedView) -> List[BuildingCosts]:
    """Costs of dated tasks per building and year, most expensive building first."""
    names = {b.id: b.name for b in view.buildings}
    costs: Dict[str, BuildingCosts] = {}

    for task in view.tasks:
        if not task.task_date or not task.cost:
            continue
        entry = costs.setdefault(
            task.building_id, BuildingCosts(task.building_id, names.get(task.building_id, "N/A"))
        )
        entry.add(task.task_date.year, task.cost)

    return sorted(costs.values(), key=lambda c: c.total_cost, reverse=True)


def expense_totals(view: ScopedView, building_id: Optional[str] = None) -> Dict[int, Dict[str, float]]:
    """Historical expenses: {year: {building_id: total}}, years ascending."""
    totals: Dict[int, Dict[str, float]] = {}
    for expense in view.expenses:
        if building_id and expense.building_id != building_id:
            continue
        year = totals.setdefault(expense.year, {})
        year[expense.building_id] = year.get(expense.building_id, 0.0) + float(expense.cost)
    return dict(sorted(totals.items()))
