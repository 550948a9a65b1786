"""Which tasks occupy a day or range, and how a calendar cell shows them."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from taskboard import config
from taskboard.metrics import is_overdue
from taskboard.records import TASK_COMPLETED, TASK_PENDING, Task, User, display_name
from taskboard.utils import generate_calendar_grid, ranges_overlap

ALL = "all"
STATUS_FILTERS = (ALL, "completed", "pending", "overdue")

MONTH_VIEW_SLOTS = 2
WEEK_VIEW_SLOTS = 6


@dataclass(frozen=True)
class FilterContext:
    viewer_id: str
    is_admin: bool = False
    employee_id: str = ALL
    category: str = ALL
    status: str = ALL

    @classmethod
    def for_viewer(cls, viewer: User, **filters) -> "FilterContext":
        return cls(viewer_id=viewer.employee_id, is_admin=viewer.is_admin, **filters)


def tasks_in_range(tasks, start: date, end: date) -> List[Task]:
    return [t for t in tasks if ranges_overlap(t.start_date, t.end_date, start, end)]


def tasks_on_date(tasks, day: date) -> List[Task]:
    return tasks_in_range(tasks, day, day)


def _status_matches(task: Task, status: str, today: date) -> bool:
    if status == ALL:
        return True
    if status == "completed":
        return task.status == TASK_COMPLETED
    if status == "pending":
        # stored status only: an overdue pending task still matches
        return task.status == TASK_PENDING
    if status == "overdue":
        return is_overdue(task, today)
    raise ValueError(f"Unknown status filter: {status}")


def tasks_visible(tasks, ctx: FilterContext, today: date) -> List[Task]:
    if ctx.status not in STATUS_FILTERS:
        raise ValueError(f"Unknown status filter: {ctx.status}")

    visible = []
    for task in tasks:
        if ctx.is_admin:
            if ctx.employee_id != ALL and task.employee_id != ctx.employee_id:
                continue
        elif task.employee_id != ctx.viewer_id:
            continue
        if ctx.category != ALL and task.category != ctx.category:
            continue
        if not _status_matches(task, ctx.status, today):
            continue
        visible.append(task)
    return visible


@dataclass
class CellSlots:
    day: Optional[date]
    shown: List[Task] = field(default_factory=list)
    overflow: int = 0


def slot_cell(day: Optional[date], tasks, max_visible: int = MONTH_VIEW_SLOTS) -> CellSlots:
    if day is None:
        return CellSlots(day=None)
    on_day = tasks_on_date(tasks, day)
    return CellSlots(day=day, shown=on_day[:max_visible], overflow=max(0, len(on_day) - max_visible))


def week_slice(grid, selected: Optional[date], today: date):
    """The 7-cell row of ``grid`` holding the selected day (or today, or day one)."""
    idx = -1
    for pivot in (selected, today):
        if pivot is None:
            continue
        idx = next((i for i, d in enumerate(grid) if d == pivot), -1)
        if idx != -1:
            break
    if idx == -1:
        idx = next((i for i, d in enumerate(grid) if d is not None), 0)

    start = (idx // 7) * 7
    return grid[start:start + 7]


def month_view(tasks, year: int, month: int, max_visible: int = MONTH_VIEW_SLOTS) -> List[CellSlots]:
    return [slot_cell(d, tasks, max_visible) for d in generate_calendar_grid(year, month)]


def week_view(tasks, year: int, month: int, selected: Optional[date], today: date,
              max_visible: int = WEEK_VIEW_SLOTS) -> List[CellSlots]:
    row = week_slice(generate_calendar_grid(year, month), selected, today)
    return [slot_cell(d, tasks, max_visible) for d in row]


def categories_of(tasks) -> List[str]:
    seen = []
    for t in tasks:
        if t.category and t.category not in seen:
            seen.append(t.category)
    return seen


def comments_for(comments, task_id: str):
    return sorted((c for c in comments if c.task_id == task_id), key=lambda c: c.created_at)


def calendar_event_fields(task: Task, users) -> dict:
    """Shape handed to the external calendar mirror."""
    notes = f"{task.description or ''}\nCategory: {task.category}\nAssignee: {display_name(task.employee_id, users)}"
    return {
        "title": f"{config.CALENDAR_EVENT_PREFIX} {task.title}",
        "notes": notes,
        "start_date": task.start_date,
        "end_date": task.end_date,
    }
