"""Behavioral anomaly detection over the year-scoped task set.

Thresholds are policy; tune them here rather than in the checks.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List

from taskboard.metrics import is_overdue, late_days, overdue_days, valid_users, year_scoped_tasks
from taskboard.records import TASK_PENDING, USER_ACTIVE, USER_PENDING, Task

FREQUENT_EDIT_THRESHOLD = 3
SEVERE_OVERDUE_DAYS = 3
LATE_COMPLETION_DAYS = 3
STAGNANT_AFTER_DAYS = 7
OVERLOAD_THRESHOLD = 5

FLAG_FREQUENT_EDIT = "frequent_edit"
FLAG_SEVERE_OVERDUE = "severe_overdue"
FLAG_LATE_COMPLETION = "late_completion"


def is_frequently_edited(task: Task) -> bool:
    return (task.modification_count or 0) > FREQUENT_EDIT_THRESHOLD


def is_severely_overdue(task: Task, today: date) -> bool:
    return not task.is_completed and overdue_days(task, today) > SEVERE_OVERDUE_DAYS


def is_late_completion(task: Task) -> bool:
    if not task.is_completed or task.completed_at is None:
        return False
    return late_days(task) > LATE_COMPLETION_DAYS


def anomaly_flags(task: Task, today: date):
    flags = set()
    if is_frequently_edited(task):
        flags.add(FLAG_FREQUENT_EDIT)
    if is_severely_overdue(task, today):
        flags.add(FLAG_SEVERE_OVERDUE)
    if is_late_completion(task):
        flags.add(FLAG_LATE_COMPLETION)
    return flags


def abnormal_count(tasks, today: date) -> int:
    return sum(1 for t in tasks if anomaly_flags(t, today))


def stagnant_tasks(tasks, today: date) -> List[Task]:
    """Overdue tasks that started at least a week before today."""
    cutoff = today - timedelta(days=STAGNANT_AFTER_DAYS)
    return [t for t in tasks if is_overdue(t, today) and t.start_date <= cutoff]


def overloaded_users(users, tasks, today: date):
    rows = []
    for u in users:
        count = sum(1 for t in tasks if t.employee_id == u.employee_id and is_overdue(t, today))
        if count > OVERLOAD_THRESHOLD:
            rows.append({"employee_id": u.employee_id, "name": u.name, "count": count})
    return rows


@dataclass
class AnomalyReport:
    stagnant: List[Task] = field(default_factory=list)
    overloaded: list = field(default_factory=list)

    @property
    def stagnant_count(self) -> int:
        return len(self.stagnant)


def detect_anomalies(users, tasks, today: date) -> AnomalyReport:
    people = valid_users(users)
    scoped = year_scoped_tasks(tasks, people, today.year)
    return AnomalyReport(
        stagnant=stagnant_tasks(scoped, today),
        overloaded=overloaded_users(people, scoped, today),
    )


def personnel_table(users, tasks, today: date, search: str = ""):
    """Per-person counts for the admin table, worst overdue first.

    ``users`` and ``tasks`` are expected to be already valid-user and year
    scoped. Only active or pending accounts are listed.
    """
    needle = search.lower()
    rows = []
    for u in users:
        if u.status not in (USER_ACTIVE, USER_PENDING):
            continue
        if needle and needle not in u.name.lower() and search not in u.employee_id:
            continue
        mine = [t for t in tasks if t.employee_id == u.employee_id]
        rows.append({
            "user": u,
            "normal": sum(1 for t in mine if t.is_completed),
            "pending": sum(1 for t in mine if t.status == TASK_PENDING and t.end_date >= today),
            "overdue": sum(1 for t in mine if t.status == TASK_PENDING and t.end_date < today),
            "abnormal": abnormal_count(mine, today),
        })
    rows.sort(key=lambda r: r["overdue"], reverse=True)
    return rows
