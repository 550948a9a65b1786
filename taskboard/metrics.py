from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from taskboard import config
from taskboard.records import (
    STATE_COMPLETED,
    STATE_OVERDUE,
    STATE_PENDING,
    USER_REJECTED,
    Task,
    User,
)
from taskboard.utils import day_diff, local_date, percent, period_range, ranges_overlap, year_range


# -------------------------
# PER-TASK FACTS
# -------------------------
def is_overdue(task: Task, today: date) -> bool:
    return not task.is_completed and task.end_date < today


def effective_status(task: Task, today: date) -> str:
    if task.is_completed:
        return STATE_COMPLETED
    if task.end_date < today:
        return STATE_OVERDUE
    return STATE_PENDING


def overdue_days(task: Task, today: date) -> int:
    return day_diff(today, task.end_date)


def late_days(task: Task) -> Optional[int]:
    if task.completed_at is None:
        return None
    return day_diff(local_date(task.completed_at), task.end_date)


def completed_on_time(task: Task) -> bool:
    if not task.is_completed:
        return False
    lateness = late_days(task)
    # completed rows from before completed_at existed get the benefit of the doubt
    return lateness is None or lateness <= 0


# -------------------------
# SCOPE
# -------------------------
def valid_users(users, system_account: Optional[str] = None) -> List[User]:
    reserved = config.SYSTEM_ACCOUNT_NAME if system_account is None else system_account
    return [u for u in users if u.status != USER_REJECTED and u.name != reserved]


def in_year(task: Task, year: int) -> bool:
    start, end = year_range(year)
    return ranges_overlap(task.start_date, task.end_date, start, end)


def year_scoped_tasks(tasks, users, year: int) -> List[Task]:
    ids = {u.employee_id for u in users}
    return [t for t in tasks if in_year(t, year) and t.employee_id in ids]


# -------------------------
# AGGREGATES
# -------------------------
@dataclass
class UserStat:
    employee_id: str
    name: str
    total: int = 0
    completed: int = 0
    pending: int = 0
    overdue: int = 0
    target_load: int = 0
    completed_on_time: int = 0
    rate: int = 0
    on_time_rate: int = 0


@dataclass
class OrgStat:
    total: int
    completed: int
    pending: int
    overdue: int


def user_stat(user: User, tasks, today: date) -> UserStat:
    mine = [t for t in tasks if t.employee_id == user.employee_id]
    due = [t for t in mine if t.end_date <= today]

    total = len(mine)
    completed = sum(1 for t in mine if t.is_completed)
    on_time = sum(1 for t in due if completed_on_time(t))

    return UserStat(
        employee_id=user.employee_id,
        name=user.name,
        total=total,
        completed=completed,
        pending=sum(1 for t in mine if not t.is_completed and t.end_date >= today),
        overdue=sum(1 for t in mine if is_overdue(t, today)),
        target_load=len(due),
        completed_on_time=on_time,
        rate=percent(completed, total),
        on_time_rate=percent(on_time, len(due)),
    )


def user_stats(users, tasks, today: date) -> List[UserStat]:
    return [user_stat(u, tasks, today) for u in users]


def org_stat(tasks, today: date) -> OrgStat:
    total = len(tasks)
    completed = sum(1 for t in tasks if t.is_completed)
    return OrgStat(
        total=total,
        completed=completed,
        pending=total - completed,
        overdue=sum(1 for t in tasks if is_overdue(t, today)),
    )


def category_distribution(tasks):
    counts = {}
    for t in tasks:
        counts[t.category] = counts.get(t.category, 0) + 1
    # sorted() is stable so ties keep discovery order
    return sorted(counts.items(), key=lambda kv: kv[1], reverse=True)


def top_categories(tasks, limit: int = 3):
    total = len(tasks)
    return [
        {"name": name, "count": count, "percent": percent(count, total)}
        for name, count in category_distribution(tasks)[:limit]
    ]


def honor_roll(stats) -> List[UserStat]:
    """Best on-time performer, ties going to the heavier load. Empty if nobody had work due."""
    eligible = [s for s in stats if s.target_load > 0]
    eligible.sort(key=lambda s: (s.on_time_rate, s.target_load), reverse=True)
    return eligible[:1]


def overdue_leaderboard(stats):
    board = [
        {"employee_id": s.employee_id, "name": s.name, "count": s.overdue, "rate": percent(s.overdue, s.total)}
        for s in stats
        if s.overdue > 0
    ]
    board.sort(key=lambda row: row["count"], reverse=True)
    return board


def sort_user_tasks(tasks, today: date) -> List[Task]:
    rank = {STATE_OVERDUE: 0, STATE_PENDING: 1, STATE_COMPLETED: 2}
    return sorted(tasks, key=lambda t: (rank[effective_status(t, today)], t.start_date))


# -------------------------
# PERIOD SUMMARY
# -------------------------
def period_advice(total: int, overdue_tasks, completion_rate: int) -> str:
    if total == 0:
        return "No tasks scheduled for this period."
    if overdue_tasks:
        return (
            f'Overdue Alert! Please prioritize "{overdue_tasks[0].title}" '
            f"and {len(overdue_tasks) - 1} other items to stay on track."
        )
    if completion_rate == 100:
        return "All tasks completed! Excellent performance, keep it up."
    if completion_rate >= 70:
        return "Progress is steady. Execution efficiency is ideal, proceed as planned."
    return "Recommendation: Evaluate task priorities and improve completion efficiency."


def period_summary(tasks, period: str, today: date):
    start, end = period_range(period, today)
    in_period = [t for t in tasks if ranges_overlap(t.start_date, t.end_date, start, end)]

    total = len(in_period)
    completed = sum(1 for t in in_period if t.is_completed)
    overdue_tasks = [t for t in in_period if is_overdue(t, today)]
    completion_rate = percent(completed, total)

    return {
        "period": period,
        "start": start,
        "end": end,
        "total": total,
        "completed": completed,
        "overdue": len(overdue_tasks),
        "ongoing": sum(1 for t in in_period if not t.is_completed and t.end_date >= today),
        "completion_rate": completion_rate,
        "top_categories": top_categories(in_period),
        "advice": period_advice(total, overdue_tasks, completion_rate),
    }


# -------------------------
# DASHBOARD
# -------------------------
@dataclass
class DashboardReport:
    year: int
    today: date
    org: OrgStat
    categories: list
    user_stats: List[UserStat]
    honor_roll: List[UserStat]
    overdue_leaderboard: list


def build_dashboard(users, tasks, today: date) -> DashboardReport:
    people = valid_users(users)
    scoped = year_scoped_tasks(tasks, people, today.year)
    stats = user_stats(people, scoped, today)

    return DashboardReport(
        year=today.year,
        today=today,
        org=org_stat(scoped, today),
        categories=category_distribution(scoped),
        user_stats=stats,
        honor_roll=honor_roll(stats),
        overdue_leaderboard=overdue_leaderboard(stats),
    )
