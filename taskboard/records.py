"""Canonical Task / User / Comment records.

Rows arrive from the store under several field spellings
(``employee_id``, ``employeeId``, ``employeeid`` ...). ``normalize_*`` is
the only place that knows about those spellings; everything else in the
package works on the frozen dataclasses defined here.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from taskboard.utils import parse_date, parse_timestamp

ROLE_ADMIN = "admin"
ROLE_USER = "user"

USER_ACTIVE = "active"
USER_PENDING = "pending"
USER_REJECTED = "rejected"

TASK_PENDING = "pending"
TASK_COMPLETED = "completed"

# effective states
STATE_PENDING = "pending"
STATE_OVERDUE = "overdue"
STATE_COMPLETED = "completed"


class RecordError(ValueError):
    pass


@dataclass(frozen=True)
class User:
    employee_id: str
    name: str
    role: str = ROLE_USER
    status: str = USER_ACTIVE
    color: Optional[str] = None
    active_sessions: int = 0
    id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


@dataclass(frozen=True)
class Task:
    id: str
    employee_id: str
    start_date: date
    end_date: date
    title: str = "Untitled Task"
    category: str = "General"
    description: str = ""
    status: str = TASK_PENDING
    modification_count: int = 0
    completed_at: Optional[datetime] = None
    created_by: Optional[str] = None
    last_reminded_at: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return self.status == TASK_COMPLETED


@dataclass(frozen=True)
class Comment:
    id: str
    task_id: str
    employee_id: str
    content: str
    created_at: datetime


@dataclass(frozen=True)
class Snapshot:
    """One immutable refresh of the store."""
    users: tuple = field(default_factory=tuple)
    tasks: tuple = field(default_factory=tuple)
    comments: tuple = field(default_factory=tuple)


def _pick(raw, *names, default=None):
    for name in names:
        value = raw.get(name)
        if value is not None and value != "":
            return value
    return default


def _optional_timestamp(value):
    if value is None or value == "":
        return None
    return parse_timestamp(value)


def normalize_user(raw) -> User:
    employee_id = _pick(raw, "employee_id", "employeeId", "employeeid")
    if employee_id is None:
        raise RecordError(f"user row without employee id: {raw!r}")
    employee_id = str(employee_id).strip()
    return User(
        id=str(raw["id"]) if raw.get("id") is not None else None,
        employee_id=employee_id,
        name=_pick(raw, "name", default=employee_id),
        role=str(_pick(raw, "role", default=ROLE_USER)).lower(),
        status=_pick(raw, "status", default=USER_ACTIVE),
        color=_pick(raw, "color"),
        active_sessions=int(_pick(raw, "active_sessions", "activeSessions", default=0)),
    )


def normalize_task(raw) -> Task:
    if raw.get("id") is None:
        raise RecordError(f"task row without id: {raw!r}")
    employee_id = _pick(raw, "employee_id", "employeeId", "employeeid")
    start = _pick(raw, "start_date", "startDate", "startdate")
    end = _pick(raw, "end_date", "endDate", "enddate", default=start)
    if employee_id is None or start is None:
        raise RecordError(f"task {raw.get('id')} is missing owner or start date")
    try:
        start_date = parse_date(start)
        end_date = parse_date(end)
        completed_at = _optional_timestamp(_pick(raw, "completed_at", "completedAt"))
        last_reminded_at = _optional_timestamp(_pick(raw, "last_reminded_at", "lastRemindedAt"))
    except ValueError as e:
        raise RecordError(f"task {raw.get('id')} has a bad date: {e}") from e

    created_by = _pick(raw, "created_by", "createdBy")
    return Task(
        id=str(raw["id"]),
        employee_id=str(employee_id).strip(),
        category=_pick(raw, "category", default="General"),
        title=_pick(raw, "title", default="Untitled Task"),
        description=raw.get("description") or "",
        start_date=start_date,
        end_date=end_date,
        status=_pick(raw, "status", default=TASK_PENDING),
        modification_count=int(_pick(raw, "modification_count", "modificationCount", default=0)),
        completed_at=completed_at,
        created_by=str(created_by).strip() if created_by is not None else None,
        last_reminded_at=last_reminded_at,
    )


def normalize_comment(raw) -> Comment:
    task_id = _pick(raw, "task_id", "taskId", "taskid")
    author = _pick(raw, "employee_id", "employeeId", "employeeid")
    created_at = _pick(raw, "created_at", "createdAt")
    if raw.get("id") is None or task_id is None or author is None or created_at is None:
        raise RecordError(f"comment row is missing fields: {raw!r}")
    try:
        created_at = parse_timestamp(created_at)
    except ValueError as e:
        raise RecordError(f"comment {raw['id']} has a bad timestamp: {e}") from e
    return Comment(
        id=str(raw["id"]),
        task_id=str(task_id),
        employee_id=str(author),
        content=raw.get("content") or "",
        created_at=created_at,
    )


def user_index(users):
    return {u.employee_id: u for u in users}


def display_name(employee_id: str, users) -> str:
    """Name for an employee id, or the raw id when the user is gone."""
    if isinstance(users, dict):
        u = users.get(employee_id)
    else:
        u = next((x for x in users if x.employee_id == employee_id), None)
    return u.name if u else employee_id
