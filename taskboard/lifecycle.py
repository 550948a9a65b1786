"""Task mutations and the permission checks that guard them."""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Optional

from taskboard.records import TASK_COMPLETED, TASK_PENDING, Comment, Task, User

logger = logging.getLogger(__name__)


def revise_task(old: Optional[Task], new: Task, now: datetime) -> Task:
    """Return the whole record to persist when ``old`` is edited into ``new``.

    Only date changes count as modifications. ``completed_at`` is stamped on
    the pending -> completed transition and cleared on a revert.
    """
    count = old.modification_count if old else 0
    if old and (old.start_date != new.start_date or old.end_date != new.end_date):
        count += 1

    completed_at = old.completed_at if old else None
    if new.status == TASK_COMPLETED and (old is None or old.status != TASK_COMPLETED):
        completed_at = now
    elif new.status == TASK_PENDING:
        completed_at = None

    return replace(new, modification_count=count, completed_at=completed_at)


def toggle_status(task: Task, now: datetime) -> Task:
    status = TASK_PENDING if task.status == TASK_COMPLETED else TASK_COMPLETED
    return revise_task(task, replace(task, status=status), now)


def can_delete_task(viewer: Optional[User], task: Task) -> bool:
    if viewer is None:
        return False
    if viewer.is_admin:
        return True
    if task.created_by:
        return task.created_by == viewer.employee_id
    # legacy rows without an author
    return True


def can_edit_task(viewer: Optional[User], task: Task) -> bool:
    if viewer is None:
        return False
    return viewer.is_admin or task.employee_id == viewer.employee_id


def can_reassign(viewer: Optional[User]) -> bool:
    return viewer is not None and viewer.is_admin


def can_edit_comment(viewer: Optional[User], comment: Comment) -> bool:
    if viewer is None:
        return False
    return viewer.is_admin or comment.employee_id == viewer.employee_id


def new_task(
    viewer: User,
    task_id: str,
    title: str,
    selected_day: date,
    employee_id: Optional[str] = None,
    category: Optional[str] = None,
    description: str = "",
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    created_by: Optional[str] = None,
) -> Task:
    """Build a fresh pending task with the form defaults applied.

    Non-admins can only create tasks for themselves; an admin's choice of
    assignee is honored.
    """
    owner = viewer.employee_id
    if employee_id and employee_id != owner:
        if can_reassign(viewer):
            owner = employee_id
        else:
            logger.info("ignoring assignee %s requested by non-admin %s", employee_id, viewer.employee_id)

    start = start_date or selected_day
    return Task(
        id=task_id,
        employee_id=owner,
        title=title,
        category=category or "General",
        description=description or "",
        start_date=start,
        end_date=end_date or start_date or selected_day,
        status=TASK_PENDING,
        created_by=created_by or viewer.employee_id,
    )
