"""SQLAlchemy-backed record store.

Rows go through ``records.normalize_*`` on the way out and whole canonical
records come back in; nothing here computes schedule facts.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from taskboard import models
from taskboard.records import (
    Comment,
    RecordError,
    Snapshot,
    Task,
    User,
    normalize_comment,
    normalize_task,
    normalize_user,
)

logger = logging.getLogger(__name__)

TASK_FIELDS = (
    "id", "employee_id", "category", "title", "description", "start_date", "end_date",
    "status", "modification_count", "completed_at", "created_by", "last_reminded_at",
)
USER_FIELDS = ("employee_id", "name", "role", "status", "color", "active_sessions")
COMMENT_FIELDS = ("id", "task_id", "employee_id", "content", "created_at")


def _row_dict(row, names):
    return {name: getattr(row, name) for name in names}


def _normalized(rows, names, normalize):
    out = []
    for row in rows:
        try:
            out.append(normalize(_row_dict(row, names)))
        except RecordError as e:
            logger.warning("skipping unreadable %s row: %s", row.__tablename__, e)
    return out


class TaskStore:
    def __init__(self, db: Session):
        self.db = db

    # -------------------------
    # READS
    # -------------------------
    def list_users(self) -> List[User]:
        rows = self.db.query(models.User).order_by(models.User.id.asc()).all()
        return _normalized(rows, USER_FIELDS + ("id",), normalize_user)

    def list_tasks(self) -> List[Task]:
        rows = self.db.query(models.Task).order_by(models.Task.start_date.asc()).all()
        return _normalized(rows, TASK_FIELDS, normalize_task)

    def list_comments(self) -> List[Comment]:
        rows = self.db.query(models.Comment).order_by(models.Comment.created_at.asc()).all()
        return _normalized(rows, COMMENT_FIELDS, normalize_comment)

    def snapshot(self) -> Snapshot:
        return Snapshot(
            users=tuple(self.list_users()),
            tasks=tuple(self.list_tasks()),
            comments=tuple(self.list_comments()),
        )

    def get_task(self, task_id: str) -> Optional[Task]:
        row = self.db.get(models.Task, task_id)
        return normalize_task(_row_dict(row, TASK_FIELDS)) if row else None

    def get_user(self, employee_id: str) -> Optional[User]:
        row = self.db.query(models.User).filter(models.User.employee_id == employee_id).first()
        return normalize_user(_row_dict(row, USER_FIELDS + ("id",))) if row else None

    def get_comment(self, comment_id: str) -> Optional[Comment]:
        row = self.db.get(models.Comment, comment_id)
        return normalize_comment(_row_dict(row, COMMENT_FIELDS)) if row else None

    # -------------------------
    # TASK WRITES
    # -------------------------
    def create_task(self, task: Task) -> Task:
        self.db.add(models.Task(**{name: getattr(task, name) for name in TASK_FIELDS}))
        self.db.commit()
        logger.info("task %s created for %s", task.id, task.employee_id)
        return task

    def update_task(self, task: Task) -> Task:
        row = self.db.get(models.Task, task.id)
        if row is None:
            raise KeyError(task.id)
        for name in TASK_FIELDS:
            setattr(row, name, getattr(task, name))
        self.db.commit()
        logger.info("task %s updated", task.id)
        return task

    def delete_task(self, task_id: str) -> bool:
        deleted = self.db.query(models.Task).filter(models.Task.id == task_id).delete()
        self.db.commit()
        logger.info("task %s deleted", task_id)
        return bool(deleted)

    def delete_tasks(self, task_ids: Iterable[str]) -> int:
        ids = list(task_ids)
        if not ids:
            return 0
        deleted = self.db.query(models.Task).filter(models.Task.id.in_(ids)).delete(synchronize_session=False)
        self.db.commit()
        logger.info("%d tasks deleted in batch", deleted)
        return deleted

    # -------------------------
    # COMMENTS
    # -------------------------
    def create_comment(self, comment: Comment) -> Comment:
        self.db.add(models.Comment(**{name: getattr(comment, name) for name in COMMENT_FIELDS}))
        self.db.commit()
        return comment

    def update_comment(self, comment: Comment) -> Comment:
        row = self.db.get(models.Comment, comment.id)
        if row is None:
            raise KeyError(comment.id)
        row.content = comment.content
        self.db.commit()
        return comment

    def delete_comment(self, comment_id: str) -> bool:
        deleted = self.db.query(models.Comment).filter(models.Comment.id == comment_id).delete()
        self.db.commit()
        return bool(deleted)

    # -------------------------
    # USERS
    # -------------------------
    def create_user(self, user: User) -> User:
        self.db.add(models.User(**{name: getattr(user, name) for name in USER_FIELDS}))
        self.db.commit()
        logger.info("user %s created (%s)", user.employee_id, user.status)
        return self.get_user(user.employee_id)

    def update_user(self, user: User) -> User:
        row = self.db.query(models.User).filter(models.User.employee_id == user.employee_id).first()
        if row is None:
            raise KeyError(user.employee_id)
        for name in USER_FIELDS:
            setattr(row, name, getattr(user, name))
        self.db.commit()
        return user

    def delete_user(self, employee_id: str) -> bool:
        # tasks keep their employee_id; readers fall back to the raw id
        deleted = self.db.query(models.User).filter(models.User.employee_id == employee_id).delete()
        self.db.commit()
        logger.info("user %s deleted", employee_id)
        return bool(deleted)
