"""Drag-and-drop rescheduling.

A gesture goes idle -> dragging -> (trash | date cell | nowhere) -> idle.
The session only decides what the drop means; persisting the moved task
or the delete is the caller's job.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Iterable, Optional

from taskboard.lifecycle import can_delete_task
from taskboard.records import Task, User

logger = logging.getLogger(__name__)

IDLE = "idle"
DRAGGING = "dragging"

DROP_DELETED = "deleted"
DROP_RESCHEDULED = "rescheduled"
DROP_UNCHANGED = "unchanged"


@dataclass(frozen=True)
class Rect:
    left: float
    top: float
    right: float
    bottom: float

    def contains(self, x: float, y: float) -> bool:
        return self.left <= x <= self.right and self.top <= y <= self.bottom


@dataclass(frozen=True)
class DateCell:
    day: date
    rect: Rect


@dataclass(frozen=True)
class DropResult:
    kind: str
    task: Task
    drop_date: Optional[date] = None


def shift_task(task: Task, drop_day: date) -> Task:
    duration = task.end_date - task.start_date
    return replace(task, start_date=drop_day, end_date=drop_day + duration)


class DragSession:
    def __init__(self):
        self.state = IDLE
        self.task = None
        self.trash_exposed = False

    def begin(self, task: Task, viewer: Optional[User]) -> bool:
        """Start dragging ``task``; returns whether the trash target is shown."""
        if self.state != IDLE:
            raise RuntimeError(f"drag already in progress for task {self.task.id}")
        self.state = DRAGGING
        self.task = task
        self.trash_exposed = can_delete_task(viewer, task)
        return self.trash_exposed

    def release(self, x: float, y: float, trash: Optional[Rect] = None,
                cells: Iterable[DateCell] = ()) -> DropResult:
        if self.state != DRAGGING:
            raise RuntimeError("release without an active drag")
        task = self.task
        try:
            if self.trash_exposed and trash is not None and trash.contains(x, y):
                return DropResult(DROP_DELETED, task)

            for cell in cells:
                if cell.rect.contains(x, y):
                    return DropResult(DROP_RESCHEDULED, shift_task(task, cell.day), cell.day)

            logger.debug("task %s dropped outside any target", task.id)
            return DropResult(DROP_UNCHANGED, task)
        finally:
            self.cancel()

    def cancel(self) -> None:
        self.state = IDLE
        self.task = None
        self.trash_exposed = False
