from datetime import date, datetime

import pytest

from taskboard.records import (
    RecordError,
    User,
    display_name,
    normalize_comment,
    normalize_task,
    normalize_user,
    user_index,
)


def test_normalize_task_accepts_every_field_spelling():
    snake = normalize_task({
        "id": 7, "employee_id": " E1 ", "start_date": "2024-06-01", "end_date": "2024-06-03",
        "status": "completed", "modification_count": 2, "completed_at": "2024-06-02T09:00:00",
        "created_by": "A1", "category": "Ops", "title": "Audit",
    })
    camel = normalize_task({
        "id": "7", "employeeId": "E1", "startDate": "2024-06-01", "endDate": "2024-06-03",
        "status": "completed", "modificationCount": 2, "completedAt": "2024-06-02T09:00:00",
        "createdBy": "A1", "category": "Ops", "title": "Audit",
    })
    lower = normalize_task({
        "id": "7", "employeeid": "E1", "startdate": "2024-06-01", "enddate": "2024-06-03",
        "status": "completed", "modification_count": 2, "completed_at": "2024-06-02T09:00:00",
        "created_by": "A1", "category": "Ops", "title": "Audit",
    })
    assert snake == camel == lower
    assert snake.id == "7"
    assert snake.employee_id == "E1"
    assert snake.start_date == date(2024, 6, 1)
    assert snake.completed_at == datetime(2024, 6, 2, 9)


def test_normalize_task_defaults():
    task = normalize_task({"id": "1", "employee_id": "E1", "start_date": "2024-06-01"})
    assert task.end_date == date(2024, 6, 1)
    assert task.status == "pending"
    assert task.modification_count == 0
    assert task.completed_at is None
    assert task.created_by is None
    assert task.category == "General"
    assert task.description == ""


def test_normalize_task_rejects_unusable_rows():
    with pytest.raises(RecordError):
        normalize_task({"employee_id": "E1", "start_date": "2024-06-01"})
    with pytest.raises(RecordError):
        normalize_task({"id": "1", "start_date": "2024-06-01"})
    with pytest.raises(RecordError):
        normalize_task({"id": "1", "employee_id": "E1", "start_date": "June 1st"})


def test_normalize_user_lowercases_role_and_defaults_status():
    user = normalize_user({"id": 3, "employeeId": "E9", "name": "Dana", "role": "ADMIN"})
    assert user.role == "admin"
    assert user.is_admin
    assert user.status == "active"
    assert user.active_sessions == 0
    assert user.id == "3"


def test_normalize_comment():
    comment = normalize_comment({
        "id": 1, "taskId": "t1", "employeeId": "E1", "content": "done?", "createdAt": "2024-06-01T10:00:00Z",
    })
    assert comment.task_id == "t1"
    assert comment.created_at.year == 2024
    with pytest.raises(RecordError):
        normalize_comment({"id": 1, "content": "orphan"})


def test_display_name_falls_back_to_raw_id():
    users = [User(employee_id="E1", name="Alice")]
    assert display_name("E1", users) == "Alice"
    assert display_name("GONE", users) == "GONE"
    assert display_name("GONE", user_index(users)) == "GONE"
    assert display_name("E1", user_index(users)) == "Alice"
