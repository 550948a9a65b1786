import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import asdict, replace
from datetime import date, datetime

from fastapi import Depends, FastAPI, Header, HTTPException
from sqlalchemy.orm import Session

from taskboard import config
from taskboard.anomalies import anomaly_flags, detect_anomalies, personnel_table
from taskboard.calendar_view import (
    ALL,
    MONTH_VIEW_SLOTS,
    WEEK_VIEW_SLOTS,
    FilterContext,
    calendar_event_fields,
    categories_of,
    comments_for,
    month_view,
    tasks_on_date,
    tasks_visible,
    week_view,
)
from taskboard.database import Base, SessionLocal, engine, get_db
from taskboard.lifecycle import (
    can_delete_task,
    can_edit_comment,
    can_edit_task,
    can_reassign,
    new_task,
    revise_task,
    toggle_status,
)
from taskboard.metrics import (
    build_dashboard,
    effective_status,
    late_days,
    overdue_days,
    period_summary,
    sort_user_tasks,
    valid_users,
    year_scoped_tasks,
)
from taskboard.records import (
    ROLE_ADMIN,
    USER_ACTIVE,
    USER_PENDING,
    USER_REJECTED,
    Comment,
    User,
    display_name,
    user_index,
)
from taskboard.reschedule import DROP_DELETED, DROP_RESCHEDULED, DateCell, DragSession, Rect, shift_task
from taskboard.schemas import (
    BatchDelete,
    CommentIn,
    DropRequest,
    MoveRequest,
    ProfileUpdate,
    TaskCreate,
    TaskUpdate,
    UserCreate,
)
from taskboard.store import TaskStore
from taskboard.utils import generate_color, parse_date

# -------------------------
# APP
# -------------------------
logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)


def seed_admin(store: TaskStore):
    if not config.ADMIN_EMPLOYEE_ID or store.get_user(config.ADMIN_EMPLOYEE_ID):
        return
    store.create_user(User(
        employee_id=config.ADMIN_EMPLOYEE_ID,
        name=config.ADMIN_NAME,
        role=ROLE_ADMIN,
        status=USER_ACTIVE,
        color=generate_color(config.ADMIN_EMPLOYEE_ID),
    ))
    logger.info("seeded admin account %s", config.ADMIN_EMPLOYEE_ID)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = SessionLocal()
    try:
        seed_admin(TaskStore(db))
    finally:
        db.close()
    logger.info("taskboard started (%s)", config.ENV)
    yield


app = FastAPI(title="taskboard", lifespan=lifespan)


def get_store(db: Session = Depends(get_db)) -> TaskStore:
    return TaskStore(db)


def resolve_today(as_of: str | None) -> date:
    if not as_of:
        return datetime.today().date()
    try:
        return parse_date(as_of)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Bad date: {as_of}")


# -------------------------
# VIEWER HELPERS
# -------------------------
def require_viewer(store: TaskStore, employee_id: str | None) -> User:
    if not employee_id:
        raise HTTPException(status_code=401, detail="X-Employee-Id header required")
    viewer = store.get_user(employee_id.strip())
    if not viewer or viewer.status != USER_ACTIVE:
        raise HTTPException(status_code=401, detail="Unknown or inactive user")
    return viewer


def require_admin(viewer: User):
    if not viewer.is_admin:
        raise HTTPException(status_code=403, detail="Not allowed")


def task_view(task, today: date, users) -> dict:
    return {
        **asdict(task),
        "assignee": display_name(task.employee_id, users),
        "effective_status": effective_status(task, today),
        "overdue_days": max(0, overdue_days(task, today)) if not task.is_completed else 0,
        "late_days": late_days(task),
        "flags": sorted(anomaly_flags(task, today)),
    }


def load_task(store: TaskStore, task_id: str):
    task = store.get_task(task_id)
    if not task:
        raise HTTPException(status_code=404)
    return task


def filter_context(viewer: User, employee_id: str, category: str, status: str) -> FilterContext:
    return FilterContext.for_viewer(viewer, employee_id=employee_id, category=category, status=status)


def check_year_month(year: int, month: int):
    if not 1 <= year <= 9999:
        raise HTTPException(status_code=422, detail="year must be 1-9999")
    if not 1 <= month <= 12:
        raise HTTPException(status_code=422, detail="month must be 1-12")


def visible_or_422(tasks, ctx: FilterContext, today: date):
    try:
        return tasks_visible(tasks, ctx, today)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


# -------------------------
# DASHBOARD
# -------------------------
@app.get("/dashboard")
def dashboard(
    as_of: str | None = None,
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    viewer = require_viewer(store, x_employee_id)
    require_admin(viewer)

    today = resolve_today(as_of)
    report = build_dashboard(store.list_users(), store.list_tasks(), today)

    return {
        "year": report.year,
        "today": report.today,
        **asdict(report.org),
        "categories": [{"name": name, "value": count} for name, count in report.categories],
        "user_stats": report.user_stats,
        "honor_roll": report.honor_roll,
        "overdue_leaderboard": report.overdue_leaderboard[:5],
    }


@app.get("/dashboard/anomalies")
def dashboard_anomalies(
    as_of: str | None = None,
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    viewer = require_viewer(store, x_employee_id)
    require_admin(viewer)

    today = resolve_today(as_of)
    users = store.list_users()
    report = detect_anomalies(users, store.list_tasks(), today)
    index = user_index(users)

    return {
        "stagnant_count": report.stagnant_count,
        "stagnant": [task_view(t, today, index) for t in report.stagnant],
        "overloaded": report.overloaded,
    }


@app.get("/dashboard/personnel")
def dashboard_personnel(
    search: str = "",
    as_of: str | None = None,
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    viewer = require_viewer(store, x_employee_id)
    require_admin(viewer)

    today = resolve_today(as_of)
    people = valid_users(store.list_users())
    scoped = year_scoped_tasks(store.list_tasks(), people, today.year)

    return [
        {**row, "user": asdict(row["user"])}
        for row in personnel_table(people, scoped, today, search)
    ]


@app.get("/dashboard/users/{employee_id}/tasks")
def dashboard_user_tasks(
    employee_id: str,
    as_of: str | None = None,
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    viewer = require_viewer(store, x_employee_id)
    require_admin(viewer)

    today = resolve_today(as_of)
    users = store.list_users()
    people = valid_users(users)
    scoped = year_scoped_tasks(store.list_tasks(), people, today.year)
    mine = [t for t in scoped if t.employee_id == employee_id]
    index = user_index(users)

    return [task_view(t, today, index) for t in sort_user_tasks(mine, today)]


@app.get("/stats/period")
def stats_period(
    period: str = "month",
    employee_id: str = ALL,
    category: str = ALL,
    as_of: str | None = None,
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    viewer = require_viewer(store, x_employee_id)
    today = resolve_today(as_of)

    ctx = filter_context(viewer, employee_id, category, ALL)
    tasks = tasks_visible(store.list_tasks(), ctx, today)
    try:
        return period_summary(tasks, period, today)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


# -------------------------
# CALENDAR
# -------------------------
def _cells(cells, today: date, users):
    return [
        {
            "day": cell.day,
            "tasks": [task_view(t, today, users) for t in cell.shown],
            "overflow": cell.overflow,
        }
        for cell in cells
    ]


@app.get("/calendar/month")
def calendar_month(
    year: int,
    month: int,
    employee_id: str = ALL,
    category: str = ALL,
    status: str = ALL,
    max_visible: int = MONTH_VIEW_SLOTS,
    as_of: str | None = None,
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    """Month grid; ``month`` is 1-12 here."""
    viewer = require_viewer(store, x_employee_id)
    check_year_month(year, month)
    today = resolve_today(as_of)

    tasks = store.list_tasks()
    visible = visible_or_422(tasks, filter_context(viewer, employee_id, category, status), today)
    index = user_index(store.list_users())

    return {
        "year": year,
        "month": month,
        "categories": categories_of(tasks),
        "cells": _cells(month_view(visible, year, month - 1, max_visible), today, index),
    }


@app.get("/calendar/week")
def calendar_week(
    year: int,
    month: int,
    selected: str | None = None,
    employee_id: str = ALL,
    category: str = ALL,
    status: str = ALL,
    max_visible: int = WEEK_VIEW_SLOTS,
    as_of: str | None = None,
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    viewer = require_viewer(store, x_employee_id)
    check_year_month(year, month)
    today = resolve_today(as_of)
    selected_day = resolve_today(selected) if selected else None

    visible = visible_or_422(store.list_tasks(), filter_context(viewer, employee_id, category, status), today)
    index = user_index(store.list_users())
    cells = week_view(visible, year, month - 1, selected_day, today, max_visible)

    return {"year": year, "month": month, "cells": _cells(cells, today, index)}


@app.get("/calendar/day")
def calendar_day(
    day: str,
    employee_id: str = ALL,
    category: str = ALL,
    status: str = ALL,
    as_of: str | None = None,
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    viewer = require_viewer(store, x_employee_id)
    today = resolve_today(as_of)
    target = resolve_today(day)

    visible = visible_or_422(store.list_tasks(), filter_context(viewer, employee_id, category, status), today)
    index = user_index(store.list_users())

    return [task_view(t, today, index) for t in tasks_on_date(visible, target)]


# -------------------------
# TASKS
# -------------------------
@app.post("/tasks")
def create_task(
    body: TaskCreate,
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    viewer = require_viewer(store, x_employee_id)
    if body.employee_id and body.employee_id != viewer.employee_id and not can_reassign(viewer):
        raise HTTPException(status_code=403, detail="Only admins may assign tasks to others")

    task = new_task(
        viewer,
        task_id=uuid.uuid4().hex,
        title=body.title,
        selected_day=body.selected_date or datetime.today().date(),
        employee_id=body.employee_id,
        category=body.category,
        description=body.description,
        start_date=body.start_date,
        end_date=body.end_date,
    )
    store.create_task(task)
    return task_view(task, datetime.today().date(), user_index(store.list_users()))


@app.put("/tasks/{task_id}")
def update_task(
    task_id: str,
    body: TaskUpdate,
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    viewer = require_viewer(store, x_employee_id)
    old = load_task(store, task_id)
    if not can_edit_task(viewer, old):
        raise HTTPException(status_code=403, detail="Not allowed")

    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if "employee_id" in changes and changes["employee_id"] != old.employee_id and not can_reassign(viewer):
        raise HTTPException(status_code=403, detail="Only admins may reassign tasks")

    task = revise_task(old, replace(old, **changes), datetime.now())
    store.update_task(task)
    return task_view(task, datetime.today().date(), user_index(store.list_users()))


@app.post("/tasks/{task_id}/toggle")
def toggle_task(
    task_id: str,
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    viewer = require_viewer(store, x_employee_id)
    old = load_task(store, task_id)
    if not can_edit_task(viewer, old):
        raise HTTPException(status_code=403, detail="Not allowed")

    task = toggle_status(old, datetime.now())
    store.update_task(task)
    return task_view(task, datetime.today().date(), user_index(store.list_users()))


@app.post("/tasks/{task_id}/move")
def move_task(
    task_id: str,
    body: MoveRequest,
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    viewer = require_viewer(store, x_employee_id)
    old = load_task(store, task_id)
    if not can_edit_task(viewer, old):
        raise HTTPException(status_code=403, detail="Not allowed")

    task = revise_task(old, shift_task(old, body.drop_date), datetime.now())
    store.update_task(task)
    return task_view(task, datetime.today().date(), user_index(store.list_users()))


@app.post("/tasks/{task_id}/drop")
def drop_task(
    task_id: str,
    body: DropRequest,
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    """Resolve a drag release against the trash box and the date cells."""
    viewer = require_viewer(store, x_employee_id)
    old = load_task(store, task_id)
    if not can_edit_task(viewer, old):
        raise HTTPException(status_code=403, detail="Not allowed")

    session = DragSession()
    session.begin(old, viewer)
    trash = Rect(**body.trash.model_dump()) if body.trash else None
    cells = [DateCell(c.day, Rect(c.left, c.top, c.right, c.bottom)) for c in body.cells]
    result = session.release(body.x, body.y, trash, cells)

    if result.kind == DROP_DELETED:
        store.delete_task(old.id)
    elif result.kind == DROP_RESCHEDULED:
        store.update_task(revise_task(old, result.task, datetime.now()))

    return {"result": result.kind, "task_id": old.id, "drop_date": result.drop_date}


@app.post("/tasks/{task_id}/remind")
def remind_task(
    task_id: str,
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    """Record a manual reminder; delivery is someone else's job."""
    viewer = require_viewer(store, x_employee_id)
    require_admin(viewer)

    task = replace(load_task(store, task_id), last_reminded_at=datetime.now())
    store.update_task(task)
    users = user_index(store.list_users())
    return {
        **task_view(task, datetime.today().date(), users),
        "event": calendar_event_fields(task, users),
    }


@app.delete("/tasks/{task_id}")
def delete_task(
    task_id: str,
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    viewer = require_viewer(store, x_employee_id)
    task = load_task(store, task_id)
    if not can_delete_task(viewer, task):
        logger.info("delete of task %s refused for %s", task_id, viewer.employee_id)
        raise HTTPException(status_code=403, detail="Not allowed")

    store.delete_task(task_id)
    return {"status": "ok"}


@app.post("/tasks/batch-delete")
def batch_delete(
    body: BatchDelete,
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    viewer = require_viewer(store, x_employee_id)
    tasks = [store.get_task(task_id) for task_id in body.task_ids]
    if any(t is None for t in tasks):
        raise HTTPException(status_code=404)
    if not all(can_delete_task(viewer, t) for t in tasks):
        raise HTTPException(status_code=403, detail="Not allowed")

    return {"status": "ok", "deleted": store.delete_tasks(body.task_ids)}


# -------------------------
# COMMENTS
# -------------------------
@app.get("/tasks/{task_id}/comments")
def list_comments(
    task_id: str,
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    require_viewer(store, x_employee_id)
    load_task(store, task_id)
    users = user_index(store.list_users())
    return [
        {**asdict(c), "author": display_name(c.employee_id, users)}
        for c in comments_for(store.list_comments(), task_id)
    ]


@app.post("/tasks/{task_id}/comments")
def add_comment(
    task_id: str,
    body: CommentIn,
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    viewer = require_viewer(store, x_employee_id)
    load_task(store, task_id)
    comment = Comment(
        id=uuid.uuid4().hex,
        task_id=task_id,
        employee_id=viewer.employee_id,
        content=body.content,
        created_at=datetime.now(),
    )
    return store.create_comment(comment)


def load_comment(store: TaskStore, comment_id: str, viewer: User) -> Comment:
    comment = store.get_comment(comment_id)
    if not comment:
        raise HTTPException(status_code=404)
    if not can_edit_comment(viewer, comment):
        raise HTTPException(status_code=403, detail="Not allowed")
    return comment


@app.put("/comments/{comment_id}")
def edit_comment(
    comment_id: str,
    body: CommentIn,
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    viewer = require_viewer(store, x_employee_id)
    comment = load_comment(store, comment_id, viewer)
    return store.update_comment(replace(comment, content=body.content))


@app.delete("/comments/{comment_id}")
def remove_comment(
    comment_id: str,
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    viewer = require_viewer(store, x_employee_id)
    load_comment(store, comment_id, viewer)
    store.delete_comment(comment_id)
    return {"status": "ok"}


# -------------------------
# USERS
# -------------------------
@app.get("/users")
def list_users(
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    require_viewer(store, x_employee_id)
    return store.list_users()


@app.post("/users/register")
def register(body: UserCreate, store: TaskStore = Depends(get_store)):
    if store.get_user(body.employee_id):
        raise HTTPException(status_code=409, detail="Employee id already registered")
    user = User(
        employee_id=body.employee_id,
        name=body.name,
        status=USER_PENDING,
        color=body.color or generate_color(body.employee_id),
    )
    return store.create_user(user)


@app.post("/users")
def create_user(
    body: UserCreate,
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    viewer = require_viewer(store, x_employee_id)
    require_admin(viewer)
    if store.get_user(body.employee_id):
        raise HTTPException(status_code=409, detail="Employee id already registered")

    user = User(
        employee_id=body.employee_id,
        name=body.name,
        role=body.role,
        status=USER_ACTIVE,
        color=body.color or generate_color(body.employee_id),
    )
    return store.create_user(user)


@app.put("/users/me")
def update_profile(
    body: ProfileUpdate,
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    viewer = require_viewer(store, x_employee_id)
    return store.update_user(replace(viewer, **body.model_dump(exclude_none=True)))


def _set_status(store: TaskStore, employee_id: str, status: str) -> User:
    user = store.get_user(employee_id)
    if not user:
        raise HTTPException(status_code=404)
    logger.info("user %s -> %s", employee_id, status)
    return store.update_user(replace(user, status=status))


@app.post("/users/{employee_id}/approve")
def approve_user(
    employee_id: str,
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    viewer = require_viewer(store, x_employee_id)
    require_admin(viewer)
    return _set_status(store, employee_id, USER_ACTIVE)


@app.post("/users/{employee_id}/reject")
def reject_user(
    employee_id: str,
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    viewer = require_viewer(store, x_employee_id)
    require_admin(viewer)
    return _set_status(store, employee_id, USER_REJECTED)


@app.delete("/users/{employee_id}")
def remove_user(
    employee_id: str,
    x_employee_id: str = Header(None),
    store: TaskStore = Depends(get_store),
):
    viewer = require_viewer(store, x_employee_id)
    require_admin(viewer)
    if not store.delete_user(employee_id):
        raise HTTPException(status_code=404)
    return {"status": "ok"}
