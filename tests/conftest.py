import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("ADMIN_EMPLOYEE_ID", None)

from datetime import date  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from taskboard.database import Base  # noqa: E402
from taskboard.records import Task, User  # noqa: E402
from taskboard.store import TaskStore  # noqa: E402

TODAY = date(2024, 6, 10)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def make_task():
    counter = {"n": 0}

    def _make(start="2024-06-01", end=None, **kw):
        counter["n"] += 1
        start_date = date.fromisoformat(start)
        end_date = date.fromisoformat(end) if end else start_date
        kw.setdefault("id", f"t{counter['n']}")
        kw.setdefault("employee_id", "E1")
        return Task(start_date=start_date, end_date=end_date, **kw)

    return _make


@pytest.fixture
def people():
    return [
        User(employee_id="A1", name="Admin", role="admin"),
        User(employee_id="E1", name="Alice"),
        User(employee_id="E2", name="Bob"),
        User(employee_id="E3", name="Carol", status="rejected"),
        User(employee_id="SYS", name="System_Admin", role="admin"),
    ]


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def store(session_factory):
    db = session_factory()
    try:
        yield TaskStore(db)
    finally:
        db.close()
