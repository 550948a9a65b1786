from sqlalchemy import Column, Integer, String, Date, DateTime, Text
from taskboard.database import Base


class Task(Base):
    __tablename__ = "tasks"

    id = Column(String, primary_key=True)
    employee_id = Column(String, nullable=False, index=True)
    category = Column(String, default="General")
    title = Column(String, nullable=False)
    description = Column(Text, default="")
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(String, nullable=False, default="pending")  # "pending" or "completed"
    modification_count = Column(Integer, default=0)
    completed_at = Column(DateTime)
    created_by = Column(String)
    last_reminded_at = Column(DateTime)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    employee_id = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    role = Column(String, nullable=False, default="user")      # "admin" or "user"
    status = Column(String, nullable=False, default="active")  # "active", "pending" or "rejected"
    color = Column(String)
    active_sessions = Column(Integer, default=0)


class Comment(Base):
    __tablename__ = "comments"

    id = Column(String, primary_key=True)
    task_id = Column(String, nullable=False, index=True)
    employee_id = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False)
