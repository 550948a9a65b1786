"""Request bodies for the HTTP surface."""
from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1)
    employee_id: Optional[str] = None
    category: Optional[str] = None
    description: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    selected_date: Optional[date] = Field(None, description="Calendar day the form was opened from")


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    employee_id: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[Literal["pending", "completed"]] = None


class MoveRequest(BaseModel):
    drop_date: date


class Box(BaseModel):
    left: float
    top: float
    right: float
    bottom: float


class Cell(Box):
    day: date


class DropRequest(BaseModel):
    x: float
    y: float
    trash: Optional[Box] = None
    cells: List[Cell] = []


class BatchDelete(BaseModel):
    task_ids: List[str]


class CommentIn(BaseModel):
    content: str = Field(..., min_length=1)


class UserCreate(BaseModel):
    employee_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    role: Literal["admin", "user"] = "user"
    color: Optional[str] = None


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    color: Optional[str] = None
