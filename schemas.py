from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Annotated, Any, List, Optional
from datetime import datetime, timezone, date as calendar_date

from models import TaskStatus, TaskPriority


def _as_utc(value: datetime) -> datetime:
    # stored values are naive UTC; say so on the wire
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class CamelModel(BaseModel):
    """Bodies travel as camelCase JSON; snake_case is accepted on input too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# Users

class UserCreate(CamelModel):
    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1)
    name: Optional[str] = None
    email: Optional[str] = None
    avatar: Optional[str] = None
    birthday: Optional[str] = None


class UserProfileUpdate(CamelModel):
    # password is deliberately not a field here; extra keys are ignored
    name: Optional[str] = None
    email: Optional[str] = None
    avatar: Optional[str] = None
    birthday: Optional[str] = None


class UserOut(CamelModel):
    id: int
    username: str
    name: Optional[str] = None
    email: Optional[str] = None
    avatar: Optional[str] = None
    birthday: Optional[str] = None
    created_at: Optional[UtcDatetime] = None


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


# Tasks

class TaskCreate(CamelModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    # normalised leniently by the access layer, see dates.coerce_due_date
    due_date: Any = None
    category_id: Optional[int] = None


class TaskUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Any = None
    category_id: Optional[int] = None

    @field_validator("title", "status", "priority")
    @classmethod
    def not_null(cls, value):
        # only runs for values the client actually sent
        if value is None:
            raise ValueError("may not be null")
        return value


class TaskOut(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    due_date: Optional[UtcDatetime] = None
    status: TaskStatus
    priority: TaskPriority
    user_id: int
    category_id: Optional[int] = None
    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None


# Categories

class CategoryCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9a-fA-F]{6}$")


class CategoryOut(CamelModel):
    id: int
    name: str
    color: str
    user_id: int


# Calendar

class CalendarCell(CamelModel):
    date: Optional[calendar_date] = None
    day: Optional[int] = None
    is_today: bool = False
    tasks: List[TaskOut] = []


class CalendarMonth(CamelModel):
    year: int
    month: int
    cells: List[CalendarCell]


# Analytics

class CompletionStats(CamelModel):
    completed: int
    in_progress: int
    pending: int


class CategoryCount(CamelModel):
    category: str
    count: int


class WeeklyCount(CamelModel):
    day: str
    count: int


class Productivity(CamelModel):
    score: int
    rating: str
