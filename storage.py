"""
Access layer.

Every task and category operation is scoped by ``user_id``. These functions
do not check who is asking: ownership is enforced by the HTTP handlers.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from sqlalchemy import Integer, cast, extract, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dates import coerce_due_date, day_bounds, utcnow
from models import SYSTEM_USERNAME, Task, TaskCategory, TaskPriority, TaskStatus, User

logger = logging.getLogger(__name__)

WEEKDAYS = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
UNCATEGORIZED = "Uncategorized"

PROFILE_FIELDS = ("name", "email", "avatar", "birthday")
TASK_FIELDS = ("title", "description", "due_date", "status", "priority", "category_id")


# ---- users ----

def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username).first()


def get_system_user(db: Session) -> Optional[User]:
    """Owner of the default categories, or None before the database is seeded."""
    return get_user_by_username(db, SYSTEM_USERNAME)


def create_user(db: Session, fields: dict[str, Any]) -> User:
    """
    Insert a user and give them a copy of every default category.

    Both happen in one transaction: either the user exists with all the
    defaults, or nothing was written.
    """
    user = User(
        username=fields["username"],
        password=fields["password"],
        **{k: fields.get(k) for k in PROFILE_FIELDS},
    )
    try:
        db.add(user)
        db.flush()

        system = get_system_user(db)
        defaults = get_task_categories(db, system.id) if system else []
        for category in defaults:
            db.add(TaskCategory(name=category.name, color=category.color, user_id=user.id))

        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Rolled back registration of %r", fields.get("username"))
        raise

    db.refresh(user)
    logger.info("Created user id=%s with %d default categories", user.id, len(defaults))
    return user


def update_user(db: Session, user_id: int, fields: dict[str, Any]) -> Optional[User]:
    user = get_user(db, user_id)
    if user is None:
        return None

    for key in PROFILE_FIELDS:
        if key in fields:
            setattr(user, key, fields[key])

    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user_id: int) -> bool:
    user = get_user(db, user_id)
    if user is None:
        return False

    # tasks and categories go with it (relationship cascade)
    db.delete(user)
    db.commit()
    logger.info("Deleted user id=%s", user_id)
    return True


# ---- tasks ----

def _task_values(fields: dict[str, Any]) -> dict[str, Any]:
    values = {k: fields[k] for k in TASK_FIELDS if k in fields}
    if "due_date" in values:
        values["due_date"] = coerce_due_date(values["due_date"])
    return values


def create_task(db: Session, user_id: int, fields: dict[str, Any]) -> Task:
    now = utcnow()
    task = Task(**_task_values(fields), user_id=user_id, created_at=now, updated_at=now)
    db.add(task)
    db.commit()
    db.refresh(task)
    logger.debug("Created task id=%s for user id=%s", task.id, user_id)
    return task


def get_task(db: Session, task_id: int) -> Optional[Task]:
    return db.get(Task, task_id)


def get_user_tasks(db: Session, user_id: int) -> list[Task]:
    return db.query(Task).filter(Task.user_id == user_id).order_by(Task.id).all()


def update_task(db: Session, task_id: int, fields: dict[str, Any]) -> Optional[Task]:
    """Apply a partial update. ``id``, ``user_id`` and ``created_at`` are never touched."""
    task = get_task(db, task_id)
    if task is None:
        return None

    for key, value in _task_values(fields).items():
        setattr(task, key, value)
    task.updated_at = utcnow()

    db.commit()
    db.refresh(task)
    return task


def delete_task(db: Session, task_id: int) -> bool:
    task = get_task(db, task_id)
    if task is None:
        return False

    db.delete(task)
    db.commit()
    return True


def get_tasks_by_date(db: Session, user_id: int, day: date) -> list[Task]:
    start, end = day_bounds(day)
    return (
        db.query(Task)
        .filter(Task.user_id == user_id, Task.due_date >= start, Task.due_date <= end)
        .order_by(Task.due_date)
        .all()
    )


def get_tasks_by_status(db: Session, user_id: int, status: str) -> list[Task]:
    return (
        db.query(Task)
        .filter(Task.user_id == user_id, Task.status == TaskStatus(status))
        .order_by(Task.id)
        .all()
    )


def get_tasks_by_priority(db: Session, user_id: int, priority: str) -> list[Task]:
    return (
        db.query(Task)
        .filter(Task.user_id == user_id, Task.priority == TaskPriority(priority))
        .order_by(Task.id)
        .all()
    )


# ---- categories ----

def create_task_category(db: Session, user_id: int, name: str, color: str) -> TaskCategory:
    category = TaskCategory(name=name, color=color, user_id=user_id)
    try:
        db.add(category)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Rolled back category %r for user id=%s", name, user_id)
        raise
    db.refresh(category)
    return category


def get_task_category(db: Session, category_id: int) -> Optional[TaskCategory]:
    return db.get(TaskCategory, category_id)


def get_task_category_by_name(db: Session, user_id: int, name: str) -> Optional[TaskCategory]:
    return (
        db.query(TaskCategory)
        .filter(TaskCategory.user_id == user_id, TaskCategory.name == name)
        .first()
    )


def get_task_categories(db: Session, user_id: int) -> list[TaskCategory]:
    return db.query(TaskCategory).filter(TaskCategory.user_id == user_id).order_by(TaskCategory.id).all()


# ---- analytics ----

def get_task_completion_stats(db: Session, user_id: int) -> dict[str, int]:
    rows = (
        db.query(Task.status, func.count(Task.id))
        .filter(Task.user_id == user_id)
        .group_by(Task.status)
        .all()
    )
    counts = {status: count for status, count in rows}
    return {
        "completed": counts.get(TaskStatus.COMPLETED, 0),
        "in_progress": counts.get(TaskStatus.IN_PROGRESS, 0),
        "pending": counts.get(TaskStatus.PENDING, 0),
    }


def get_tasks_by_category(db: Session, user_id: int) -> list[dict[str, Any]]:
    rows = (
        db.query(TaskCategory.name, func.count(Task.id))
        .select_from(Task)
        .outerjoin(TaskCategory, Task.category_id == TaskCategory.id)
        .filter(Task.user_id == user_id)
        .group_by(TaskCategory.name)
        .order_by(TaskCategory.name)
        .all()
    )
    return [{"category": name or UNCATEGORIZED, "count": count} for name, count in rows]


def _day_of_week(db: Session):
    """SQL expression for the weekday of ``Task.created_at``, Sunday=0 .. Saturday=6."""
    dialect = db.get_bind().dialect.name
    if dialect == "sqlite":
        return cast(func.strftime("%w", Task.created_at), Integer)
    if dialect in ("mysql", "mariadb"):
        # DAYOFWEEK is Sunday=1
        return func.dayofweek(Task.created_at) - 1
    return extract("dow", Task.created_at)


def get_weekly_activity(db: Session, user_id: int) -> list[dict[str, Any]]:
    """Tasks created per weekday, Sunday first, zero-filled."""
    day_of_week = _day_of_week(db)
    rows = (
        db.query(day_of_week, func.count(Task.id))
        .filter(Task.user_id == user_id, Task.created_at.isnot(None))
        .group_by(day_of_week)
        .all()
    )
    counts = {int(dow): count for dow, count in rows}
    return [{"day": day, "count": counts.get(index, 0)} for index, day in enumerate(WEEKDAYS)]
