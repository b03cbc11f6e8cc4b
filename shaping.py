"""
Filtering, sorting and date bucketing for a user's task list.

The functions work on anything with ``title``, ``description``, ``status``,
``priority`` and ``due_date`` attributes (ORM rows in the app, simple
namespaces in tests).
"""

from __future__ import annotations

import calendar
import math
from datetime import date, datetime
from typing import Iterable, Mapping, Optional, Sequence

ALL = "all"
SORT_KEYS = ("dueDate", "priority", "title")
PRIORITY_RANK = {"high": 3, "medium": 2, "low": 1}
CALENDAR_CELLS = 42  # 6 weeks x 7 days


def _value(field) -> Optional[str]:
    # enum members store their wire value in .value
    return getattr(field, "value", field)


def filter_tasks(tasks: Iterable, status: str = ALL, priority: str = ALL, search: str = "") -> list:
    needle = (search or "").lower()
    result = []
    for task in tasks:
        if status != ALL and _value(task.status) != status:
            continue
        if priority != ALL and _value(task.priority) != priority:
            continue
        if needle:
            title = (task.title or "").lower()
            description = (task.description or "").lower()
            if needle not in title and needle not in description:
                continue
        result.append(task)
    return result


def sort_tasks(tasks: Iterable, sort_by: str = "dueDate") -> list:
    tasks = list(tasks)
    if sort_by == "dueDate":
        # undated tasks go last
        return sorted(tasks, key=lambda t: (t.due_date is None, t.due_date or datetime.min))
    if sort_by == "priority":
        return sorted(tasks, key=lambda t: -PRIORITY_RANK.get(_value(t.priority), 0))
    if sort_by == "title":
        return sorted(tasks, key=lambda t: (t.title.casefold(), t.title))
    return tasks


def calendar_grid(year: int, month: int) -> list[Optional[date]]:
    """
    The days of a month laid out on a Sunday-first 6x7 grid.

    Cells before the 1st and after the last day of the month are ``None``.
    """
    first_weekday, days_in_month = calendar.monthrange(year, month)
    leading = (first_weekday + 1) % 7

    cells: list[Optional[date]] = [None] * leading
    cells.extend(date(year, month, day) for day in range(1, days_in_month + 1))
    cells.extend([None] * (CALENDAR_CELLS - len(cells)))
    return cells


def is_due_on(task, day: date) -> bool:
    due = task.due_date
    if due is None:
        return False
    if isinstance(due, datetime):
        due = due.date()
    return due == day


def tasks_for_day(tasks: Iterable, day: Optional[date]) -> list:
    if day is None:
        return []
    return [task for task in tasks if is_due_on(task, day)]


def bucket_by_day(tasks: Sequence, cells: Iterable[Optional[date]]) -> list[tuple[Optional[date], list]]:
    return [(day, tasks_for_day(tasks, day)) for day in cells]


def productivity_score(stats: Mapping[str, int]) -> int:
    """Share of completed tasks as a 0-100 integer, halves rounded up."""
    completed = stats.get("completed", 0)
    total = completed + stats.get("in_progress", 0) + stats.get("pending", 0)
    if total == 0:
        return 0
    return math.floor(completed * 100 / total + 0.5)


def productivity_rating(score: int) -> str:
    return "high" if score > 70 else "average"
