import calendar
import math
from typing import Iterable

from models import (
    CalendarDay,
    CalendarMonth,
    CalendarTask,
    MonthRef,
    SubTask,
    Task,
    TaskFilter,
)

WEEKDAYS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (round() would go to even)."""
    return int(math.floor(value + 0.5))


def filter_tasks(tasks: Iterable[Task], task_filter: TaskFilter = "all") -> list[Task]:
    if task_filter == "active":
        return [t for t in tasks if not t.completed]
    if task_filter == "completed":
        return [t for t in tasks if t.completed]
    return list(tasks)


def subtask_progress(sub_tasks: list[SubTask]) -> int:
    """Percentage of completed subtasks, 0 when there are none."""
    if not sub_tasks:
        return 0
    done = sum(1 for s in sub_tasks if s.completed)
    return round_half_up(done / len(sub_tasks) * 100)


def tasks_due_on(tasks: Iterable[Task], target_date: str) -> list[Task]:
    return [t for t in tasks if t.due_date == target_date]


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move (year, month) by delta months, e.g. (2025, 12, 1) -> (2026, 1)."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def build_month(year: int, month: int, tasks: list[Task], today: str) -> CalendarMonth:
    """
    Build the calendar grid for one month.
    Weeks start on Sunday; leading_blanks is the number of empty cells before day 1.
    Each day lists the tasks due on it.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"month must be 1-12, got {month}")

    # monthrange weekday is Monday=0; the grid starts on Sunday
    first_weekday, num_days = calendar.monthrange(year, month)
    leading_blanks = (first_weekday + 1) % 7

    days = []
    for day in range(1, num_days + 1):
        date_str = f"{year:04d}-{month:02d}-{day:02d}"
        days.append(CalendarDay(
            day=day,
            date=date_str,
            is_today=date_str == today,
            tasks=[
                CalendarTask(id=t.id, name=t.name, priority=t.priority, completed=t.completed)
                for t in tasks_due_on(tasks, date_str)
            ],
        ))

    prev_year, prev_month = shift_month(year, month, -1)
    next_year, next_month = shift_month(year, month, 1)

    return CalendarMonth(
        year=year,
        month=month,
        month_name=calendar.month_name[month],
        weekdays=WEEKDAYS,
        leading_blanks=leading_blanks,
        days=days,
        previous=MonthRef(year=prev_year, month=prev_month),
        next=MonthRef(year=next_year, month=next_month),
    )
