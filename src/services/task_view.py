"""Presentation helpers: overdue checks, priority labels and the list render model."""

from datetime import date, datetime
from typing import Any, Iterable, Optional, Union
from src.models.task import Task, TaskFilter, TaskPriority
from src.services.task_filters import count_active, project

_PRIORITY_LABELS = {
    TaskPriority.HIGH: "High",
    TaskPriority.MEDIUM: "Medium",
    TaskPriority.LOW: "Low",
}

_PRIORITY_STYLES = {
    TaskPriority.HIGH: "danger",
    TaskPriority.MEDIUM: "warning",
    TaskPriority.LOW: "success",
}

_UNSET_STYLE = "secondary"


def _calendar_day(value: Union[date, datetime]) -> date:
    # datetime is a date subclass; check it first
    if isinstance(value, datetime):
        return value.date()
    return value


def is_overdue(due_date: Optional[Union[date, datetime]], today: Optional[Union[date, datetime]] = None) -> bool:
    """
    True iff the due date's calendar day is strictly before today's.

    Time of day is ignored on both sides, so a task due today is not
    overdue until the next day starts. An unset due date is never overdue.
    """
    if due_date is None:
        return False
    if today is None:
        today = datetime.now()
    return _calendar_day(due_date) < _calendar_day(today)


def priority_label(priority: Optional[TaskPriority]) -> str:
    if priority is None:
        return ""
    return _PRIORITY_LABELS[TaskPriority(priority)]


def priority_style(priority: Optional[TaskPriority]) -> str:
    if priority is None:
        return _UNSET_STYLE
    return _PRIORITY_STYLES[TaskPriority(priority)]


def format_due_date(due_date: Optional[date]) -> str:
    return due_date.isoformat() if due_date else ""


def task_row(task: Task, today: Optional[Union[date, datetime]] = None) -> dict[str, Any]:
    """Render model for one task."""
    row = task.model_dump(mode="json")
    row.update({
        "due_date_display": format_due_date(task.due_date),
        "overdue": is_overdue(task.due_date, today) and not task.completed,
        "priority_label": priority_label(task.priority),
        "priority_style": priority_style(task.priority),
    })
    return row


def build_task_view(
    tasks: Iterable[Task],
    task_filter: Union[TaskFilter, str] = TaskFilter.ALL,
    today: Optional[Union[date, datetime]] = None,
) -> dict[str, Any]:
    """Render model for the task list under ``task_filter``."""
    tasks = list(tasks)
    task_filter = TaskFilter(task_filter)
    if today is None:
        today = datetime.now()
    return {
        "filter": task_filter.value,
        "tasks": [task_row(task, today) for task in project(tasks, task_filter)],
        "active_count": count_active(tasks),
        "has_completed": any(task.completed for task in tasks),
    }
