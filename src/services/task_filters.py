"""Filtered views over the in-memory task list."""

from typing import Iterable, Union
from src.models.task import Task, TaskFilter


def project(tasks: Iterable[Task], task_filter: Union[TaskFilter, str] = TaskFilter.ALL) -> list[Task]:
    """
    Return the tasks matching ``task_filter``, in input order.

    Raises ValueError for an unknown filter name.
    """
    task_filter = TaskFilter(task_filter)
    if task_filter is TaskFilter.ACTIVE:
        return [task for task in tasks if not task.completed]
    if task_filter is TaskFilter.COMPLETED:
        return [task for task in tasks if task.completed]
    return list(tasks)


def count_active(tasks: Iterable[Task]) -> int:
    """Number of tasks not yet completed."""
    return sum(1 for task in tasks if not task.completed)
