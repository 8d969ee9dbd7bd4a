"""Tests for due-date and priority presentation helpers."""

import pytest
from datetime import date, datetime, timedelta
from freezegun import freeze_time
from src.models.task import TaskFilter, TaskPriority
from src.services.task_view import (
    build_task_view,
    format_due_date,
    is_overdue,
    priority_label,
    priority_style,
)
from tests.utils.factories import create_task


@pytest.mark.unit
def test_is_overdue_due_today_is_not_overdue():
    assert is_overdue(date(2024, 12, 9), date(2024, 12, 9)) is False


@pytest.mark.unit
def test_is_overdue_due_yesterday_is_overdue():
    assert is_overdue(date(2024, 12, 8), date(2024, 12, 9)) is True


@pytest.mark.unit
def test_is_overdue_future_date_is_not_overdue():
    assert is_overdue(date(2024, 12, 10), date(2024, 12, 9)) is False


@pytest.mark.unit
def test_is_overdue_unset_due_date_never_overdue():
    assert is_overdue(None, date(2024, 12, 9)) is False
    assert is_overdue(None) is False


@pytest.mark.unit
def test_is_overdue_midnight_boundary():
    """Due all day long; overdue from the first millisecond of the next day."""
    due = date(2024, 12, 9)
    midnight_of_due = datetime(2024, 12, 9, 0, 0, 0)
    end_of_due = datetime(2024, 12, 9, 23, 59, 59, 999000)
    next_day = datetime(2024, 12, 10, 0, 0, 0) + timedelta(milliseconds=1)

    assert is_overdue(due, midnight_of_due) is False
    assert is_overdue(due, end_of_due) is False
    assert is_overdue(due, next_day) is True


@pytest.mark.unit
def test_is_overdue_ignores_time_of_day_on_due_side():
    assert is_overdue(datetime(2024, 12, 9, 23, 0), datetime(2024, 12, 9, 1, 0)) is False


@pytest.mark.unit
def test_is_overdue_defaults_to_now(freeze_time_fixture):
    assert is_overdue(date(2024, 12, 8)) is True
    assert is_overdue(date(2024, 12, 9)) is False


@pytest.mark.unit
@pytest.mark.parametrize("priority,label,style", [
    (TaskPriority.HIGH, "High", "danger"),
    (TaskPriority.MEDIUM, "Medium", "warning"),
    (TaskPriority.LOW, "Low", "success"),
    (None, "", "secondary"),
])
def test_priority_label_and_style(priority, label, style):
    assert priority_label(priority) == label
    assert priority_style(priority) == style


@pytest.mark.unit
def test_priority_helpers_accept_raw_values():
    assert priority_label("high") == "High"
    assert priority_style("low") == "success"


@pytest.mark.unit
def test_format_due_date():
    assert format_due_date(date(2024, 12, 31)) == "2024-12-31"
    assert format_due_date(None) == ""


@pytest.mark.unit
@freeze_time("2024-12-09 12:00:00")
def test_build_task_view_marks_overdue_only_when_not_completed():
    tasks = [
        create_task(user_id="user-1", text="late", due_date="2024-12-01", completed=False),
        create_task(user_id="user-1", text="late but done", due_date="2024-12-01", completed=True),
        create_task(user_id="user-1", text="no date", due_date=None, priority=None),
    ]

    view = build_task_view(tasks, TaskFilter.ALL)

    rows = {row["text"]: row for row in view["tasks"]}
    assert rows["late"]["overdue"] is True
    assert rows["late but done"]["overdue"] is False
    assert rows["no date"]["overdue"] is False
    assert rows["no date"]["priority_label"] == ""
    assert rows["no date"]["due_date_display"] == ""
    assert view["active_count"] == 2
    assert view["has_completed"] is True
    assert view["filter"] == "all"


@pytest.mark.unit
def test_build_task_view_counts_use_full_list():
    tasks = [
        create_task(user_id="user-1", completed=False),
        create_task(user_id="user-1", completed=True),
    ]

    view = build_task_view(tasks, "completed", today=date(2024, 12, 9))

    assert len(view["tasks"]) == 1
    assert view["active_count"] == 1
    assert view["filter"] == "completed"
