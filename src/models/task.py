"""Task models."""

from enum import Enum
from typing import Any, Optional
from datetime import date
from pydantic import BaseModel, Field, field_validator


class TaskPriority(str, Enum):
    """Task priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskFilter(str, Enum):
    """View filter over the in-memory task list."""
    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"


class NewTask(BaseModel):
    """Insert payload for a task that has not been persisted yet."""
    user_id: str = Field(..., min_length=1, description="Owner user ID")
    text: str = Field(..., description="Task text, trimmed")
    completed: bool = Field(default=False, description="Completion flag")
    due_date: Optional[date] = Field(None, description="Due date (no time of day)")
    priority: Optional[TaskPriority] = Field(None, description="Priority: low, medium, high")

    @field_validator("text")
    @classmethod
    def _strip_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("text must not be blank")
        return value

    def to_row(self) -> dict[str, Any]:
        """Serialize for the tasks table."""
        return self.model_dump(mode="json")


class Task(NewTask):
    """Persisted task record."""
    id: str = Field(..., min_length=1, description="Task ID, unique per user")
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        # Local ids are millisecond timestamps, remote ids may be bigint
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value
