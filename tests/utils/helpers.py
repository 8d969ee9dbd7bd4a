"""Test helper functions."""

import asyncio
import json
from typing import Any, Dict, Iterable, Optional
from unittest.mock import MagicMock
from src.models.task import NewTask, Task
from src.services.task_repository import INSERT_APPEND, TaskRepository
from src.utils.errors import SupabaseError


class InMemoryTaskRepository(TaskRepository):
    """Repository double with failure injection and optional insert/load gates."""

    name = "memory"

    def __init__(self, tasks: Optional[Iterable[Task]] = None, insert_position: str = INSERT_APPEND):
        self.rows: list[Task] = list(tasks or [])
        self.insert_position = insert_position
        self.calls: list[tuple] = []
        self.failing_operations: set[str] = set()
        self.failing_delete_ids: set[str] = set()
        self.insert_gate: Optional[asyncio.Event] = None
        self.load_gates: dict[str, asyncio.Event] = {}
        self.failing_load_users: set[str] = set()
        self._next_id = 1000

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.failing_operations:
            raise SupabaseError(f"{operation} unavailable")

    async def load(self, user_id: str) -> list[Task]:
        self.calls.append(("load", user_id))
        if user_id in self.load_gates:
            await self.load_gates[user_id].wait()
        self._maybe_fail("load")
        if user_id in self.failing_load_users:
            raise SupabaseError(f"Failed to get tasks for user {user_id}: service unavailable")
        return [task for task in self.rows if task.user_id == user_id]

    async def insert(self, task: NewTask) -> Task:
        self.calls.append(("insert", task.text))
        if self.insert_gate is not None:
            await self.insert_gate.wait()
        self._maybe_fail("insert")
        self._next_id += 1
        created = Task(id=str(self._next_id), **task.model_dump())
        self.rows.append(created)
        return created

    async def update(self, task_id: str, patch: dict[str, Any]) -> Task:
        self.calls.append(("update", task_id, patch))
        self._maybe_fail("update")
        for index, task in enumerate(self.rows):
            if task.id == task_id:
                self.rows[index] = Task.model_validate({**task.model_dump(), **patch})
                return self.rows[index]
        raise SupabaseError(f"Failed to update task: {task_id} not found")

    async def delete(self, task_id: str) -> None:
        self.calls.append(("delete", task_id))
        self._maybe_fail("delete")
        if task_id in self.failing_delete_ids:
            raise SupabaseError(f"Failed to delete task {task_id}: service unavailable")
        self.rows = [task for task in self.rows if task.id != task_id]

    def ids(self) -> list[str]:
        return [task.id for task in self.rows]


def mock_supabase_query(data: Optional[list] = None) -> MagicMock:
    """Mock of a postgrest query builder whose chain ends in execute()."""
    query = MagicMock()
    for method in ("select", "eq", "order", "insert", "update", "delete"):
        getattr(query, method).return_value = query
    query.execute.return_value = MagicMock(data=data if data is not None else [])
    return query


def mock_supabase_client(query: MagicMock) -> MagicMock:
    client = MagicMock()
    client.table.return_value = query
    return client


def create_vercel_request(
    method: str = "GET",
    path: str = "/api/tasks",
    body: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    query: Optional[Dict[str, str]] = None,
    user_id: Optional[str] = "user-1",
) -> Dict[str, Any]:
    """Create a Vercel request object for testing."""
    if headers is None:
        headers = {"content-type": "application/json"}
        if user_id:
            headers["x-user-id"] = user_id
            headers["x-user-email"] = "user@example.com"

    return {
        "method": method,
        "path": path,
        "headers": headers,
        "body": json.dumps(body) if isinstance(body, dict) else body,
        "query": query or {}
    }
