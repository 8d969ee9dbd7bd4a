"""Task persistence strategies: local key-value storage or the Supabase tasks table."""

import json
import time
from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional
from pydantic import ValidationError
from src.models.task import NewTask, Task
from src.services import supabase_client
from src.services.local_storage import LocalStorage
from src.utils.config import StorageConfig, STORAGE_LOCAL
from src.utils.errors import StorageError, SupabaseError
from src.utils.logging import get_structured_logger, log_timing, mask_user_id

logger = get_structured_logger(__name__)

INSERT_APPEND = "append"
INSERT_PREPEND = "prepend"


class TaskRepository(ABC):
    """Store of task records for a user."""

    name: str = ""
    # Where a freshly inserted task goes in the in-memory list
    insert_position: str = INSERT_APPEND

    @abstractmethod
    async def load(self, user_id: str) -> list[Task]:
        ...

    @abstractmethod
    async def insert(self, task: NewTask) -> Task:
        ...

    @abstractmethod
    async def update(self, task_id: str, patch: dict[str, Any]) -> Task:
        ...

    @abstractmethod
    async def delete(self, task_id: str) -> None:
        ...

    async def delete_many(self, task_ids: Iterable[str]) -> None:
        """
        Delete tasks one at a time, in order.

        There is no batch primitive: the first failure propagates and the ids
        deleted before it stay deleted.
        """
        deleted = 0
        for task_id in task_ids:
            try:
                await self.delete(task_id)
            except StorageError:
                logger.warning(
                    "Bulk delete stopped on failure",
                    storage=self.name,
                    task_id=task_id,
                    deleted_before_failure=deleted
                )
                raise
            deleted += 1


class LocalTaskRepository(TaskRepository):
    """
    Single-slot local strategy.

    The whole list is serialized under one key and rewritten on every change.
    There is no per-user scoping: the slot belongs to one implicit user.
    Read and write failures are logged and swallowed.
    """

    name = "local"
    insert_position = INSERT_APPEND

    def __init__(self, storage: LocalStorage, key: str = "todos"):
        self.storage = storage
        self.key = key
        self._tasks: list[Task] = []

    def _read(self) -> list[Task]:
        try:
            raw = self.storage.get_item(self.key)
        except StorageError as e:
            logger.warning("Local task storage unreadable, starting empty", error=str(e))
            return []
        if not raw:
            return []
        try:
            items = json.loads(raw)
            if not isinstance(items, list):
                raise ValueError("stored value is not a list")
            return [Task.model_validate(item) for item in items]
        except (ValueError, ValidationError) as e:
            logger.warning("Local task data could not be parsed, starting empty", key=self.key, error=str(e))
            return []

    def save(self, tasks: list[Task]) -> None:
        """Overwrite the stored list with ``tasks``."""
        payload = json.dumps([task.model_dump(mode="json") for task in tasks])
        try:
            self.storage.set_item(self.key, payload)
        except StorageError as e:
            logger.warning("Failed to save local tasks", key=self.key, error=str(e))

    def _next_id(self) -> str:
        candidate = int(time.time() * 1000)
        taken = {task.id for task in self._tasks}
        while str(candidate) in taken:
            candidate += 1
        return str(candidate)

    def _index_of(self, task_id: str) -> int:
        for index, task in enumerate(self._tasks):
            if task.id == task_id:
                return index
        raise StorageError(f"Task {task_id} not found in local storage")

    async def load(self, user_id: str) -> list[Task]:
        self._tasks = self._read()
        logger.debug("Loaded local tasks", user_id=mask_user_id(user_id), count=len(self._tasks))
        return list(self._tasks)

    async def insert(self, task: NewTask) -> Task:
        created = Task(id=self._next_id(), **task.model_dump())
        self._tasks.append(created)
        self.save(self._tasks)
        return created

    async def update(self, task_id: str, patch: dict[str, Any]) -> Task:
        index = self._index_of(task_id)
        current = self._tasks[index]
        updated = Task.model_validate({**current.model_dump(), **patch})
        self._tasks[index] = updated
        self.save(self._tasks)
        return updated

    async def delete(self, task_id: str) -> None:
        self._tasks = [task for task in self._tasks if task.id != task_id]
        self.save(self._tasks)


class SupabaseTaskRepository(TaskRepository):
    """Remote strategy over the Supabase ``tasks`` table. Failures propagate."""

    name = "supabase"
    insert_position = INSERT_PREPEND

    @staticmethod
    def _to_task(row: dict[str, Any]) -> Task:
        try:
            return Task.model_validate(row)
        except ValidationError as e:
            raise SupabaseError(f"Invalid task row {row.get('id')}: {e}") from e

    async def load(self, user_id: str) -> list[Task]:
        with log_timing("supabase_load_tasks", logger=logger, user_id=mask_user_id(user_id)):
            rows = await supabase_client.get_tasks_by_user(user_id)
        return [self._to_task(row) for row in rows]

    async def insert(self, task: NewTask) -> Task:
        with log_timing("supabase_insert_task", logger=logger, user_id=mask_user_id(task.user_id)):
            row = await supabase_client.create_task(task.to_row())
        return self._to_task(row)

    async def update(self, task_id: str, patch: dict[str, Any]) -> Task:
        with log_timing("supabase_update_task", logger=logger, task_id=task_id):
            row = await supabase_client.update_task(task_id, patch)
        return self._to_task(row)

    async def delete(self, task_id: str) -> None:
        with log_timing("supabase_delete_task", logger=logger, task_id=task_id):
            await supabase_client.delete_task(task_id)


# Strategy chosen once per process
_repository: Optional[TaskRepository] = None


def create_task_repository(backend: Optional[str] = None) -> TaskRepository:
    """Build the repository for ``backend`` (defaults to the configured one)."""
    backend = backend or StorageConfig.resolve_backend()
    if backend == STORAGE_LOCAL:
        storage = LocalStorage(StorageConfig.local_storage_path())
        return LocalTaskRepository(storage, key=StorageConfig.local_storage_key())
    return SupabaseTaskRepository()


def get_task_repository() -> TaskRepository:
    """Get or create the process-wide task repository."""
    global _repository
    if _repository is None:
        _repository = create_task_repository()
        logger.info("Task storage selected", storage=_repository.name)
    return _repository


def reset_task_repository() -> None:
    """Forget the selected repository so the next call re-reads configuration."""
    global _repository
    _repository = None
