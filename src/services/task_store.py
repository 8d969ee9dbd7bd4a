"""In-memory task list for the active user, written through to a TaskRepository."""

import asyncio
from contextlib import contextmanager
from datetime import date
from typing import Callable, Optional, Union
from src.models.session import SessionUser
from src.models.task import NewTask, Task, TaskFilter, TaskPriority
from src.services.session import SessionProvider
from src.services.task_filters import count_active, project
from src.services.task_repository import INSERT_PREPEND, TaskRepository
from src.utils.errors import StorageError
from src.utils.logging import get_structured_logger, mask_user_id, sanitize_task_text

logger = get_structured_logger(__name__)

StoreListener = Callable[["TaskStore"], None]


class TaskStore:
    """
    Task list of one user.

    Every mutation goes to the repository first and reaches memory only once
    the repository call succeeds. Storage failures are recorded in ``error``
    and never raised. Subscribers are called after every state change.
    """

    def __init__(self, repository: TaskRepository, session: Optional[SessionProvider] = None):
        self.repository = repository
        self._user: Optional[SessionUser] = None
        self._tasks: list[Task] = []
        self._pending = 0
        self._error: Optional[str] = None
        self._listeners: list[StoreListener] = []
        self._in_flight: set[tuple[str, ...]] = set()
        self._session_unsubscribe: Optional[Callable[[], None]] = None
        self.reload_task: Optional[asyncio.Task] = None
        if session is not None:
            self.bind_session(session)

    # ---- state ----

    @property
    def user(self) -> Optional[SessionUser]:
        return self._user

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks)

    @property
    def active_count(self) -> int:
        return count_active(self._tasks)

    @property
    def has_completed(self) -> bool:
        return any(task.completed for task in self._tasks)

    @property
    def loading(self) -> bool:
        return self._pending > 0

    @property
    def error(self) -> Optional[str]:
        return self._error

    def view(self, task_filter: Union[TaskFilter, str] = TaskFilter.ALL) -> list[Task]:
        return project(self._tasks, task_filter)

    def dismiss_error(self) -> None:
        if self._error is not None:
            self._error = None
            self._notify()

    # ---- observers ----

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Task store subscriber failed")

    def bind_session(self, session: SessionProvider) -> None:
        """Reload whenever the session user changes."""
        if self._session_unsubscribe is not None:
            self._session_unsubscribe()
        self._session_unsubscribe = session.subscribe(self._on_session_change)

    def _on_session_change(self, user: Optional[SessionUser]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(self.initialize(user))
            return
        self.reload_task = loop.create_task(self.initialize(user))

    # ---- bookkeeping ----

    @contextmanager
    def _busy(self):
        self._pending += 1
        self._notify()
        try:
            yield
        finally:
            self._pending -= 1
            self._notify()

    @contextmanager
    def _operation(self, *key: str):
        """Claim ``key``; yields False when the same operation is already running."""
        if key in self._in_flight:
            logger.warning(
                "Ignoring duplicate request while in flight",
                operation=key[0],
                key=[sanitize_task_text(part) for part in key[1:]]
            )
            yield False
            return
        self._in_flight.add(key)
        try:
            yield True
        finally:
            self._in_flight.discard(key)

    def _fail(self, action: str, error: Exception) -> None:
        self._error = f"Failed to {action}: {error}"
        logger.error(
            f"Task store operation failed: {action}",
            storage=self.repository.name,
            user_id=mask_user_id(self._user.id if self._user else None),
            error=str(error)
        )

    def _succeed(self) -> None:
        self._error = None

    def _index_of(self, task_id: str) -> Optional[int]:
        for index, task in enumerate(self._tasks):
            if task.id == task_id:
                return index
        return None

    # ---- operations ----

    async def initialize(self, user: Optional[SessionUser]) -> None:
        """Replace the in-memory list with ``user``'s tasks (empty when signed out)."""
        self._user = user
        self._tasks = []
        self._error = None
        if user is None:
            self._notify()
            return

        with self._busy():
            try:
                loaded = await self.repository.load(user.id)
            except StorageError as e:
                if self._user is user:
                    self._fail("load tasks", e)
                return
            if self._user is not user:
                # A newer initialize() superseded this one
                return
            self._tasks = list(loaded)

        logger.info(
            "Tasks loaded",
            storage=self.repository.name,
            user_id=mask_user_id(user.id),
            count=len(self._tasks)
        )

    async def add(
        self,
        text: Optional[str],
        due_date: Optional[Union[date, str]] = None,
        priority: Optional[Union[TaskPriority, str]] = None,
    ) -> Optional[Task]:
        """
        Create a task from ``text``; blank text is ignored.

        Raises ValueError for non-string text and pydantic ValidationError
        for an invalid due date or priority. Only an identical add issued
        while the first is in flight is dropped.
        """
        if text is not None and not isinstance(text, str):
            raise ValueError(f"text must be a string, got {type(text).__name__}")
        text = (text or "").strip()
        if not text:
            return None
        user = self._user
        if user is None:
            logger.warning("Ignoring add without a signed-in user")
            return None

        new_task = NewTask(
            user_id=user.id,
            text=text,
            due_date=due_date or None,
            priority=priority or None,
        )
        key = (
            new_task.text,
            new_task.due_date.isoformat() if new_task.due_date else "",
            new_task.priority.value if new_task.priority else "",
        )

        with self._operation("add", *key) as acquired:
            if not acquired:
                return None
            with self._busy():
                try:
                    created = await self.repository.insert(new_task)
                except StorageError as e:
                    if self._user is user:
                        self._fail("add task", e)
                    return None

                if self._user is not user:
                    logger.warning(
                        "Dropping added task after session change",
                        task_id=created.id,
                        user_id=mask_user_id(user.id)
                    )
                    return None

                if self.repository.insert_position == INSERT_PREPEND:
                    self._tasks.insert(0, created)
                else:
                    self._tasks.append(created)
                self._succeed()

        logger.info(
            "Task added",
            task_id=created.id,
            text=sanitize_task_text(created.text),
            priority=created.priority.value if created.priority else None
        )
        return created

    async def toggle_completion(self, task_id: str) -> Optional[Task]:
        """Flip ``completed`` on one task; unknown ids are ignored."""
        index = self._index_of(task_id)
        if index is None:
            return None
        current = self._tasks[index]

        with self._operation("toggle", task_id) as acquired:
            if not acquired:
                return None
            with self._busy():
                try:
                    updated = await self.repository.update(task_id, {"completed": not current.completed})
                except StorageError as e:
                    self._fail("update task", e)
                    return None

                index = self._index_of(task_id)
                if index is not None:
                    self._tasks[index] = updated
                self._succeed()

        logger.debug("Task toggled", task_id=task_id, completed=updated.completed)
        return updated

    async def remove(self, task_id: str) -> bool:
        """Delete one task; returns False when nothing was removed."""
        if self._index_of(task_id) is None:
            return False

        with self._operation("remove", task_id) as acquired:
            if not acquired:
                return False
            with self._busy():
                try:
                    await self.repository.delete(task_id)
                except StorageError as e:
                    self._fail("delete task", e)
                    return False

                self._tasks = [task for task in self._tasks if task.id != task_id]
                self._succeed()

        logger.info("Task deleted", task_id=task_id)
        return True

    async def clear_completed(self) -> int:
        """
        Delete every completed task; returns how many were removed.

        Memory changes only after every delete succeeded. On a failure the
        remaining deletes are skipped and the list is left as it was, even
        though some rows may already be gone from storage.
        """
        completed_ids = [task.id for task in self._tasks if task.completed]
        if not completed_ids:
            return 0

        with self._operation("clear_completed") as acquired:
            if not acquired:
                return 0
            with self._busy():
                try:
                    await self.repository.delete_many(completed_ids)
                except StorageError as e:
                    self._fail("delete completed tasks", e)
                    return 0

                removed = set(completed_ids)
                self._tasks = [task for task in self._tasks if task.id not in removed]
                self._succeed()

        logger.info("Completed tasks cleared", count=len(completed_ids))
        return len(completed_ids)
