"""Shared pytest fixtures and configuration."""

import os
import pytest
from freezegun import freeze_time

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")

from src.models.session import SessionUser  # noqa: E402
from src.services.local_storage import LocalStorage  # noqa: E402
from src.services.task_repository import LocalTaskRepository, reset_task_repository  # noqa: E402
from src.services.task_store import TaskStore  # noqa: E402
from tests.utils.helpers import InMemoryTaskRepository  # noqa: E402


@pytest.fixture
def session_user():
    """The signed-in user most tests act as."""
    return SessionUser(id="user-1", email="user@example.com")


@pytest.fixture
def other_user():
    return SessionUser(id="user-2", email="other@example.com")


@pytest.fixture
def memory_repository():
    """Remote-like repository double, empty."""
    return InMemoryTaskRepository()


@pytest.fixture
def task_store(memory_repository):
    """Task store over the in-memory repository, not yet initialized."""
    return TaskStore(memory_repository)


@pytest.fixture
def local_storage(tmp_path):
    return LocalStorage(tmp_path / "local_storage.json")


@pytest.fixture
def local_repository(local_storage):
    return LocalTaskRepository(local_storage, key="todos")


@pytest.fixture(autouse=True)
def reset_repository_singleton():
    """Each test resolves storage from its own environment."""
    reset_task_repository()
    yield
    reset_task_repository()


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time("2024-12-09 12:00:00") as frozen_time:
        yield frozen_time
