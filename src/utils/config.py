"""Storage configuration with environment variable support."""

import os
from typing import Optional

from src.utils.errors import ConfigurationError


STORAGE_AUTO = "auto"
STORAGE_LOCAL = "local"
STORAGE_SUPABASE = "supabase"

_VALID_BACKENDS = (STORAGE_AUTO, STORAGE_LOCAL, STORAGE_SUPABASE)
_DEVELOPMENT_ENVIRONMENTS = ("development", "local")


class StorageConfig:
    """Storage settings, read from the environment on every access."""

    @staticmethod
    def environment() -> str:
        """Runtime environment name (ENVIRONMENT, falling back to NODE_ENV)."""
        env = os.environ.get("ENVIRONMENT") or os.environ.get("NODE_ENV", "")
        return env.strip().lower()

    @staticmethod
    def backend() -> str:
        """Requested storage backend: auto, local or supabase."""
        backend = os.environ.get("TODO_STORAGE", STORAGE_AUTO).strip().lower()
        if backend not in _VALID_BACKENDS:
            raise ConfigurationError(
                f"TODO_STORAGE must be one of {', '.join(_VALID_BACKENDS)}, got {backend!r}"
            )
        return backend

    @staticmethod
    def local_storage_path() -> str:
        return os.environ.get("LOCAL_STORAGE_PATH", ".local_storage.json")

    @staticmethod
    def local_storage_key() -> str:
        return os.environ.get("LOCAL_STORAGE_KEY", "todos")

    @staticmethod
    def supabase_url() -> Optional[str]:
        return os.environ.get("SUPABASE_URL") or None

    @staticmethod
    def supabase_key() -> Optional[str]:
        """Service role key, falling back to the anon key."""
        key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY") or os.environ.get("SUPABASE_ANON_KEY", "")
        # Strip trailing newlines from env vars pasted into dashboards
        return key.strip() or None

    @staticmethod
    def supabase_tasks_table() -> str:
        return os.environ.get("SUPABASE_TASKS_TABLE", "tasks")

    @classmethod
    def resolve_backend(cls) -> str:
        """
        Decide which storage strategy this process uses.

        Explicit local/supabase wins. Under auto, development environments and
        deployments without Supabase credentials fall back to local storage.
        """
        backend = cls.backend()
        if backend != STORAGE_AUTO:
            return backend

        if cls.environment() in _DEVELOPMENT_ENVIRONMENTS:
            return STORAGE_LOCAL
        if not cls.supabase_url() or not cls.supabase_key():
            return STORAGE_LOCAL
        return STORAGE_SUPABASE
