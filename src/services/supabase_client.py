"""Supabase client wrapper with async context manager support."""

import asyncio
from typing import Any, Optional
from supabase import create_client, Client
from supabase.client import ClientOptions
from src.utils.config import StorageConfig
from src.utils.errors import SupabaseError
from src.utils.logging import get_structured_logger, mask_user_id

logger = get_structured_logger(__name__)

# Global client instance (singleton pattern)
_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """Get or create Supabase client singleton."""
    global _client

    if _client is None:
        url = StorageConfig.supabase_url()
        key = StorageConfig.supabase_key()

        if not url or not key:
            raise SupabaseError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        # Serverless functions hold no auth session of their own
        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
        )

        _client = create_client(url, key, options)
        logger.info("Supabase client initialized", url=url)

    return _client


async def _execute(query) -> Any:
    """Run a blocking postgrest request in a worker thread."""
    return await asyncio.to_thread(query.execute)


class SupabaseClient:
    """Async context manager for Supabase client."""

    def __init__(self):
        self.client: Optional[Client] = None

    async def __aenter__(self) -> Client:
        self.client = get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                "Supabase operation error",
                error=str(exc_val),
                type=exc_type.__name__
            )
        return False


# Tasks table operations
async def get_tasks_by_user(user_id: str) -> list[dict[str, Any]]:
    """Get all tasks for a user, newest first."""
    table = StorageConfig.supabase_tasks_table()
    async with SupabaseClient() as client:
        try:
            result = await _execute(
                client.table(table)
                .select("*")
                .eq("user_id", user_id)
                .order("created_at", desc=True)
            )
            return result.data if result.data else []
        except Exception as e:
            raise SupabaseError(f"Failed to get tasks for user {mask_user_id(user_id)}: {e}") from e


async def create_task(task_data: dict[str, Any]) -> dict[str, Any]:
    """Insert a task row and return it with server-assigned id and timestamps."""
    table = StorageConfig.supabase_tasks_table()
    async with SupabaseClient() as client:
        try:
            result = await _execute(client.table(table).insert(task_data))
        except Exception as e:
            raise SupabaseError(f"Failed to create task: {e}") from e
        if result.data and len(result.data) > 0:
            return result.data[0]
        raise SupabaseError("Failed to create task: no data returned")


async def update_task(task_id: str, updates: dict[str, Any]) -> dict[str, Any]:
    """Apply a partial update to a task row."""
    table = StorageConfig.supabase_tasks_table()
    async with SupabaseClient() as client:
        try:
            result = await _execute(client.table(table).update(updates).eq("id", task_id))
        except Exception as e:
            raise SupabaseError(f"Failed to update task {task_id}: {e}") from e
        if result.data and len(result.data) > 0:
            return result.data[0]
        raise SupabaseError(f"Failed to update task: {task_id} not found")


async def delete_task(task_id: str) -> None:
    """Delete one task row."""
    table = StorageConfig.supabase_tasks_table()
    async with SupabaseClient() as client:
        try:
            await _execute(client.table(table).delete().eq("id", task_id))
        except Exception as e:
            raise SupabaseError(f"Failed to delete task {task_id}: {e}") from e
