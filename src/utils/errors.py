"""Error handling utilities."""


class TodoAppError(Exception):
    """Base exception for the todo backend."""
    pass


class ConfigurationError(TodoAppError):
    """Missing or invalid configuration."""
    pass


class StorageError(TodoAppError):
    """Task persistence operation failed."""
    pass


class SupabaseError(StorageError):
    """Supabase operation error."""
    pass
