"""Session user model."""

from typing import Optional
from pydantic import BaseModel, Field


class SessionUser(BaseModel):
    """Authenticated user supplied by the identity provider."""
    id: str = Field(..., min_length=1, description="User ID (tasks.user_id)")
    email: Optional[str] = Field(None, description="User email")
