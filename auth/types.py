"""Pydantic models for auth domain."""

from datetime import datetime

from pydantic import BaseModel, Field

from core.models.actor import Actor


class Session(BaseModel):
    """An active session of a signed-in user."""

    token: str = Field(..., description="Session token (opaque string)")
    actor: Actor
    credential: str = Field(..., description="Lead Store bearer credential issued at sign-in")
    created_at: datetime
    expires_at: datetime
    last_activity_at: datetime
