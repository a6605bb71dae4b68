"""Authentication configuration."""

from pydantic import BaseModel, Field


class AuthConfig(BaseModel):
    """Session configuration. Durations are in hours."""

    session_expiry_hours: int = Field(
        default=12,
        description="Session lifetime in hours",
        ge=1,
        le=720,
    )
    session_extend_on_activity: bool = Field(
        default=True,
        description="Whether to extend session expiry on activity",
    )
    session_cookie_name: str = Field(
        default="session_token",
        description="Cookie carrying the session token for browser clients",
    )
