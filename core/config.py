"""Lead engine configuration."""

from pydantic import BaseModel, Field


class EngineConfig(BaseModel):
    """
    Lead engine configuration.

    The business timezone decides what "today" is when checking follow-up
    and action dates and when comparing list filter date bounds.
    """

    business_timezone: str = Field(
        default="Asia/Kolkata",
        description="IANA timezone used for calendar-date rules",
    )

    # Per-lead locking
    lock_timeout_seconds: float = Field(
        default=10.0,
        description="How long to wait for another writer on the same lead",
        gt=0,
        le=120,
    )
    lock_ttl_seconds: int = Field(
        default=30,
        description="Expiry of a distributed lead lock if its holder dies",
        ge=5,
        le=600,
    )

    # Notifications
    notification_inbox_limit: int = Field(
        default=200,
        description="Maximum notifications kept per assignee inbox",
        ge=1,
        le=5000,
    )
