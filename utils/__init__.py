"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, to_utc, to_local, local_today, calendar_date, parse_iso
from utils.actor_context import (
    get_current_actor,
    get_current_credential,
    set_current_actor,
    clear_current_actor,
    actor_context,
)
