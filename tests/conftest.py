"""Shared test fixtures for the lead engine test suite."""

import json
from datetime import timedelta
from pathlib import Path

import pytest
from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
# override=True ensures .env takes precedence over shell env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton to pick up env vars
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from core.config import EngineConfig
from core.event_bus import EventBus
from core.exceptions import LeadNotFoundError
from core.lead_store import AssignAck, BookingAck, LeadStore, StoreAck
from core.models import (
    Actor,
    Assignee,
    BookingDetails,
    Lead,
    LeadCreate,
    LeadPriority,
    LeadStatus,
    LeadUpdate,
    UserType,
)
from core.services.lead_service import LeadService
from core.status_catalog import StatusCatalog
from utils.actor_context import clear_current_actor
from utils.timezone import now_utc


# =============================================================================
# STATUS CATALOG
# =============================================================================

NEW = 1
FOLLOW_UP = 2
CALL_BACK = 3
OPEN = 4
SITE_VISIT_SCHEDULED = 5
SITE_VISIT_DONE = 6
WON = 7
LOST = 8
REVOKED = 9
BOOKED = 10

STATUS_ROWS = [
    {"status_id": NEW, "status_name": "New", "is_default": 1},
    {"status_id": FOLLOW_UP, "status_name": "Follow Up", "is_default": 0},
    {"status_id": CALL_BACK, "status_name": "Call Back", "is_default": 0},
    {"status_id": OPEN, "status_name": "Open", "is_default": 0},
    {"status_id": SITE_VISIT_SCHEDULED, "status_name": "Site Visit Scheduled", "is_default": 0},
    {"status_id": SITE_VISIT_DONE, "status_name": "Site Visit Done", "is_default": 0},
    {"status_id": WON, "status_name": "Won", "is_default": 0},
    {"status_id": LOST, "status_name": "Lost", "is_default": 0},
    {"status_id": REVOKED, "status_name": "Revoked", "is_default": 0},
    {"status_id": BOOKED, "status_name": "Booked", "is_default": 0},
]


# =============================================================================
# ACTORS
# =============================================================================

ORG_ID = 100
OTHER_ORG_ID = 200

BUILDER = Actor(user_id=ORG_ID, user_type=UserType.BUILDER, name="Skyline Builders", mobile="9000000100")
OTHER_BUILDER = Actor(user_id=OTHER_ORG_ID, user_type=UserType.BUILDER, name="Harbor Homes", mobile="9000000200")
TELECALLER = Actor(
    user_id=11, user_type=UserType.TELECALLER, name="Tara Iyer", mobile="9000000011",
    created_user_type=2, created_user_id=ORG_ID,
)
SALES_MANAGER = Actor(
    user_id=12, user_type=UserType.SALES_MANAGER, name="Sam Rao", mobile="9000000012",
    created_user_type=2, created_user_id=ORG_ID,
)
CHANNEL_PARTNER = Actor(
    user_id=31, user_type=UserType.CHANNEL_PARTNER, name="Cyrus Realty", mobile="9000000031",
    created_user_type=2, created_user_id=ORG_ID,
)
OTHER_ORG_TELECALLER = Actor(
    user_id=21, user_type=UserType.TELECALLER, name="Omar Khan", mobile="9000000021",
    created_user_type=2, created_user_id=OTHER_ORG_ID,
)

USERS = [
    Assignee(id=11, user_type=UserType.TELECALLER, name="Tara Iyer", mobile="9000000011",
             emp_number="EMP-011", created_user_id=ORG_ID),
    Assignee(id=12, user_type=UserType.SALES_MANAGER, name="Sam Rao", mobile="9000000012",
             emp_number="EMP-012", created_user_id=ORG_ID),
    Assignee(id=13, user_type=UserType.TELECALLER, name="Ina Das", mobile="9000000013",
             status=0, created_user_id=ORG_ID),
    Assignee(id=14, user_type=UserType.TELECALLER, name="Vikram Sen", mobile="9000000014",
             created_user_id=ORG_ID),
    Assignee(id=31, user_type=UserType.CHANNEL_PARTNER, name="Cyrus Realty", mobile="9000000031",
             created_user_id=ORG_ID),
    Assignee(id=21, user_type=UserType.TELECALLER, name="Omar Khan", mobile="9000000021",
             created_user_id=OTHER_ORG_ID),
]


# =============================================================================
# IN-MEMORY LEAD STORE
# =============================================================================


class InMemoryLeadStore(LeadStore):
    """
    LeadStore fake applying each write atomically, like the remote store.

    `writes` records every mutation call so tests can assert that a
    rejected operation wrote nothing.
    """

    def __init__(self, statuses=None, users=None):
        self.statuses = [LeadStatus.model_validate(row) for row in (statuses or STATUS_ROWS)]
        self.users = list(users if users is not None else USERS)
        self.leads: dict[int, Lead] = {}
        self.updates: list[LeadUpdate] = []
        self.writes: list[tuple[str, dict]] = []
        self._next_lead_id = 1
        self._next_update_id = 1
        self._next_booking_id = 5001
        self._base = now_utc() - timedelta(minutes=30)
        self._tick = 0

    def _now(self):
        self._tick += 1
        return self._base + timedelta(seconds=self._tick)

    def _status_name(self, status_id):
        for status in self.statuses:
            if status.status_id == status_id:
                return status.status_name
        return None

    def _require(self, fields) -> Lead:
        lead = self.leads.get(fields["lead_id"])
        if lead is None or lead.lead_added_user_id != fields["lead_added_user_id"]:
            raise LeadNotFoundError(f"Lead {fields['lead_id']} not found")
        return lead

    def _append_update(self, lead: Lead, fields: dict, now) -> Lead:
        update = LeadUpdate(
            update_id=self._next_update_id,
            lead_id=lead.lead_id,
            status_id=fields["status_id"],
            status_name=self._status_name(fields["status_id"]),
            feedback=fields["feedback"],
            next_action=fields["next_action"],
            followup_date=fields.get("followup_date"),
            action_date=fields.get("action_date"),
            updated_by_emp_type=fields["updated_by_emp_type"],
            updated_by_emp_id=fields["updated_by_emp_id"],
            updated_by_emp_name=fields["updated_by_emp_name"],
            updated_emp_phone=fields.get("updated_emp_phone"),
            updated_at=now,
        )
        self._next_update_id += 1
        self.updates.append(update)
        return lead.model_copy(update={
            "status_id": update.status_id,
            "status_name": update.status_name,
            "follow_up_feedback": update.feedback,
            "next_action": update.next_action,
            "updated_at": now,
        })

    # Test helpers

    def set_timestamps(self, lead_id, created_at=None, updated_at=None):
        lead = self.leads[lead_id]
        self.leads[lead_id] = lead.model_copy(update={
            "created_at": created_at or lead.created_at,
            "updated_at": updated_at or lead.updated_at,
        })

    def write_count(self) -> int:
        return len(self.writes)

    # LeadStore

    def fetch_leads(self, owner_type, owner_id, assigned_user_type=None, assigned_id=None, status_id=None):
        result = []
        for lead in self.leads.values():
            if lead.lead_added_user_type != owner_type or lead.lead_added_user_id != owner_id:
                continue
            if assigned_user_type is not None and lead.assigned_user_type != assigned_user_type:
                continue
            if assigned_id is not None and lead.assigned_id != assigned_id:
                continue
            if status_id is not None and lead.status_id != status_id:
                continue
            result.append(lead)
        return result

    def fetch_lead(self, lead_id, owner_type, owner_id):
        lead = self.leads.get(lead_id)
        if lead is None:
            return None
        if lead.lead_added_user_type != owner_type or lead.lead_added_user_id != owner_id:
            return None
        return lead

    def fetch_booked_leads(self, owner_type, owner_id):
        return [lead for lead in self.fetch_leads(owner_type, owner_id) if lead.booked]

    def fetch_lead_updates(self, lead_id, owner_type, owner_id):
        if self.fetch_lead(lead_id, owner_type, owner_id) is None:
            return []
        return [u for u in reversed(self.updates) if u.lead_id == lead_id]

    def create_lead(self, fields):
        self.writes.append(("create_lead", dict(fields)))
        now = self._now()
        lead_id = self._next_lead_id
        self._next_lead_id += 1
        self.leads[lead_id] = Lead.model_validate({
            **fields,
            "lead_id": lead_id,
            "status_name": self._status_name(fields["status_id"]),
            "created_at": now,
            "updated_at": now,
        })
        return lead_id

    def update_status(self, fields):
        self.writes.append(("update_status", dict(fields)))
        lead = self._require(fields)
        self.leads[lead.lead_id] = self._append_update(lead, fields, self._now())
        return StoreAck(message="Lead updated")

    def assign_lead(self, fields):
        self.writes.append(("assign_lead", dict(fields)))
        lead = self._require(fields)
        now = self._now()
        lead = lead.model_copy(update={
            "assigned_user_type": fields["assigned_user_type"],
            "assigned_id": fields["assigned_id"],
            "assigned_name": fields["assigned_name"],
            "assigned_emp_number": fields["assigned_emp_number"],
            "assigned_priority": LeadPriority(fields["assigned_priority"]),
            "assigned_at": now,
            "follow_up_feedback": fields["feedback"],
            "updated_at": now,
        })
        if fields.get("status_id") is not None:
            lead = self._append_update(lead, fields, now)
        self.leads[lead.lead_id] = lead
        return AssignAck(message="Lead assigned", lead=lead)

    def book_lead(self, fields):
        self.writes.append(("book_lead", dict(fields)))
        lead = self._require(fields)
        now = self._now()
        booking_id = self._next_booking_id
        self._next_booking_id += 1
        self.leads[lead.lead_id] = lead.model_copy(update={
            "booked": True,
            "sqft": fields["sqft"],
            "budget": fields["budget"],
            "updated_at": now,
            "booking": BookingDetails(
                booking_id=booking_id,
                property_id=fields["property_id"],
                flat_number=fields["flat_number"],
                floor_number=fields["floor_number"],
                block_number=fields["block_number"],
                asset=fields["asset"],
                booked_at=now,
            ),
        })
        return BookingAck(message="Lead booked", lead_id=lead.lead_id, booking_id=booking_id)

    def fetch_status_catalog(self):
        return list(self.statuses)

    def fetch_users_by_type(self, owner_id, user_type, status=1):
        return [
            user for user in self.users
            if user.created_user_id == owner_id and int(user.user_type) == int(user_type) and user.status == status
        ]


# =============================================================================
# IN-MEMORY VALKEY
# =============================================================================


class InMemoryValkey:
    """Dict-backed stand-in for ValkeyClient with the same method surface."""

    def __init__(self):
        self.values: dict[str, str] = {}
        self.lists: dict[str, list[str]] = {}
        self.expirations: dict[str, int] = {}

    def ping(self):
        return True

    def get(self, key):
        return self.values.get(key)

    def set(self, key, value, expire_seconds=None):
        self.values[key] = value
        if expire_seconds is not None:
            self.expirations[key] = expire_seconds

    def delete(self, key):
        existed = key in self.values or key in self.lists
        self.values.pop(key, None)
        self.lists.pop(key, None)
        return existed

    def set_json(self, key, value, expire_seconds=None):
        self.set(key, json.dumps(value), expire_seconds)

    def get_json(self, key):
        value = self.get(key)
        return None if value is None else json.loads(value)

    def acquire_lock(self, key, token, ttl_ms):
        if key in self.values:
            return False
        self.values[key] = token
        return True

    def release_lock(self, key, token):
        if self.values.get(key) != token:
            return False
        del self.values[key]
        return True

    def push_json(self, key, value, max_length):
        items = self.lists.setdefault(key, [])
        items.insert(0, json.dumps(value))
        length = len(items)
        del items[max_length:]
        return length

    def list_json(self, key, limit=50):
        return [json.loads(item) for item in self.lists.get(key, [])[:limit]]

    def list_length(self, key):
        return len(self.lists.get(key, []))

    def close(self):
        pass


# =============================================================================
# CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_actor_context():
    """Ensure clean actor context before and after each test."""
    clear_current_actor()
    yield
    clear_current_actor()


# =============================================================================
# ACTOR FIXTURES
# =============================================================================


@pytest.fixture
def builder() -> Actor:
    return BUILDER


@pytest.fixture
def other_builder() -> Actor:
    return OTHER_BUILDER


@pytest.fixture
def telecaller() -> Actor:
    return TELECALLER


@pytest.fixture
def sales_manager() -> Actor:
    return SALES_MANAGER


@pytest.fixture
def channel_partner() -> Actor:
    return CHANNEL_PARTNER


# =============================================================================
# ENGINE FIXTURES
# =============================================================================


@pytest.fixture
def store() -> InMemoryLeadStore:
    return InMemoryLeadStore()


@pytest.fixture
def valkey() -> InMemoryValkey:
    return InMemoryValkey()


@pytest.fixture
def catalog(store) -> StatusCatalog:
    return StatusCatalog(store.fetch_status_catalog())


@pytest.fixture
def engine_config() -> EngineConfig:
    return EngineConfig(business_timezone="Asia/Kolkata", lock_timeout_seconds=1)


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def published(event_bus) -> list:
    """Every event published on the bus, in order."""
    events = []
    event_bus.subscribe("LeadEvent", events.append)
    return events


@pytest.fixture
def lead_service(store, event_bus, engine_config, catalog) -> LeadService:
    return LeadService(store, event_bus=event_bus, config=engine_config, catalog=catalog)


@pytest.fixture
def engine(lead_service):
    return lead_service.engine


@pytest.fixture
def today(engine):
    return engine.today()


def lead_data(**overrides) -> LeadCreate:
    data = {
        "customer_name": "Priya Menon",
        "customer_phone_number": "9876543210",
        "customer_email": "priya.menon@example.com",
        "interested_project_id": 7,
        "interested_project_name": "Lakeview Residency",
        "lead_source_id": 2,
        "city": "Hyderabad",
        "state": "Telangana",
    }
    data.update(overrides)
    return LeadCreate(**data)


def make_lead(**overrides) -> Lead:
    """Stand-alone Lead for tests that don't need a store."""
    now = now_utc()
    data = {
        "lead_id": 1,
        "customer_name": "Priya Menon",
        "customer_phone_number": "9876543210",
        "customer_email": "priya.menon@example.com",
        "interested_project_id": 7,
        "interested_project_name": "Lakeview Residency",
        "lead_added_user_type": int(UserType.BUILDER),
        "lead_added_user_id": ORG_ID,
        "status_id": NEW,
        "status_name": "New",
        "created_at": now,
        "updated_at": now,
    }
    data.update(overrides)
    return Lead(**data)


@pytest.fixture
def new_lead(lead_service, builder) -> Lead:
    """Unassigned lead of the builder's organization, in the initial status."""
    return lead_service.create_lead(builder, lead_data())


@pytest.fixture
def assigned_lead(lead_service, builder, new_lead) -> Lead:
    """Lead assigned to the telecaller, still in the initial status."""
    return lead_service.assign(
        builder, new_lead.lead_id, int(UserType.TELECALLER), TELECALLER.user_id,
        "High", "Hot walk-in enquiry",
    )
