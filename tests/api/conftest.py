"""API test fixtures - TestClients per actor over in-memory lead store and Valkey."""

from datetime import timedelta
from unittest.mock import Mock

import pytest
from starlette.testclient import TestClient

from api.app import build_services, create_app
from auth.exceptions import SessionExpiredError
from auth.session import SessionManager
from auth.types import Session
from core.config import EngineConfig
from tests.conftest import BUILDER, CHANNEL_PARTNER, SALES_MANAGER, TELECALLER
from utils.timezone import now_utc

TOKENS = {
    "builder-token": BUILDER,
    "telecaller-token": TELECALLER,
    "manager-token": SALES_MANAGER,
    "partner-token": CHANNEL_PARTNER,
}


# =============================================================================
# SERVICES
# =============================================================================


@pytest.fixture
def services(store, valkey):
    return build_services(store, valkey, EngineConfig(lock_timeout_seconds=1))


@pytest.fixture
def lead_svc(services):
    return services["lead"]


# =============================================================================
# AUTH FIXTURES
# =============================================================================


@pytest.fixture
def mock_session_manager():
    def validate(token):
        actor = TOKENS.get(token)
        if actor is None:
            raise SessionExpiredError("Session not found or expired")
        now = now_utc()
        return Session(
            token=token,
            actor=actor,
            credential=f"store-{token}",
            created_at=now,
            expires_at=now + timedelta(hours=12),
            last_activity_at=now,
        )

    mock = Mock(spec=SessionManager)
    mock.validate_session.side_effect = validate
    return mock


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def app(services, mock_session_manager):
    """The production app assembly over test services."""
    return create_app(services, mock_session_manager)


def _client(app, token):
    c = TestClient(app, raise_server_exceptions=False)
    c.cookies.set("session_token", token)
    return c


@pytest.fixture
def client(app):
    """Client signed in as the builder (organization owner)."""
    return _client(app, "builder-token")


@pytest.fixture
def telecaller_client(app):
    return _client(app, "telecaller-token")


@pytest.fixture
def manager_client(app):
    return _client(app, "manager-token")


@pytest.fixture
def partner_client(app):
    return _client(app, "partner-token")


@pytest.fixture
def unauthed_client(app):
    """Unauthenticated test client (no session cookie)."""
    return TestClient(app, raise_server_exceptions=False)


# =============================================================================
# HELPERS
# =============================================================================


LEAD_PAYLOAD = {
    "customer_name": "Priya Menon",
    "customer_phone_number": "9876543210",
    "customer_email": "priya.menon@example.com",
    "interested_project_id": 7,
    "interested_project_name": "Lakeview Residency",
    "lead_source_id": 2,
    "city": "Hyderabad",
}


def act(client, domain, action, **data):
    return client.post("/api/actions", json={"domain": domain, "action": action, "data": data})


@pytest.fixture
def created_lead(client):
    response = act(client, "lead", "create", **LEAD_PAYLOAD)
    assert response.status_code == 200
    return response.json()["data"]


@pytest.fixture
def assigned_lead(client, created_lead):
    response = act(
        client, "lead", "assign",
        lead_id=created_lead["lead_id"], target_user_type=5, target_id=11,
        priority="High", feedback="Hot walk-in enquiry",
    )
    assert response.status_code == 200
    return response.json()["data"]
