"""
FastAPI application assembly.

build_services wires the lead service, event handlers and notification
inbox around a Lead Store; create_app mounts the routers behind the
request-id and session middleware. create_app_from_vault does both with
the clients configured from Vault.
"""

import logging

from fastapi import FastAPI

from api.actions import create_actions_router
from api.base import success_response
from api.data import create_data_router
from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware
from auth.api import create_auth_router
from auth.config import AuthConfig
from auth.security_middleware import AuthMiddleware
from auth.session import SessionManager
from clients.lead_store_client import HttpLeadStore
from clients.valkey_client import ValkeyClient
from clients.vault_client import get_lead_store_config, get_valkey_url
from core.config import EngineConfig
from core.event_bus import EventBus
from core.handlers.lead_assigned_handler import handle_lead_assigned
from core.lead_locks import ValkeyLeadLockManager
from core.lead_store import LeadStore
from core.notifications import NotificationInbox
from core.services.lead_service import LeadService

logger = logging.getLogger(__name__)


def build_services(store: LeadStore, valkey: ValkeyClient, config: EngineConfig | None = None) -> dict:
    """
    Wire the lead service and its collaborators.

    Returns:
        Services dict with "lead", "notifications" and "event_bus"
    """
    config = config or EngineConfig()

    event_bus = EventBus()
    inbox = NotificationInbox(valkey, config.notification_inbox_limit)
    event_bus.subscribe("LeadAssigned", handle_lead_assigned(inbox))

    locks = ValkeyLeadLockManager(valkey, config.lock_timeout_seconds, config.lock_ttl_seconds)
    lead_service = LeadService(store, event_bus=event_bus, config=config, locks=locks)

    return {
        "lead": lead_service,
        "notifications": inbox,
        "event_bus": event_bus,
    }


def create_app(services: dict, session_manager: SessionManager, auth_config: AuthConfig | None = None) -> FastAPI:
    """FastAPI app with auth middleware, error handlers and lead routes."""
    auth_config = auth_config or AuthConfig()

    app = FastAPI(title="Lead Lifecycle Engine")
    app.add_middleware(AuthMiddleware, session_manager=session_manager, cookie_name=auth_config.session_cookie_name)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    @app.get("/health")
    async def health():
        return success_response({"status": "ok"}).model_dump(mode="json")

    app.include_router(create_data_router(services), prefix="/api")
    app.include_router(create_actions_router(services), prefix="/api")
    app.include_router(create_auth_router(session_manager, auth_config.session_cookie_name), prefix="/auth")

    return app


def create_app_from_vault() -> FastAPI:
    """Production entry point: clients from Vault secrets."""
    store_config = get_lead_store_config()
    config = EngineConfig(business_timezone=store_config["timezone"] or "Asia/Kolkata")

    store = HttpLeadStore(
        store_config["base_url"],
        timezone=config.business_timezone,
        service_token=store_config["service_token"],
    )
    valkey = ValkeyClient(get_valkey_url())
    auth_config = AuthConfig()

    services = build_services(store, valkey, config)
    logger.info(f"Lead engine ready against {store.base_url}")
    return create_app(services, SessionManager(valkey, auth_config), auth_config)
