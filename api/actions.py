"""POST /api/actions - unified mutation endpoint."""

from datetime import date

from fastapi import APIRouter, Request
from pydantic import BaseModel, ValidationError

from api.base import success_response
from core.exceptions import LeadValidationError, validation_error_from_pydantic
from core.models import LeadCreate


class ActionRequest(BaseModel):
    domain: str
    action: str
    data: dict


def create_actions_router(services: dict) -> APIRouter:
    router = APIRouter()

    handlers = {
        "lead": LeadHandler(services["lead"]),
        "notification": NotificationHandler(services["notifications"]),
    }

    # Sync so the threadpool absorbs blocking lock waits and store calls.
    @router.post("/actions")
    def perform_action(request: Request, body: ActionRequest):
        handler = handlers.get(body.domain)
        if handler is None:
            raise ValueError(
                f"Unknown domain '{body.domain}'. "
                f"Valid domains: {', '.join(sorted(handlers.keys()))}"
            )

        if body.action not in handler.ALLOWED_ACTIONS:
            raise ValueError(
                f"Action '{body.action}' not allowed on '{body.domain}'. "
                f"Allowed: {', '.join(sorted(handler.ALLOWED_ACTIONS))}"
            )

        method = getattr(handler, f"_handle_{body.action}")
        result = method(request.state.actor, dict(body.data))
        request_id = getattr(request.state, "request_id", None)
        return success_response(result, request_id=request_id).model_dump(mode="json")

    return router


# =============================================================================
# FIELD HELPERS
# =============================================================================


def _required(data: dict, name: str):
    if data.get(name) in (None, ""):
        raise LeadValidationError(f"{name} is required", field=name)
    return data[name]


def _int(data: dict, name: str, required: bool = True) -> int | None:
    value = _required(data, name) if required else data.get(name)
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise LeadValidationError(f"{name} must be an integer", field=name)


def _date(data: dict, name: str) -> date | None:
    value = data.get(name)
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise LeadValidationError(f"{name} must be a date (YYYY-MM-DD)", field=name)


# =============================================================================
# HANDLER CLASSES
# =============================================================================


class LeadHandler:
    ALLOWED_ACTIONS = {"create", "transition", "assign", "book"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, actor, data: dict):
        try:
            lead_data = LeadCreate(**data)
        except ValidationError as e:
            raise validation_error_from_pydantic(e) from e
        lead = self.service.create_lead(actor, lead_data)
        return lead.model_dump(mode="json")

    def _handle_transition(self, actor, data: dict):
        update = self.service.transition(
            actor,
            _int(data, "lead_id"),
            _int(data, "status_id"),
            data.get("feedback", ""),
            data.get("next_action", ""),
            followup_date=_date(data, "followup_date"),
            action_date=_date(data, "action_date"),
        )
        return update.model_dump(mode="json")

    def _handle_assign(self, actor, data: dict):
        lead = self.service.assign(
            actor,
            _int(data, "lead_id"),
            _int(data, "target_user_type"),
            _int(data, "target_id"),
            data.get("priority"),
            data.get("feedback", ""),
            next_action=data.get("next_action", ""),
            status_id=_int(data, "status_id", required=False),
            followup_date=_date(data, "followup_date"),
            action_date=_date(data, "action_date"),
        )
        return lead.model_dump(mode="json")

    def _handle_book(self, actor, data: dict):
        lead_id = _int(data, "lead_id")
        details = {k: v for k, v in data.items() if k != "lead_id"}
        booking = self.service.book(actor, lead_id, details)
        return booking.model_dump(mode="json")


class NotificationHandler:
    ALLOWED_ACTIONS = {"clear"}

    def __init__(self, inbox):
        self.inbox = inbox

    def _handle_clear(self, actor, data: dict):
        cleared = self.inbox.clear(int(actor.user_type), actor.user_id)
        return {"cleared": cleared}
