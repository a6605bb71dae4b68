"""
HTTP Lead Store client.

Talks to the remote lead store REST API with the bearer credential of the
current request (see utils.actor_context). Responses are converted into
core models; failures into core.exceptions errors:

- 401 -> UnauthorizedError (never retried here)
- 404 -> empty result / None on reads, LeadNotFoundError on writes
- 400/422 -> LeadValidationError
- 409 -> InvalidStateTransitionError
- 5xx, timeouts, connection errors, undecodable bodies and rows that do
  not fit the core models -> TransientError

The store sends timestamps as separate local date and time fields
(created_date + created_time); they are combined in the business timezone.
"""

import json
import logging
from datetime import datetime
from typing import Any

import requests
from pydantic import ValidationError

from core.exceptions import (
    InvalidStateTransitionError,
    LeadNotFoundError,
    LeadValidationError,
    TransientError,
    UnauthorizedError,
)
from core.lead_store import AssignAck, BookingAck, LeadStore, StoreAck
from core.models import Assignee, Lead, LeadStatus, LeadUpdate
from utils.actor_context import get_current_credential
from utils.timezone import from_local, now_utc

logger = logging.getLogger(__name__)

_BOOKED_VALUES = {"1", "true", "yes", "y", "booked"}


class HttpLeadStore(LeadStore):
    """LeadStore backed by the remote lead store REST API."""

    def __init__(
        self,
        base_url: str,
        timezone: str = "Asia/Kolkata",
        timeout_seconds: float = 10,
        service_token: str | None = None,
    ):
        """
        Args:
            base_url: Root URL of the lead store (e.g. https://leads.example.com)
            timezone: Timezone the store's date/time fields are written in
            timeout_seconds: Per-request timeout
            service_token: Credential for reads made outside a request
                (loading the status catalog at startup)

        Raises:
            ValueError: If base_url is empty
        """
        if not base_url:
            raise ValueError("base_url is required")

        self.base_url = base_url.rstrip("/")
        self.timezone = timezone
        self.timeout_seconds = timeout_seconds
        self.service_token = service_token

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _headers(self, allow_service: bool = False) -> dict[str, str]:
        token = get_current_credential()
        if not token and allow_service:
            token = self.service_token
        if not token:
            raise UnauthorizedError("No lead store credential for this request")
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }

    def _request(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        payload: dict | None = None,
        allow_service: bool = False,
    ) -> dict | None:
        """
        Send a request and decode the JSON body.

        Returns:
            Decoded body, or None on 404

        Raises:
            UnauthorizedError, LeadValidationError, InvalidStateTransitionError,
            TransientError
        """
        url = f"{self.base_url}{path}"
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        try:
            response = requests.request(
                method,
                url,
                params=params,
                json=payload,
                headers=self._headers(allow_service),
                timeout=self.timeout_seconds,
            )
        except requests.exceptions.Timeout as e:
            logger.error(f"Lead store timed out: {method} {path}")
            raise TransientError(f"Lead store timed out: {e}")
        except requests.exceptions.RequestException as e:
            logger.error(f"Lead store connection failed: {method} {path}: {e}")
            raise TransientError(f"Lead store unreachable: {e}")

        status = response.status_code
        if status == 404:
            return None

        try:
            body = response.json()
        except (json.JSONDecodeError, ValueError):
            if status >= 500 or status < 400:
                logger.error(f"Lead store returned invalid JSON ({status}): {response.text[:200]}")
                raise TransientError("Invalid response from lead store")
            body = {}

        message = body.get("message") if isinstance(body, dict) else None

        if status == 401:
            raise UnauthorizedError(message or "Lead store credential is invalid or expired")
        if status in (400, 422):
            field = body.get("field") if isinstance(body, dict) else None
            raise LeadValidationError(message or "Lead store rejected the request", field=field)
        if status == 409:
            raise InvalidStateTransitionError(message or "Lead store rejected the state change")
        if status >= 500:
            logger.error(f"Lead store error ({status}): {message}")
            raise TransientError(message or f"Lead store error {status}")
        if status >= 400:
            raise LeadValidationError(message or f"Lead store rejected the request ({status})")

        if not isinstance(body, dict):
            raise TransientError("Unexpected response shape from lead store")
        return body

    def _get_results(self, path: str, params: dict, allow_service: bool = False) -> list[dict]:
        body = self._request("GET", path, params=params, allow_service=allow_service)
        if body is None:
            return []
        return body.get("results") or []

    def _post(self, path: str, fields: dict[str, Any]) -> dict:
        body = self._request("POST", path, payload=fields)
        if body is None:
            raise LeadNotFoundError(f"Lead {fields.get('lead_id')} not found")
        return body

    # -------------------------------------------------------------------------
    # Payload conversion
    # -------------------------------------------------------------------------

    def _invalid(self, kind: str, error: Exception) -> TransientError:
        logger.error(f"Lead store returned an invalid {kind}: {error}")
        return TransientError("Invalid response from lead store")

    def _timestamp(self, item: dict, prefix: str, fallback: datetime | None = None) -> datetime | None:
        if item.get(f"{prefix}_at"):
            return item[f"{prefix}_at"]
        day = item.get(f"{prefix}_date")
        if not day:
            return fallback
        clock = item.get(f"{prefix}_time") or "00:00:00"
        return from_local(datetime.fromisoformat(f"{str(day)[:10]}T{clock}"), self.timezone)

    def _lead(self, item: dict) -> Lead:
        try:
            return self._convert_lead(item)
        except (ValidationError, ValueError, TypeError) as e:
            raise self._invalid("lead", e)

    def _convert_lead(self, item: dict) -> Lead:
        data = dict(item)
        data["created_at"] = self._timestamp(item, "created", fallback=now_utc())
        data["updated_at"] = self._timestamp(item, "updated", fallback=data["created_at"])
        data["assigned_at"] = self._timestamp(item, "assigned")
        data["booked"] = str(item.get("booked", "")).strip().lower() in _BOOKED_VALUES
        if not data.get("assigned_priority"):
            data["assigned_priority"] = None

        booking_id = item.get("booking_id", item.get("booked_id"))
        if data["booked"] and booking_id is not None:
            data["booking"] = {
                "booking_id": booking_id,
                "property_id": item.get("property_id", ""),
                "flat_number": item.get("flat_number", ""),
                "floor_number": item.get("floor_number", ""),
                "block_number": item.get("block_number", ""),
                "asset": item.get("asset", ""),
                "booked_at": self._timestamp(item, "booked", fallback=data["updated_at"]),
            }
        return Lead.model_validate(data)

    def _update(self, item: dict) -> LeadUpdate:
        try:
            data = dict(item)
            data["updated_at"] = item.get("updated_at") or self._timestamp(item, "update", fallback=now_utc())
            return LeadUpdate.model_validate(data)
        except (ValidationError, ValueError, TypeError) as e:
            raise self._invalid("lead update", e)

    # -------------------------------------------------------------------------
    # LeadStore
    # -------------------------------------------------------------------------

    def fetch_leads(self, owner_type, owner_id, assigned_user_type=None, assigned_id=None, status_id=None):
        results = self._get_results("/api/v1/getLeadsByUser", {
            "lead_added_user_type": owner_type,
            "lead_added_user_id": owner_id,
            "assigned_user_type": assigned_user_type,
            "assigned_id": assigned_id,
            "status_id": status_id,
        })
        return [self._lead(item) for item in results]

    def fetch_lead(self, lead_id, owner_type, owner_id):
        results = self._get_results("/api/v1/leads/getLeadById", {
            "lead_id": lead_id,
            "lead_added_user_type": owner_type,
            "lead_added_user_id": owner_id,
        })
        return self._lead(results[0]) if results else None

    def fetch_booked_leads(self, owner_type, owner_id):
        results = self._get_results("/api/v1/leads/getBookedLeads", {
            "lead_added_user_type": owner_type,
            "lead_added_user_id": owner_id,
        })
        return [self._lead(item) for item in results]

    def fetch_lead_updates(self, lead_id, owner_type, owner_id):
        results = self._get_results("/api/v1/leads/getLeadUpdatesByLeadId", {
            "lead_id": lead_id,
            "lead_added_user_type": owner_type,
            "lead_added_user_id": owner_id,
        })
        return [self._update(item) for item in results]

    def create_lead(self, fields):
        body = self._post("/api/v1/leads/insertLead", fields)
        lead_id = body.get("lead_id")
        if lead_id is None:
            raise TransientError("Lead store did not return a lead id")
        try:
            lead_id = int(lead_id)
        except (ValueError, TypeError) as e:
            raise self._invalid("lead id", e)
        logger.info(f"Lead store created lead {lead_id}")
        return lead_id

    def update_status(self, fields):
        body = self._post("/api/v1/leads/updateLeadByEmployee", fields)
        return StoreAck(status=body.get("status", "success"), message=body.get("message", ""))

    def assign_lead(self, fields):
        body = self._post("/api/v1/leads/assignLeadToEmployee", fields)
        lead = body.get("data")
        return AssignAck(
            status=body.get("status", "success"),
            message=body.get("message", ""),
            lead=self._lead(lead) if lead else None,
        )

    def book_lead(self, fields):
        body = self._post("/api/v1/leads/markLeadAsBooked", fields)
        booking_id = body.get("booked_id", body.get("booking_id"))
        if booking_id is None:
            raise TransientError("Lead store did not return a booking id")
        try:
            return BookingAck(
                status=body.get("status", "success"),
                message=body.get("message", ""),
                lead_id=int(body.get("lead_id", fields["lead_id"])),
                booking_id=int(booking_id),
            )
        except (ValidationError, ValueError, TypeError) as e:
            raise self._invalid("booking acknowledgement", e)

    def fetch_status_catalog(self):
        results = self._get_results("/api/v1/leads/getLeadStatus", {}, allow_service=True)
        try:
            return [LeadStatus.model_validate(item) for item in results]
        except (ValidationError, ValueError, TypeError) as e:
            raise self._invalid("status catalog", e)

    def fetch_users_by_type(self, owner_id, user_type, status=1):
        results = self._get_results("/api/v1/getUsersTypesByBuilder", {
            "admin_user_id": owner_id,
            "emp_user_type": user_type,
            "status": status,
        })
        users = []
        try:
            for item in results:
                data = dict(item)
                data.setdefault("user_type", user_type)
                users.append(Assignee.model_validate(data))
        except (ValidationError, ValueError, TypeError) as e:
            raise self._invalid("user", e)
        return users
