"""GET /api/* read endpoints for leads, statuses, assignees and notifications."""

from datetime import date

from fastapi import APIRouter, Query, Request

from api.base import success_response


def create_data_router(services: dict) -> APIRouter:
    """
    Read routes. They are plain functions so FastAPI runs them in its
    threadpool: lead store calls and lead locks block.
    """
    router = APIRouter()

    lead_svc = services["lead"]
    inbox = services["notifications"]

    # -------------------------------------------------------------------------
    # Leads (fixed paths before /leads/{lead_id})
    # -------------------------------------------------------------------------

    @router.get("/leads")
    def list_leads(
        request: Request,
        assigned_user_type: int | None = Query(None),
        assigned_id: int | None = Query(None),
        status_id: int | None = Query(None),
        search: str | None = Query(None),
        city: str | None = Query(None),
        created_from: date | None = Query(None),
        created_to: date | None = Query(None),
        updated_from: date | None = Query(None),
        updated_to: date | None = Query(None),
    ):
        leads = lead_svc.list_leads(
            request.state.actor,
            assigned_user_type=assigned_user_type,
            assigned_id=assigned_id,
            status_id=status_id,
            search=search,
            city=city,
            created_from=created_from,
            created_to=created_to,
            updated_from=updated_from,
            updated_to=updated_to,
        )
        return _ok(request, [lead.model_dump(mode="json") for lead in leads])

    @router.get("/leads/booked")
    def list_booked(request: Request):
        leads = lead_svc.list_booked(request.state.actor)
        return _ok(request, [lead.model_dump(mode="json") for lead in leads])

    @router.get("/leads/{lead_id}")
    def get_lead(request: Request, lead_id: int):
        lead = lead_svc.get_lead(request.state.actor, lead_id)
        return _ok(request, lead.model_dump(mode="json"))

    @router.get("/leads/{lead_id}/timeline")
    def lead_timeline(request: Request, lead_id: int):
        timeline = lead_svc.timeline(request.state.actor, lead_id)
        return _ok(request, [entry.model_dump(mode="json") for entry in timeline])

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    @router.get("/statuses")
    def list_statuses(request: Request):
        statuses = lead_svc.statuses()
        data = []
        for status in statuses:
            item = status.model_dump(mode="json")
            item["status_class"] = status.status_class.value
            data.append(item)
        return _ok(request, data)

    @router.get("/assignees")
    def list_assignees(request: Request, user_type: int = Query(...)):
        assignees = lead_svc.eligible_assignees(request.state.actor, user_type)
        return _ok(request, [a.model_dump(mode="json") for a in assignees])

    @router.get("/notifications")
    def list_notifications(request: Request, limit: int = Query(50, ge=1, le=200)):
        actor = request.state.actor
        items = inbox.list(int(actor.user_type), actor.user_id, limit)
        count = inbox.count(int(actor.user_type), actor.user_id)
        return _ok(request, {"items": items, "count": count})

    return router


def _ok(request: Request, data) -> dict:
    request_id = getattr(request.state, "request_id", None)
    return success_response(data, request_id=request_id).model_dump(mode="json")
