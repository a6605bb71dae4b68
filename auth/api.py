"""HTTP routes for the current session.

Sign-in and credential issuance happen in the external auth service; it
creates sessions through SessionManager.create_session.
"""

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from auth.session import SessionManager
from api.base import success_response, error_response, ErrorCodes


def create_auth_router(session_manager: SessionManager, cookie_name: str = "session_token") -> APIRouter:
    """Create auth router with injected session manager."""
    router = APIRouter(tags=["auth"])

    @router.post("/logout")
    def logout(request: Request, response: Response):
        """Logout - revoke session and clear cookie."""
        session = getattr(request.state, "session", None)
        if session is not None:
            session_manager.revoke_session(session.token)

        response.delete_cookie(key=cookie_name)

        return success_response({"message": "Logged out successfully"}).model_dump(mode="json")

    @router.get("/me")
    async def get_current_actor(request: Request):
        """Get the signed-in actor.

        Requires authentication (middleware sets actor context).
        """
        actor = getattr(request.state, "actor", None)
        if actor is None:
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.NOT_AUTHENTICATED,
                    "Authentication required",
                ).model_dump(mode="json"),
            )

        data = actor.model_dump(mode="json")
        data["organization"] = actor.organization.model_dump(mode="json")
        return success_response(data).model_dump(mode="json")

    return router
