"""Session authentication modules."""

from auth.exceptions import AuthError, SessionExpiredError
from auth.types import Session
from auth.config import AuthConfig
from auth.session import SessionManager
from auth.security_middleware import AuthMiddleware
from auth.api import create_auth_router
