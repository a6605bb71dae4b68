"""HTTP interface to the lead engine: response envelope, routers, app assembly."""

from api.base import (
    APIError,
    APIResponse,
    ErrorCodes,
    error_response,
    success_response,
)
