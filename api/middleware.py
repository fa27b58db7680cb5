"""Request-scoped middleware for API requests."""

from uuid import UUID, uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from utils.user_context import set_current_user_id, clear_current_user_id


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns a unique request ID to every request."""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class UserContextMiddleware(BaseHTTPMiddleware):
    """Sets the acting user from the X-User-ID header.

    Authentication happens upstream; this only carries the already-verified
    identity into the user context so activity-log entries and overdue
    notifications are attributed. Requests without the header run anonymous.
    """

    HEADER = "X-User-ID"

    async def dispatch(self, request: Request, call_next):
        raw = request.headers.get(self.HEADER)
        if not raw:
            return await call_next(request)

        try:
            user_id = UUID(raw)
        except ValueError:
            return JSONResponse(
                status_code=400,
                content=error_response(
                    ErrorCodes.INVALID_USER,
                    f"{self.HEADER} must be a UUID",
                    getattr(request.state, "request_id", None),
                ).model_dump(mode="json"),
            )

        set_current_user_id(user_id)
        request.state.user_id = user_id
        try:
            return await call_next(request)
        finally:
            clear_current_user_id()
