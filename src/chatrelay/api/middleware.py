"""HTTP middleware for request correlation."""

from __future__ import annotations

from typing import Final

from fastapi import Request
from fastapi.responses import Response
from starlette.middleware.base import BaseHTTPMiddleware

from chatrelay.core.request_context import bound_request_id, new_request_id

REQUEST_ID_HEADER: Final[str] = "X-Request-ID"


class RequestCorrelationMiddleware(BaseHTTPMiddleware):
    """Bind a request id for logging and echo it on the response."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = new_request_id(request.headers.get(REQUEST_ID_HEADER))
        with bound_request_id(request_id):
            response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
