"""Request ID middleware.

Learn: Registration, confirmation and login each log from several
layers (route, AuthService, CredentialStore, mail dispatcher). Binding
one id into structlog's contextvars ties those entries together, and
echoing it in X-Request-ID lets a client quote it in a support request.

Only the path is bound, never the query string: ConfirmEmail carries
the confirmation code in its query.
"""

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        response: Response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
