"""Security headers middleware.

Learn: Two kinds of sensitive data leave this service in responses:
bearer tokens in the Login body, and confirmation codes in the
ConfirmEmail URL that a user opens from their inbox. The headers keep
both out of places they could be replayed from:

- Cache-Control: no-store keeps Login bodies out of shared caches
- Referrer-Policy: no-referrer stops a ConfirmEmail URL (code included)
  from being sent onward as a Referer
- X-Frame-Options / X-Content-Type-Options for the plain-text status page
- Strict-Transport-Security only when the request itself came over HTTPS
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

STATIC_HEADERS = {
    "Cache-Control": "no-store",
    "Referrer-Policy": "no-referrer",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
}

HSTS = "max-age=31536000; includeSubDomains"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        response.headers.update(STATIC_HEADERS)
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = HSTS
        return response
