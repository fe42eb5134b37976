"""Rate limiting middleware — Redis-based fixed window per minute.

Learn: Each IP gets a counter key like "storefront:rl:{ip}:{bucket}:{minute}".
Login and Register get a stricter limit to slow down password guessing
and signup spam.

Skips rate limiting if Redis is unavailable (e.g., in tests).
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from storefront.cache import get_redis

logger = structlog.get_logger()

AUTH_PATHS = (
    "/api/Authentication/Login",
    "/api/Authentication/Register",
)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Redis-based rate limiting per IP per minute."""

    def __init__(self, app, default_rpm: int = 100, auth_rpm: int = 10):
        super().__init__(app)
        self.default_rpm = default_rpm
        self.auth_rpm = auth_rpm

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            redis = get_redis()
        except RuntimeError:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        is_auth = request.url.path in AUTH_PATHS
        rpm = self.auth_rpm if is_auth else self.default_rpm

        window = int(time.time() // 60)
        bucket = "auth" if is_auth else "api"
        key = f"storefront:rl:{client_ip}:{bucket}:{window}"

        try:
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, 120)  # 2-min TTL, outlives the window
        except Exception as e:
            logger.warning("storefront.rate_limit.redis_error", error=str(e))
            return await call_next(request)

        if count > rpm:
            logger.info("storefront.rate_limit.exceeded", client_ip=client_ip, bucket=bucket)
            return JSONResponse(
                status_code=429,
                content={"result": False, "errors": ["Rate limit exceeded. Try again later."]},
                headers={"Retry-After": "60"},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(rpm)
        response.headers["X-RateLimit-Remaining"] = str(max(0, rpm - count))
        return response
