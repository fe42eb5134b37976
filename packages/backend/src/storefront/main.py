"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (database, Redis).
Middleware, CORS, exception handlers and routers all registered here.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront import __version__
from storefront.api import api_router
from storefront.cache import close_redis, init_redis
from storefront.config import settings
from storefront.middleware.rate_limit import RateLimitMiddleware
from storefront.middleware.request_id import RequestIdMiddleware
from storefront.middleware.security import SecurityHeadersMiddleware
from storefront.services.auth_service import AuthError

logger = structlog.get_logger()

AUTH_PREFIX = "/api/Authentication/"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    logger.info(
        "storefront.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        mail_backend=settings.mail_backend,
    )

    try:
        await init_redis()
        logger.info("storefront.redis_connected", url=settings.redis_url)
    except Exception as e:
        # Redis is optional; only rate limiting is lost
        logger.warning("storefront.redis_unavailable", error=str(e))

    yield

    logger.info("storefront.shutdown")
    await close_redis()

    from storefront.db.engine import engine
    await engine.dispose()


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    logger.info(
        "storefront.auth.rejected",
        error_type=type(exc).__name__,
        status_code=exc.status_code,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"result": False, "errors": exc.errors},
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Authentication routes answer malformed bodies with the {result, errors} shape."""
    if not request.url.path.startswith(AUTH_PREFIX):
        return await request_validation_exception_handler(request, exc)
    errors = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        errors.append(f"{field}: {err.get('msg')}" if field else err.get("msg"))
    return JSONResponse(status_code=400, content={"result": False, "errors": errors})


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Storefront API",
        description="Furniture store backend — accounts, email confirmation, clients",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: storefront.main:app)
app = create_app()
