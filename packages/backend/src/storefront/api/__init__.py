"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. Health and authentication routes are open;
the clients router requires a bearer token.
"""

from fastapi import APIRouter, Depends

from storefront.api.auth import router as auth_router
from storefront.api.clients import router as clients_router
from storefront.api.health import router as health_router
from storefront.auth.dependencies import get_current_user

_auth = [Depends(get_current_user)]

api_router = APIRouter(prefix="/api")

# Open routes — no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes — require a valid JWT
api_router.include_router(clients_router, tags=["clients"], dependencies=_auth)
