"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running and
the database is reachable. Redis only backs rate limiting, so its
absence is reported but does not degrade the status.
"""

from fastapi import APIRouter
from sqlalchemy import text

from storefront import __version__
from storefront.cache import get_redis
from storefront.db.engine import engine

router = APIRouter()


@router.get("/health")
async def health_check():
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    try:
        await get_redis().ping()
        checks["redis"] = "ok"
    except Exception:
        checks["redis"] = "unavailable"

    status = "healthy" if checks["database"] == "ok" else "degraded"
    return {"status": status, **checks}
