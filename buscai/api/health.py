"""
Health check endpoints.
/health always returns 200; DB reachability is reported, never enforced.
"""

from fastapi import APIRouter
from sqlalchemy import text

from buscai.config import settings
from buscai.models.database import async_session_factory

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Liveness plus a best-effort DB check."""
    db_ok = False
    db_error = None
    try:
        async with async_session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            db_ok = result.scalar() == 1
    except Exception as e:
        db_error = str(e)[:200]

    response = {
        "status": "healthy" if db_ok else "degraded",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "database": "connected" if db_ok else "unreachable",
        "readonly": settings.READONLY_MODE,
        "auction_disabled": settings.AUCTION_DISABLED,
    }
    if db_error:
        response["database_error"] = db_error
    return response


@router.get("/health/ready")
async def readiness_check():
    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
            return {"ready": True}
    except Exception:
        return {"ready": False}
