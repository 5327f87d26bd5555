"""Health check endpoints."""
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from costume_contest.database import engine
from costume_contest.config import get_settings
from costume_contest.services.blob_storage import get_blob_storage
from costume_contest.version import APP_VERSION
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "error", "detail": "Database connection failed"},
        )

    storage_status = "ready" if get_blob_storage().root.is_dir() else "missing"

    return {
        "status": "ok",
        "database": "connected",
        "image_storage": storage_status,
    }


@router.get("/status")
async def contest_status():
    """Version, environment and contest rule settings, for display on the frontend."""
    settings = get_settings()
    return {
        "version": APP_VERSION,
        "environment": settings.environment,
        "admin_configured": settings.admin_configured,
        "finalist_count": settings.finalist_count,
        "require_first_round_for_finals": settings.require_first_round_for_finals,
    }
