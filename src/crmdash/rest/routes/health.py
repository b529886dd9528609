"""Health check endpoints."""

from datetime import UTC, datetime

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from crmdash.auth.deps import SettingsDep

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/health/ready")
async def ready(request: Request) -> JSONResponse:
    try:
        async with request.app.state.db.session_factory() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning("readiness_check_failed", error=str(exc))
        return JSONResponse(status_code=503, content={"status": "unavailable", "error": type(exc).__name__})
    return JSONResponse(content={"status": "ready"})


@router.get("/api/health")
async def api_health(settings: SettingsDep) -> dict:
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "environment": settings.environment,
        "apiWorking": True,
    }
