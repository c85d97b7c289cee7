# baseline_api/api/routers/health.py

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from baseline_api.api.dependencies import get_db
from baseline_api.config.settings import get_settings

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    """Liveness with correlation ID from request state."""
    settings = get_settings()
    return {
        "status": "ok",
        "correlation_id": request.state.correlation_id,
        "environment": settings.environment,
        "version": settings.version,
    }


@router.get("/health/ready")
async def ready(request: Request, session: Annotated[AsyncSession, Depends(get_db)]):
    """Readiness: the database answers and the entity registry was built."""
    await session.execute(text("SELECT 1"))
    return {
        "status": "ready",
        "entities": len(request.app.state.entity_registry),
        "correlation_id": request.state.correlation_id,
    }
