from datetime import datetime, timezone
from typing import Dict, Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from sqlalchemy import text

from ...dependencies import get_db
from ....config import Settings, get_settings

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
) -> Dict[str, Any]:
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        raise HTTPException(
            status_code=503,
            detail={
                "status": "unhealthy",
                "database": "unhealthy",
                "error": "Database connectivity failed",
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
        )

    storage = request.app.state.object_storage
    return {
        "status": "healthy",
        "service": "Newsroom API",
        "version": "0.1.0",
        "environment": "development" if settings.debug else "production",
        "database": "healthy",
        "object_storage": "enabled" if storage.enabled else "disabled",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
