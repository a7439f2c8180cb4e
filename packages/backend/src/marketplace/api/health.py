"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running and the
database answers. Returns 503 when it doesn't, so load balancers can
take the instance out of rotation.
"""

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace import __version__
from marketplace.api.deps import get_settings
from marketplace.config import Settings
from marketplace.db.engine import get_db

logger = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health_check(
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings),
):
    """Check server health and database connectivity."""
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.warning("health.database_unavailable", error=str(e))
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "timestamp": timestamp,
                "environment": config.environment,
                "version": __version__,
                "error": "Database connection failed",
            },
        )

    return {
        "status": "healthy",
        "timestamp": timestamp,
        "environment": config.environment,
        "version": __version__,
    }
