"""Health check and keep-alive route handlers."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from scoreboard.database.db import get_db_session
from scoreboard.models.schemas import HealthResponse
from scoreboard.services import data_service
from scoreboard.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/health", response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Service status
    """
    return {"status": "healthy", "message": "API is running"}


@router.get("/api/keep-alive")
async def keep_alive(session: AsyncSession = Depends(get_db_session)):
    """
    Run a trivial query so an idle hosted database is not paused.

    Returns:
        dict: Success flag, timestamp and player count
    """
    try:
        player_count = await data_service.ping(session)
        timestamp = utcnow().isoformat()
        logger.info(f"Keep-alive successful at {timestamp}")
        return {
            "success": True,
            "message": "Database keep-alive successful",
            "timestamp": timestamp,
            "player_count": player_count,
        }
    except Exception as e:
        logger.error(f"Keep-alive error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to ping database: {str(e)}")
