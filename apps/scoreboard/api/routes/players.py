"""Player route handlers."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from scoreboard.database.db import get_db_session
from scoreboard.services import data_service

router = APIRouter()


@router.get("/api/players")
async def list_players(session: AsyncSession = Depends(get_db_session)):
    """List every player on the roster, ordered by name."""
    try:
        return await data_service.list_players(session)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error loading players: {str(e)}")
