"""Tournament route handlers."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from scoreboard.api.routes import limiter, ADMIN_RATE_LIMIT
from scoreboard.api.auth_dependencies import verify_admin_password
from scoreboard.database.db import get_db_session
from scoreboard.models.schemas import CreateTournamentRequest
from scoreboard.services import data_service
from scoreboard.services.websocket_manager import get_websocket_manager

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/tournaments")
async def list_tournaments(session: AsyncSession = Depends(get_db_session)):
    """List all tournaments, newest first."""
    try:
        tournaments = await data_service.list_tournaments(session)
        return {"tournaments": tournaments}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error loading tournaments: {str(e)}")


@router.get("/api/tournaments/active")
async def get_active_tournament(session: AsyncSession = Depends(get_db_session)):
    """Get the tournament new games are recorded into."""
    tournament = await data_service.get_active_tournament(session)
    if tournament is None:
        raise HTTPException(status_code=404, detail="No active tournament")
    return tournament


@router.get("/api/tournaments/{tournament_id}")
async def get_tournament(tournament_id: int, session: AsyncSession = Depends(get_db_session)):
    """Get a tournament by ID."""
    tournament = await data_service.get_tournament(session, tournament_id)
    if tournament is None:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


@router.post("/api/tournaments")
@limiter.limit(ADMIN_RATE_LIMIT)
async def create_tournament(
    request: Request,
    payload: CreateTournamentRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Start a new tournament (admin only).

    Request body:
        {
            "name": "Catan 3.0",
            "total_games": 20,     // Optional, defaults to 20
            "prize_pool": 10000,   // Optional, defaults to 10000
            "password": "..."
        }

    The previously active tournament is marked completed.
    """
    verify_admin_password(payload.password)
    try:
        tournament = await data_service.create_tournament(
            session=session,
            name=payload.name,
            total_games=payload.total_games,
            prize_pool=payload.prize_pool,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating tournament: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error creating tournament: {str(e)}")

    manager = get_websocket_manager()
    await manager.broadcast("tournaments", "INSERT", {"id": tournament["id"]})
    await manager.broadcast("tournament_player_stats", "INSERT", {"tournament_id": tournament["id"]})
    return {"tournament": tournament}
