"""Game recording and history route handlers."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from scoreboard.api.routes import limiter, ADMIN_RATE_LIMIT
from scoreboard.api.auth_dependencies import verify_admin_password
from scoreboard.database.db import get_db_session
from scoreboard.models.schemas import RecordGameRequest, DeleteGameRequest
from scoreboard.services import data_service
from scoreboard.services.websocket_manager import get_websocket_manager

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/games")
async def get_game_history(
    tournament_id: Optional[int] = None,
    session: AsyncSession = Depends(get_db_session),
):
    """Games newest first with every player's score."""
    try:
        return await data_service.get_game_history(session, tournament_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error loading games: {str(e)}")


@router.post("/api/games")
async def record_game(
    game_request: RecordGameRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Record a game in the active tournament.

    Request body:
        {
            "scores": [
                {"player_id": 1, "points": 10, "longest_road": true, "largest_army": false},
                {"player_id": 2, "points": 7},
                ...
            ],
            "date": "2025-03-14"   // Optional, defaults to today
        }

    Exactly one player must reach the win threshold; that player is the winner.
    """
    try:
        game = await data_service.record_game(session, game_request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error recording game: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error recording game: {str(e)}")

    manager = get_websocket_manager()
    record = {"id": game["id"], "tournament_id": game["tournament_id"]}
    await manager.broadcast("games", "INSERT", record)
    await manager.broadcast("game_scores", "INSERT", {"game_id": game["id"]})
    await manager.broadcast("tournament_player_stats", "UPDATE", {"tournament_id": game["tournament_id"]})
    return game


@router.post("/api/games/delete")
@limiter.limit(ADMIN_RATE_LIMIT)
async def delete_game(
    request: Request,
    payload: DeleteGameRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Delete a game and its scores (admin only).

    Request body:
        {"game_id": 12, "password": "..."}
    """
    verify_admin_password(payload.password)
    try:
        deleted = await data_service.delete_game(session, payload.game_id)
    except Exception as e:
        logger.error(f"Error deleting game {payload.game_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error deleting game: {str(e)}")

    if not deleted:
        raise HTTPException(status_code=404, detail="Game not found")

    manager = get_websocket_manager()
    await manager.broadcast("game_scores", "DELETE", {"game_id": payload.game_id})
    await manager.broadcast("games", "DELETE", {"id": payload.game_id})
    await manager.broadcast("tournament_player_stats", "UPDATE", None)
    return {"ok": True}
