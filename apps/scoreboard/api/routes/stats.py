"""Leaderboard, positional and season-comparison route handlers."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from scoreboard.database.db import get_db_session
from scoreboard.services import data_service

logger = logging.getLogger(__name__)
router = APIRouter()


async def _resolve_tournament(session: AsyncSession, tournament_id: Optional[int]) -> dict:
    """Look up the requested tournament, or the active one when none is given."""
    if tournament_id is None:
        tournament = await data_service.get_active_tournament(session)
        if tournament is None:
            raise HTTPException(status_code=404, detail="No active tournament")
        return tournament

    tournament = await data_service.get_tournament(session, tournament_id)
    if tournament is None:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


@router.get("/api/stats/standings")
async def get_standings(
    tournament_id: Optional[int] = None,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Leaderboard for a tournament (with lose chances), or across every
    tournament when tournament_id is omitted.
    """
    try:
        standings = await data_service.get_standings(session, tournament_id)
    except Exception as e:
        logger.error(f"Error computing standings: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error computing standings: {str(e)}")

    if standings is None:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return standings


@router.get("/api/stats/positions")
async def get_positions(
    tournament_id: Optional[int] = None,
    session: AsyncSession = Depends(get_db_session),
):
    """Games each player spent in first and last place (active tournament by default)."""
    try:
        tournament = await _resolve_tournament(session, tournament_id)
        return await data_service.get_positions(session, tournament["id"])
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error computing positions: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error computing positions: {str(e)}")


@router.get("/api/stats/checkpoint")
async def get_checkpoint(
    game_number: int = Query(..., ge=0),
    tournament_id: Optional[int] = None,
    session: AsyncSession = Depends(get_db_session),
):
    """Cumulative points per player after the given game number."""
    try:
        tournament = await _resolve_tournament(session, tournament_id)
        points = await data_service.get_checkpoint(session, tournament["id"], game_number)
        return {"tournament_id": tournament["id"], "game_number": game_number, "points": points}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error computing checkpoint: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error computing checkpoint: {str(e)}")


@router.get("/api/stats/comparison")
async def get_season_comparison(
    tournament_id: Optional[int] = None,
    as_of: Optional[int] = Query(default=None, ge=0),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Compare a tournament with the previous one, aligned by game count.

    Returns {"comparison": null} when there is no earlier tournament.
    """
    try:
        tournament = await _resolve_tournament(session, tournament_id)
        comparison = await data_service.get_season_comparison(session, tournament["id"], as_of)
        return {"comparison": comparison}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error comparing seasons: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error comparing seasons: {str(e)}")
