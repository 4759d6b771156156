"""
Pydantic models for API request/response validation.
"""

from typing import Optional, List
from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    message: str


class CreateTournamentRequest(BaseModel):
    """Request to start a new tournament (admin only)."""

    name: str
    total_games: Optional[int] = Field(default=None, ge=1)
    prize_pool: Optional[int] = Field(default=None, ge=0)
    password: Optional[str] = None


class PlayerScoreEntry(BaseModel):
    """One player's line on a game's score sheet."""

    player_id: int
    points: int = Field(ge=0)
    longest_road: bool = False
    largest_army: bool = False


class RecordGameRequest(BaseModel):
    """Request to record a game in the active tournament."""

    scores: List[PlayerScoreEntry]
    date: Optional[str] = None  # ISO or M/D/YYYY; defaults to today


class DeleteGameRequest(BaseModel):
    """Request to delete a game (admin only)."""

    game_id: int
    password: Optional[str] = None
