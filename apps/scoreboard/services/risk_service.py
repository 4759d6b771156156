"""
Lose-chance estimation for the leaderboard.

A display heuristic, not a calibrated probability: it blends a player's
distance from last place with how much of the tournament is left.
"""

import math
from typing import Dict
from scoreboard.services.calculation_service import PlayerStanding, sort_leaderboard
from scoreboard.utils.constants import (
    AVERAGE_SWING_PER_GAME,
    LAST_PLACE_RISK,
    SAFE_LEAD_RISK,
    RANK_PENALTY,
    CONFIDENCE_RAMP,
    MIN_LOSE_CHANCE,
    MAX_LOSE_CHANCE,
)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def equal_chance(player_count: int) -> float:
    """Chance of finishing last when nothing is known yet."""
    return 100 / max(player_count, 1)


def calculate_lose_chance(
    total_points: int,
    rank: int,
    games_played: int,
    total_games: int,
    player_count: int,
    last_place_points: int,
) -> int:
    """
    Estimate a player's chance of finishing last, as an integer percentage.

    Args:
        total_points: The player's cumulative points
        rank: The player's leaderboard rank (1 = leader, player_count = last)
        games_played: Games recorded so far in the tournament
        total_games: The tournament's configured game target
        player_count: Number of players being ranked
        last_place_points: Cumulative points of the current last place

    Returns:
        Percentage in [MIN_LOSE_CHANCE, MAX_LOSE_CHANCE] while games remain;
        exactly 100 or 0 once the tournament is over; equal odds before any game
    """
    if games_played <= 0:
        return round_half_up(equal_chance(player_count))

    if games_played >= total_games:
        return 100 if rank == player_count else 0

    games_remaining = total_games - games_played
    gap_from_last = max(total_points - last_place_points, 0)
    total_potential_swing = games_remaining * AVERAGE_SWING_PER_GAME
    safety_margin = min(gap_from_last / max(total_potential_swing, 1), 1)

    base_chance = LAST_PLACE_RISK - safety_margin * (LAST_PLACE_RISK - SAFE_LEAD_RISK)
    base_chance += ((rank - 1) / max(player_count - 1, 1)) * RANK_PENALTY

    confidence = min((games_played / total_games) * CONFIDENCE_RAMP, 1)
    baseline = equal_chance(player_count)
    adjusted = baseline + (base_chance - baseline) * confidence

    return round_half_up(min(max(adjusted, MIN_LOSE_CHANCE), MAX_LOSE_CHANCE))


def calculate_lose_chances(
    standings: Dict[int, PlayerStanding],
    games_played: int,
    total_games: int,
) -> Dict[int, int]:
    """
    Lose chance for every player in a tournament's standings.

    Ranks come from the leaderboard order (points, then wins, then id), so
    the terminal 100% goes to exactly one player.

    Returns:
        Dict mapping player_id -> lose chance percentage
    """
    ordered = sort_leaderboard(standings)
    if not ordered:
        return {}

    player_count = len(ordered)
    last_place_points = min(s.total_points for s in ordered)
    return {
        standing.player_id: calculate_lose_chance(
            total_points=standing.total_points,
            rank=rank,
            games_played=games_played,
            total_games=total_games,
            player_count=player_count,
            last_place_points=last_place_points,
        )
        for rank, standing in enumerate(ordered, 1)
    }
