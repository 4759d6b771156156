"""
Cross-season comparison.

Seasons are aligned by game index rather than by date: "as of game N" means
the first N games of each season in game-number order.
"""

from typing import Dict, Iterable, List, Optional
from scoreboard.database.models import Game, GameScore, Tournament
from scoreboard.services.calculation_service import (
    PlayerStanding,
    compute_standings,
    collect_roster,
    group_scores_by_game,
    replay_order,
    standing_for,
)


def _created_key(tournament: Tournament):
    created = tournament.created_at
    return (created.timestamp() if created is not None else float("-inf"), tournament.id or 0)


def order_tournaments(tournaments: Iterable[Tournament]) -> List[Tournament]:
    """Sort tournaments oldest first by creation time (id breaks ties)."""
    return sorted(tournaments, key=_created_key)


def tournament_positions(tournaments: Iterable[Tournament]) -> Dict[int, int]:
    """Map tournament_id -> position in the season sequence (0 = oldest)."""
    return {t.id: index for index, t in enumerate(order_tournaments(tournaments))}


def find_previous_tournament(
    tournaments: Iterable[Tournament],
    tournament_id: int
) -> Optional[Tournament]:
    """
    Find the season created immediately before the given one.

    Returns:
        The previous Tournament, or None when the id is unknown or the
        tournament is the earliest season
    """
    ordered = order_tournaments(tournaments)
    for index, tournament in enumerate(ordered):
        if tournament.id == tournament_id:
            return ordered[index - 1] if index > 0 else None
    return None


def season_games(games: Iterable[Game], tournament_id: int) -> List[Game]:
    """Games of one tournament in replay order."""
    return replay_order(g for g in games if g.tournament_id == tournament_id)


def cumulative_series(
    games: List[Game],
    scores: Iterable[GameScore],
    player_ids: Iterable[int]
) -> Dict[int, List[int]]:
    """
    Cumulative points per player after each game.

    Args:
        games: Games of one season, already in replay order
        scores: Score rows
        player_ids: Roster

    Returns:
        Dict mapping player_id -> list where entry i is the total after game i+1
    """
    by_game = group_scores_by_game(scores)
    running = {player_id: 0 for player_id in player_ids}
    series: Dict[int, List[int]] = {player_id: [] for player_id in player_ids}

    for game in games:
        for score in by_game.get(game.id, []):
            if score.player_id in running:
                running[score.player_id] += score.points or 0
        for player_id in running:
            series[player_id].append(running[player_id])

    return series


def build_progression(
    current: Dict[int, List[int]],
    previous: Dict[int, List[int]],
    player_ids: Iterable[int]
) -> List[Dict]:
    """
    Checkpoint-by-checkpoint points for the current and previous season.

    Past the current season's last game the current line is projected
    linearly from the player's average points per game so far. The
    projection starts at the last played checkpoint so the two lines join.

    Returns:
        List of {"game_number", "players": [{player_id, current, previous, projected}]}
    """
    player_ids = list(player_ids)
    current_length = max((len(v) for v in current.values()), default=0)
    previous_length = max((len(v) for v in previous.values()), default=0)

    progression = []
    for checkpoint in range(1, max(current_length, previous_length) + 1):
        entries = []
        for player_id in player_ids:
            current_series = current.get(player_id, [])
            previous_series = previous.get(player_id, [])
            current_value = current_series[checkpoint - 1] if checkpoint <= len(current_series) else None
            previous_value = previous_series[checkpoint - 1] if checkpoint <= len(previous_series) else None

            projected = None
            if current_series and checkpoint >= len(current_series):
                played = len(current_series)
                total = current_series[-1]
                projected = round(total + (total / played) * (checkpoint - played), 1)

            entries.append({
                "player_id": player_id,
                "current": current_value,
                "previous": previous_value,
                "projected": projected,
            })
        progression.append({"game_number": checkpoint, "players": entries})

    return progression


def _difference_row(player_id: int, current: PlayerStanding, previous: PlayerStanding) -> Dict:
    return {
        "player_id": player_id,
        "current_points": current.total_points,
        "previous_points": previous.total_points,
        "points_difference": current.total_points - previous.total_points,
        "current_wins": current.wins,
        "previous_wins": previous.wins,
        "wins_difference": current.wins - previous.wins,
        "current_longest_road": current.longest_road_count,
        "previous_longest_road": previous.longest_road_count,
        "longest_road_difference": current.longest_road_count - previous.longest_road_count,
        "current_largest_army": current.largest_army_count,
        "previous_largest_army": previous.largest_army_count,
        "largest_army_difference": current.largest_army_count - previous.largest_army_count,
    }


def compare_seasons(
    tournaments: Iterable[Tournament],
    tournament_id: int,
    games: Iterable[Game],
    scores: Iterable[GameScore],
    player_ids: Iterable[int] = (),
    as_of: Optional[int] = None
) -> Optional[Dict]:
    """
    Compare a season against the one before it, as of game N.

    When the previous season has fewer than N games, whatever it has is
    used; previous_games_used tells the caller how many that was.

    Args:
        tournaments: Every tournament
        tournament_id: The season being viewed
        games: Game rows (must include both seasons)
        scores: Score rows (must include both seasons)
        player_ids: Roster
        as_of: Cutoff game count; defaults to games played in the current season

    Returns:
        Comparison dict, or None if there is no previous season to compare with
    """
    tournaments = list(tournaments)
    previous_tournament = find_previous_tournament(tournaments, tournament_id)
    if previous_tournament is None:
        return None

    games = list(games)
    scores = list(scores)
    current_games = season_games(games, tournament_id)
    previous_games = season_games(games, previous_tournament.id)

    cutoff = len(current_games) if as_of is None else max(as_of, 0)
    current_slice = current_games[:cutoff]
    previous_slice = previous_games[:cutoff]

    in_scope = {g.id for g in current_games} | {g.id for g in previous_games}
    roster = collect_roster(player_ids, [s for s in scores if s.game_id in in_scope])

    current_standings = compute_standings(current_slice, scores, roster)
    previous_standings = compute_standings(previous_slice, scores, roster)

    players = [
        _difference_row(
            player_id,
            standing_for(current_standings, player_id),
            standing_for(previous_standings, player_id),
        )
        for player_id in roster
    ]

    progression = build_progression(
        cumulative_series(current_games, scores, roster),
        cumulative_series(previous_games, scores, roster),
        roster,
    )

    return {
        "tournament_id": tournament_id,
        "previous_tournament_id": previous_tournament.id,
        "previous_tournament_name": previous_tournament.name,
        "as_of_game": cutoff,
        "current_games_used": len(current_slice),
        "previous_games_used": len(previous_slice),
        "players": players,
        "progression": progression,
    }
