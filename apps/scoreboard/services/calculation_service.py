"""
Standings calculation service.
Replays games in order and computes per-player statistics.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional
from scoreboard.database.models import Game, GameScore


# ============================================================================
# Replay Helpers
# ============================================================================

def replay_order(
    games: Iterable[Game],
    tournament_order: Optional[Dict[int, int]] = None
) -> List[Game]:
    """
    Sort games into chronological replay order.

    Games are ordered by game number within a tournament. When games from
    several tournaments are replayed together, tournament_order maps each
    tournament id to its position in the season sequence; games without a
    known tournament sort first.

    Args:
        games: Game rows to order
        tournament_order: Optional mapping of tournament_id -> season position

    Returns:
        New list of games in replay order
    """
    tournament_order = tournament_order or {}

    def key(game: Game):
        position = tournament_order.get(game.tournament_id, -1)
        return (position, game.game_number, game.id or 0)

    return sorted(games, key=key)


def group_scores_by_game(scores: Iterable[GameScore]) -> Dict[int, List[GameScore]]:
    """Index score rows by the game they belong to."""
    by_game: Dict[int, List[GameScore]] = defaultdict(list)
    for score in scores:
        by_game[score.game_id].append(score)
    return by_game


def collect_roster(player_ids: Iterable[int], scores: Iterable[GameScore]) -> List[int]:
    """
    Combine the known roster with every player that appears in the scores.

    Returns:
        Sorted list of unique player IDs
    """
    roster = set(player_ids)
    roster.update(score.player_id for score in scores)
    return sorted(roster)


# ============================================================================
# PlayerStanding Class
# ============================================================================

class PlayerStanding:
    """Cumulative statistics for one player within a scope."""

    def __init__(self, player_id: int):
        self.player_id = player_id
        self.games_played = 0
        self.wins = 0
        self.total_points = 0
        self.longest_road_count = 0
        self.largest_army_count = 0
        self.win_streak = 0
        self.best_win_streak = 0

    @property
    def win_rate(self) -> float:
        """Calculate overall win rate."""
        if self.games_played == 0:
            return 0.0
        return self.wins / self.games_played

    @property
    def avg_points(self) -> float:
        """Average points per game played."""
        if self.games_played == 0:
            return 0.0
        return self.total_points / self.games_played

    def record_score(self, score: GameScore) -> None:
        """Add one game's score row to the running totals."""
        self.games_played += 1
        self.total_points += score.points or 0
        if score.longest_road:
            self.longest_road_count += 1
        if score.largest_army:
            self.largest_army_count += 1

    def record_result(self, won: bool) -> None:
        """Update wins and streaks for one game's outcome."""
        if won:
            self.wins += 1
            self.win_streak += 1
            self.best_win_streak = max(self.best_win_streak, self.win_streak)
        else:
            self.win_streak = 0

    def to_dict(self) -> Dict:
        return {
            "player_id": self.player_id,
            "games_played": self.games_played,
            "wins": self.wins,
            "total_points": self.total_points,
            "longest_road_count": self.longest_road_count,
            "largest_army_count": self.largest_army_count,
            "win_streak": self.win_streak,
            "best_win_streak": self.best_win_streak,
            "win_rate": round(self.win_rate, 3),
        }

    def __eq__(self, other) -> bool:
        if not isinstance(other, PlayerStanding):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"PlayerStanding({self.to_dict()!r})"


# ============================================================================
# StandingsTracker Class
# ============================================================================

class StandingsTracker:
    """Tracks standings for all players across a sequence of games."""

    def __init__(self, player_ids: Iterable[int] = ()):
        self.players: Dict[int, PlayerStanding] = {}
        for player_id in player_ids:
            self.get_player(player_id)

    def get_player(self, player_id: int) -> PlayerStanding:
        """Get or create a player's standing."""
        if player_id not in self.players:
            self.players[player_id] = PlayerStanding(player_id)
        return self.players[player_id]

    def process_game(self, game: Game, scores: List[GameScore]) -> None:
        """
        Apply a single game to the running standings.

        Players without a score row in the game are left untouched, except
        for the winner whose win is always counted.

        Args:
            game: Game row providing the winner
            scores: Score rows recorded for this game
        """
        participants = set()
        for score in scores:
            self.get_player(score.player_id).record_score(score)
            participants.add(score.player_id)

        if game.winner_id is not None:
            participants.add(game.winner_id)

        for player_id in sorted(participants):
            self.get_player(player_id).record_result(player_id == game.winner_id)


# ============================================================================
# Stats Aggregation
# ============================================================================

def compute_standings(
    games: Iterable[Game],
    scores: Iterable[GameScore],
    player_ids: Iterable[int] = (),
    tournament_order: Optional[Dict[int, int]] = None
) -> Dict[int, PlayerStanding]:
    """
    Fold games and scores into per-player standings.

    The caller decides the scope by passing only the games of one
    tournament, or every game for global standings. Score rows that
    reference games outside the supplied set are ignored.

    Args:
        games: Game rows in scope
        scores: Score rows (may include rows outside scope)
        player_ids: Roster; every listed player gets a standing even with no games
        tournament_order: Optional season positions used to order global replays

    Returns:
        Dict mapping player_id -> PlayerStanding
    """
    by_game = group_scores_by_game(scores)
    tracker = StandingsTracker(player_ids)

    for game in replay_order(games, tournament_order):
        tracker.process_game(game, by_game.get(game.id, []))

    return tracker.players


def standing_for(standings: Dict[int, PlayerStanding], player_id: int) -> PlayerStanding:
    """Return the player's standing, or a zero-valued one if they have no games."""
    return standings.get(player_id) or PlayerStanding(player_id)


def leaderboard_key(standing: PlayerStanding):
    """Sort key: most points first, then most wins, then lowest player id."""
    return (-standing.total_points, -standing.wins, standing.player_id)


def sort_leaderboard(standings: Dict[int, PlayerStanding]) -> List[PlayerStanding]:
    """Order standings for display; the last entry is the current last place."""
    return sorted(standings.values(), key=leaderboard_key)


def cumulative_points_at(
    games: Iterable[Game],
    scores: Iterable[GameScore],
    player_ids: Iterable[int],
    game_number: int
) -> Dict[int, int]:
    """
    Cumulative points per player after the given game number.

    Args:
        games: Game rows of one tournament
        scores: Score rows
        player_ids: Roster
        game_number: Checkpoint, inclusive

    Returns:
        Dict mapping player_id -> points scored in games 1..game_number
    """
    included = {game.id for game in games if game.game_number <= game_number}
    totals = {player_id: 0 for player_id in player_ids}
    for score in scores:
        if score.game_id in included:
            totals[score.player_id] = totals.get(score.player_id, 0) + (score.points or 0)
    return totals


# ============================================================================
# Positional Aggregation
# ============================================================================

class PositionCounts:
    """How many checkpoints a player spent leading and trailing."""

    def __init__(self, player_id: int):
        self.player_id = player_id
        self.games_at_top = 0
        self.games_at_bottom = 0

    def to_dict(self) -> Dict:
        return {
            "player_id": self.player_id,
            "games_at_top": self.games_at_top,
            "games_at_bottom": self.games_at_bottom,
        }


def compute_positions(
    games: Iterable[Game],
    scores: Iterable[GameScore],
    player_ids: Iterable[int] = ()
) -> Dict[int, PositionCounts]:
    """
    Replay a tournament and count checkpoints spent at the top and bottom.

    After each game the cumulative totals are compared; exactly one player
    is credited with the top and one with the bottom. Ties go to the lowest
    player id.

    Args:
        games: Game rows of one tournament
        scores: Score rows
        player_ids: Roster

    Returns:
        Dict mapping player_id -> PositionCounts
    """
    games = list(games)
    game_ids = {game.id for game in games}
    scores = [score for score in scores if score.game_id in game_ids]
    roster = collect_roster(player_ids, scores)
    positions = {player_id: PositionCounts(player_id) for player_id in roster}
    if not roster:
        return positions

    by_game = group_scores_by_game(scores)
    cumulative = {player_id: 0 for player_id in roster}

    for game in replay_order(games):
        for score in by_game.get(game.id, []):
            cumulative[score.player_id] += score.points or 0

        top = min(roster, key=lambda pid: (-cumulative[pid], pid))
        bottom = min(roster, key=lambda pid: (cumulative[pid], pid))
        positions[top].games_at_top += 1
        positions[bottom].games_at_bottom += 1

    return positions


def rank_positions(positions: Dict[int, PositionCounts], field: str) -> List[Dict]:
    """
    Rank players by a position count, highest first.

    Args:
        positions: Output of compute_positions
        field: "games_at_top" or "games_at_bottom"

    Returns:
        List of {"rank", "player_id", "value"} dicts, rank 1 = highest count
    """
    ordered = sorted(positions.values(), key=lambda p: (-getattr(p, field), p.player_id))
    return [
        {"rank": index, "player_id": p.player_id, "value": getattr(p, field)}
        for index, p in enumerate(ordered, 1)
    ]
