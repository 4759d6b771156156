"""
Data service layer for database operations.
Loads snapshots for the stats calculations and performs all writes.
"""

import logging
from typing import List, Dict, Optional, TYPE_CHECKING
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func

if TYPE_CHECKING:
    from scoreboard.models.schemas import RecordGameRequest
from scoreboard.database.models import (
    Player, Tournament, TournamentStatus, Game, GameScore,
    TournamentPlayerStats, PlayerStats,
)
from scoreboard.services import calculation_service, comparison_service, risk_service
from scoreboard.utils.constants import WIN_THRESHOLD, DEFAULT_TOTAL_GAMES, DEFAULT_PRIZE_POOL
from scoreboard.utils.datetime_utils import parse_game_date

logger = logging.getLogger(__name__)

#
# Helper functions
#

def _tournament_to_dict(tournament: Tournament) -> Dict:
    status = tournament.status
    return {
        "id": tournament.id,
        "name": tournament.name,
        "total_games": tournament.total_games,
        "prize_pool": tournament.prize_pool,
        "status": status.value if isinstance(status, TournamentStatus) else status,
        "created_at": tournament.created_at.isoformat() if tournament.created_at else None,
    }


def _game_to_dict(game: Game) -> Dict:
    return {
        "id": game.id,
        "tournament_id": game.tournament_id,
        "game_number": game.game_number,
        "winner_id": game.winner_id,
        "date": game.date.isoformat() if game.date else None,
        "created_at": game.created_at.isoformat() if game.created_at else None,
    }


def _player_names(players: List[Player]) -> Dict[int, str]:
    return {p.id: p.name for p in players}


#
# Players
#

async def create_player(session: AsyncSession, name: str) -> Dict:
    """Add a player to the roster."""
    name = (name or "").strip()
    if not name:
        raise ValueError("Player name is required")

    player = Player(name=name)
    session.add(player)
    await session.commit()
    await session.refresh(player)
    logger.info(f"Created player {player.name} (ID: {player.id})")
    return {"id": player.id, "name": player.name}


async def get_player_by_name(session: AsyncSession, name: str) -> Optional[Dict]:
    result = await session.execute(select(Player).where(Player.name == name.strip()))
    player = result.scalar_one_or_none()
    if not player:
        return None
    return {"id": player.id, "name": player.name}


async def _get_players(session: AsyncSession) -> List[Player]:
    result = await session.execute(select(Player).order_by(Player.name))
    return list(result.scalars().all())


async def list_players(session: AsyncSession) -> List[Dict]:
    """List the roster ordered by name."""
    players = await _get_players(session)
    return [
        {
            "id": p.id,
            "name": p.name,
            "created_at": p.created_at.isoformat() if p.created_at else None,
        }
        for p in players
    ]


async def ping(session: AsyncSession) -> int:
    """Run a trivial query so the database stays warm. Returns the player count."""
    result = await session.execute(select(func.count(Player.id)))
    return result.scalar() or 0


#
# Tournaments
#

async def _get_tournaments(session: AsyncSession) -> List[Tournament]:
    result = await session.execute(select(Tournament))
    return list(result.scalars().all())


async def list_tournaments(session: AsyncSession) -> List[Dict]:
    """List tournaments, newest first."""
    result = await session.execute(
        select(Tournament).order_by(Tournament.created_at.desc(), Tournament.id.desc())
    )
    return [_tournament_to_dict(t) for t in result.scalars().all()]


async def get_tournament(session: AsyncSession, tournament_id: int) -> Optional[Dict]:
    """Get a tournament by ID."""
    result = await session.execute(select(Tournament).where(Tournament.id == tournament_id))
    tournament = result.scalar_one_or_none()
    if not tournament:
        return None
    return _tournament_to_dict(tournament)


async def _get_active_tournament(session: AsyncSession) -> Optional[Tournament]:
    result = await session.execute(
        select(Tournament)
        .where(Tournament.status == TournamentStatus.ACTIVE)
        .order_by(Tournament.created_at.desc(), Tournament.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_active_tournament(session: AsyncSession) -> Optional[Dict]:
    """Get the tournament games are currently recorded into."""
    tournament = await _get_active_tournament(session)
    return _tournament_to_dict(tournament) if tournament else None


async def create_tournament(
    session: AsyncSession,
    name: str,
    total_games: Optional[int] = None,
    prize_pool: Optional[int] = None,
) -> Dict:
    """
    Start a new tournament.

    The previously active tournament is marked completed, and every player
    gets a zero-valued standing in the new one.

    Raises:
        ValueError: If the name is empty or already taken, or total_games < 1
    """
    name = (name or "").strip()
    if not name:
        raise ValueError("Tournament name is required")

    total_games = total_games or DEFAULT_TOTAL_GAMES
    if total_games < 1:
        raise ValueError("total_games must be at least 1")

    existing = await session.execute(select(Tournament.id).where(Tournament.name == name))
    if existing.scalar_one_or_none() is not None:
        raise ValueError("A tournament with this name already exists")

    await session.execute(
        update(Tournament)
        .where(Tournament.status == TournamentStatus.ACTIVE)
        .values(status=TournamentStatus.COMPLETED)
    )

    tournament = Tournament(
        name=name,
        total_games=total_games,
        prize_pool=prize_pool if prize_pool is not None else DEFAULT_PRIZE_POOL,
        status=TournamentStatus.ACTIVE,
    )
    session.add(tournament)
    await session.flush()

    players = await _get_players(session)
    for player in players:
        session.add(TournamentPlayerStats(tournament_id=tournament.id, player_id=player.id))

    await session.commit()
    await session.refresh(tournament)
    logger.info(f"Created tournament {tournament.name} (ID: {tournament.id}) with {len(players)} players")
    return _tournament_to_dict(tournament)


#
# Snapshots
#

async def load_snapshot(session: AsyncSession, tournament_id: Optional[int] = None) -> Dict:
    """
    Fetch the rows the stats calculations run on.

    Args:
        session: Database session
        tournament_id: Restrict games and scores to one tournament (all if None)

    Returns:
        Dict with "players", "tournaments", "games" and "scores" ORM lists
    """
    players = await _get_players(session)
    tournaments = await _get_tournaments(session)

    games_query = select(Game)
    scores_query = select(GameScore)
    if tournament_id is not None:
        games_query = games_query.where(Game.tournament_id == tournament_id)
        scores_query = (
            scores_query.join(Game, GameScore.game_id == Game.id)
            .where(Game.tournament_id == tournament_id)
        )

    games = (await session.execute(games_query.order_by(Game.game_number))).scalars().all()
    scores = (await session.execute(scores_query)).scalars().all()

    return {
        "players": players,
        "tournaments": tournaments,
        "games": list(games),
        "scores": list(scores),
    }


#
# Games
#

def _validate_scores(game_request: 'RecordGameRequest', roster_ids: List[int]) -> int:
    """
    Check a game's score sheet and return the winner's player ID.

    Raises:
        ValueError: If the sheet does not cover the roster exactly, nobody or
            more than one player reached the win threshold, or an achievement
            is held by more than one player
    """
    entry_ids = [entry.player_id for entry in game_request.scores]
    if len(entry_ids) != len(set(entry_ids)):
        raise ValueError("Each player can only have one score per game")

    unknown = sorted(set(entry_ids) - set(roster_ids))
    if unknown:
        raise ValueError(f"Unknown player IDs: {unknown}")

    missing = sorted(set(roster_ids) - set(entry_ids))
    if missing:
        raise ValueError(f"Missing scores for player IDs: {missing}")

    qualifying = [entry for entry in game_request.scores if entry.points >= WIN_THRESHOLD]
    if not qualifying:
        raise ValueError(f"Someone must reach {WIN_THRESHOLD} points to win!")
    if len(qualifying) > 1:
        raise ValueError(f"Only one player can reach {WIN_THRESHOLD} points in a game")

    if sum(1 for entry in game_request.scores if entry.longest_road) > 1:
        raise ValueError("Only one player can hold Longest Road")
    if sum(1 for entry in game_request.scores if entry.largest_army) > 1:
        raise ValueError("Only one player can hold Largest Army")

    return qualifying[0].player_id


async def record_game(session: AsyncSession, game_request: 'RecordGameRequest') -> Dict:
    """
    Record a game and its scores in the active tournament.

    The game row, its score rows and the rebuilt standings are committed
    together.

    Args:
        session: Database session
        game_request: RecordGameRequest schema with one entry per player

    Returns:
        Created game dict (with scores)

    Raises:
        ValueError: If there is no active tournament, it is already full,
            or the score sheet is invalid
    """
    tournament = await _get_active_tournament(session)
    if tournament is None:
        raise ValueError("No active tournament")

    players = await _get_players(session)
    winner_id = _validate_scores(game_request, [p.id for p in players])

    result = await session.execute(
        select(func.count(Game.id), func.max(Game.game_number))
        .where(Game.tournament_id == tournament.id)
    )
    game_count, last_number = result.one()
    if game_count >= tournament.total_games:
        raise ValueError(f"{tournament.name} is complete! Create a new tournament to continue.")

    game = Game(
        tournament_id=tournament.id,
        game_number=(last_number or 0) + 1,
        winner_id=winner_id,
        date=parse_game_date(game_request.date),
    )
    session.add(game)
    await session.flush()

    for entry in game_request.scores:
        session.add(GameScore(
            game_id=game.id,
            player_id=entry.player_id,
            points=entry.points,
            longest_road=entry.longest_road,
            largest_army=entry.largest_army,
        ))
    await session.flush()

    await _rebuild_stats(session, tournament.id)
    await session.commit()
    await session.refresh(game)
    logger.info(
        f"Recorded game {game.game_number} in {tournament.name} (winner: player {winner_id})"
    )

    data = _game_to_dict(game)
    data["scores"] = [entry.model_dump() for entry in game_request.scores]
    return data


async def delete_game(session: AsyncSession, game_id: int) -> bool:
    """
    Delete a game and its scores, then rebuild standings.

    Returns:
        True if deleted, False if the game was not found
    """
    result = await session.execute(select(Game).where(Game.id == game_id))
    game = result.scalar_one_or_none()
    if not game:
        return False

    tournament_id = game.tournament_id
    # Scores reference the game, so they go first
    await session.execute(delete(GameScore).where(GameScore.game_id == game_id))
    await session.execute(delete(Game).where(Game.id == game_id))
    await session.flush()

    await _rebuild_stats(session, tournament_id)
    await session.commit()
    logger.info(f"Deleted game {game_id} (tournament {tournament_id})")
    return True


async def get_game_history(session: AsyncSession, tournament_id: Optional[int] = None) -> List[Dict]:
    """
    Games newest first, each with its score rows and player names.
    """
    snapshot = await load_snapshot(session, tournament_id)
    names = _player_names(snapshot["players"])
    by_game = calculation_service.group_scores_by_game(snapshot["scores"])
    positions = comparison_service.tournament_positions(snapshot["tournaments"])

    games = calculation_service.replay_order(snapshot["games"], positions)
    history = []
    for game in reversed(games):
        data = _game_to_dict(game)
        data["winner_name"] = names.get(game.winner_id, "Unknown")
        data["scores"] = [
            {
                "player_id": s.player_id,
                "name": names.get(s.player_id, "Unknown"),
                "points": s.points,
                "longest_road": s.longest_road,
                "largest_army": s.largest_army,
            }
            for s in sorted(by_game.get(game.id, []), key=lambda s: (-s.points, s.player_id))
        ]
        history.append(data)
    return history


#
# Stats
#

async def get_standings(session: AsyncSession, tournament_id: Optional[int] = None) -> Optional[Dict]:
    """
    Leaderboard for one tournament, or across every tournament if tournament_id is None.

    Tournament leaderboards include each player's lose chance.

    Returns:
        Dict with tournament info and ranked standings, or None if the
        tournament does not exist
    """
    snapshot = await load_snapshot(session, tournament_id)
    tournament = None
    if tournament_id is not None:
        tournament = next((t for t in snapshot["tournaments"] if t.id == tournament_id), None)
        if tournament is None:
            return None

    names = _player_names(snapshot["players"])
    standings = calculation_service.compute_standings(
        snapshot["games"],
        snapshot["scores"],
        names.keys(),
        comparison_service.tournament_positions(snapshot["tournaments"]),
    )

    games_played = len(snapshot["games"])
    lose_chances = {}
    if tournament is not None:
        lose_chances = risk_service.calculate_lose_chances(
            standings, games_played, tournament.total_games
        )

    rows = []
    for rank, standing in enumerate(calculation_service.sort_leaderboard(standings), 1):
        row = standing.to_dict()
        row["rank"] = rank
        row["name"] = names.get(standing.player_id, "Unknown")
        if tournament is not None:
            row["lose_chance"] = lose_chances.get(standing.player_id)
        rows.append(row)

    return {
        "tournament": _tournament_to_dict(tournament) if tournament else None,
        "games_played": games_played,
        "games_remaining": max(tournament.total_games - games_played, 0) if tournament else None,
        "standings": rows,
    }


async def get_positions(session: AsyncSession, tournament_id: int) -> Dict:
    """Time spent leading and trailing the tournament, ranked."""
    snapshot = await load_snapshot(session, tournament_id)
    names = _player_names(snapshot["players"])
    positions = calculation_service.compute_positions(
        snapshot["games"], snapshot["scores"], names.keys()
    )

    def named(entries: List[Dict]) -> List[Dict]:
        for entry in entries:
            entry["name"] = names.get(entry["player_id"], "Unknown")
        return entries

    return {
        "tournament_id": tournament_id,
        "games_at_top": named(calculation_service.rank_positions(positions, "games_at_top")),
        "games_at_bottom": named(calculation_service.rank_positions(positions, "games_at_bottom")),
    }


async def get_checkpoint(session: AsyncSession, tournament_id: int, game_number: int) -> List[Dict]:
    """Cumulative points per player after the given game, highest first."""
    snapshot = await load_snapshot(session, tournament_id)
    names = _player_names(snapshot["players"])
    totals = calculation_service.cumulative_points_at(
        snapshot["games"], snapshot["scores"], names.keys(), game_number
    )
    rows = [
        {"player_id": player_id, "name": names.get(player_id, "Unknown"), "points": points}
        for player_id, points in totals.items()
    ]
    return sorted(rows, key=lambda r: (-r["points"], r["player_id"]))


async def get_season_comparison(
    session: AsyncSession,
    tournament_id: int,
    as_of: Optional[int] = None
) -> Optional[Dict]:
    """
    Compare a tournament with the one created before it.

    Returns:
        Comparison dict with player names, or None when there is nothing to compare
    """
    snapshot = await load_snapshot(session)
    names = _player_names(snapshot["players"])
    comparison = comparison_service.compare_seasons(
        snapshot["tournaments"],
        tournament_id,
        snapshot["games"],
        snapshot["scores"],
        names.keys(),
        as_of,
    )
    if comparison is None:
        return None

    for row in comparison["players"]:
        row["name"] = names.get(row["player_id"], "Unknown")
    return comparison


#
# Cached standings
#

def _stats_values(standing: calculation_service.PlayerStanding) -> Dict:
    return {
        "total_games": standing.games_played,
        "wins": standing.wins,
        "total_points": standing.total_points,
        "longest_road_count": standing.longest_road_count,
        "largest_army_count": standing.largest_army_count,
        "win_streak": standing.win_streak,
        "best_win_streak": standing.best_win_streak,
    }


async def _rebuild_stats(session: AsyncSession, tournament_id: Optional[int]) -> None:
    """Replace cached standings with a full recompute. Does not commit."""
    snapshot = await load_snapshot(session)
    player_ids = [p.id for p in snapshot["players"]]
    positions = comparison_service.tournament_positions(snapshot["tournaments"])

    if tournament_id is not None:
        tournament_games = [g for g in snapshot["games"] if g.tournament_id == tournament_id]
        standings = calculation_service.compute_standings(
            tournament_games, snapshot["scores"], player_ids
        )
        await session.execute(
            delete(TournamentPlayerStats).where(TournamentPlayerStats.tournament_id == tournament_id)
        )
        for player_id, standing in standings.items():
            session.add(TournamentPlayerStats(
                tournament_id=tournament_id,
                player_id=player_id,
                **_stats_values(standing),
            ))

    global_standings = calculation_service.compute_standings(
        snapshot["games"], snapshot["scores"], player_ids, positions
    )
    await session.execute(delete(PlayerStats))
    for player_id, standing in global_standings.items():
        session.add(PlayerStats(player_id=player_id, **_stats_values(standing)))

    await session.flush()


async def refresh_cached_stats(session: AsyncSession, tournament_id: Optional[int] = None) -> Dict:
    """
    Rebuild cached standings for one tournament (if given) and globally.

    Returns:
        Dict with player_count and game_count used in the rebuild
    """
    await _rebuild_stats(session, tournament_id)
    await session.commit()

    player_count = (await session.execute(select(func.count(Player.id)))).scalar() or 0
    games_query = select(func.count(Game.id))
    if tournament_id is not None:
        games_query = games_query.where(Game.tournament_id == tournament_id)
    game_count = (await session.execute(games_query)).scalar() or 0

    logger.info(f"Refreshed cached stats (tournament {tournament_id}): {player_count} players, {game_count} games")
    return {"player_count": player_count, "game_count": game_count}
