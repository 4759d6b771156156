"""
Tests for data_service database operations.
Covers tournaments, game recording and deletion, and cached-standings parity.
"""
import pytest
import pytest_asyncio
from sqlalchemy import select
from scoreboard.database.models import (
    Game, GameScore, Tournament, TournamentStatus, TournamentPlayerStats, PlayerStats,
)
from scoreboard.models.schemas import RecordGameRequest, PlayerScoreEntry
from scoreboard.services import data_service

# db_session fixture is provided by conftest.py


def sheet(points, longest_road=None, largest_army=None, game_date=None):
    """Build a RecordGameRequest from {player_id: points}."""
    return RecordGameRequest(
        scores=[
            PlayerScoreEntry(
                player_id=player_id,
                points=value,
                longest_road=player_id == longest_road,
                largest_army=player_id == largest_army,
            )
            for player_id, value in points.items()
        ],
        date=game_date,
    )


@pytest_asyncio.fixture
async def players(db_session):
    """Create a three-player roster; returns the player IDs in creation order."""
    ids = []
    for name in ("Alice", "Bob", "Carol"):
        player = await data_service.create_player(db_session, name)
        ids.append(player["id"])
    return ids


@pytest_asyncio.fixture
async def tournament(db_session, players):
    return await data_service.create_tournament(db_session, "Season 1")


async def cached_tournament_stats(session, tournament_id):
    result = await session.execute(
        select(TournamentPlayerStats).where(TournamentPlayerStats.tournament_id == tournament_id)
    )
    return {row.player_id: row for row in result.scalars().all()}


async def cached_global_stats(session):
    result = await session.execute(select(PlayerStats))
    return {row.player_id: row for row in result.scalars().all()}


# ============================================================================
# Players
# ============================================================================

@pytest.mark.asyncio
async def test_create_and_list_players(db_session, players):
    listed = await data_service.list_players(db_session)
    assert [p["name"] for p in listed] == ["Alice", "Bob", "Carol"]

    found = await data_service.get_player_by_name(db_session, " Bob ")
    assert found == {"id": players[1], "name": "Bob"}
    assert await data_service.get_player_by_name(db_session, "Nobody") is None
    assert await data_service.ping(db_session) == 3


@pytest.mark.asyncio
async def test_create_player_requires_name(db_session):
    with pytest.raises(ValueError, match="Player name is required"):
        await data_service.create_player(db_session, "   ")


# ============================================================================
# Tournaments
# ============================================================================

@pytest.mark.asyncio
async def test_create_tournament_defaults(db_session, players, tournament):
    assert tournament["name"] == "Season 1"
    assert tournament["total_games"] == 20
    assert tournament["prize_pool"] == 10000
    assert tournament["status"] == "active"

    # Every player starts with a zero standing
    stats = await cached_tournament_stats(db_session, tournament["id"])
    assert set(stats) == set(players)
    assert all(s.total_points == 0 and s.wins == 0 for s in stats.values())


@pytest.mark.asyncio
async def test_create_tournament_completes_previous(db_session, tournament):
    second = await data_service.create_tournament(db_session, "Season 2", total_games=5, prize_pool=0)
    assert second["total_games"] == 5
    assert second["prize_pool"] == 0

    first = await data_service.get_tournament(db_session, tournament["id"])
    assert first["status"] == "completed"

    active = await data_service.get_active_tournament(db_session)
    assert active["id"] == second["id"]

    result = await db_session.execute(
        select(Tournament).where(Tournament.status == TournamentStatus.ACTIVE)
    )
    assert len(result.scalars().all()) == 1

    listed = await data_service.list_tournaments(db_session)
    assert {t["id"] for t in listed} == {tournament["id"], second["id"]}


@pytest.mark.asyncio
async def test_create_tournament_validation(db_session, tournament):
    with pytest.raises(ValueError, match="Tournament name is required"):
        await data_service.create_tournament(db_session, "  ")
    with pytest.raises(ValueError, match="already exists"):
        await data_service.create_tournament(db_session, "Season 1")
    with pytest.raises(ValueError, match="at least 1"):
        await data_service.create_tournament(db_session, "Season 2", total_games=-3)


@pytest.mark.asyncio
async def test_get_tournament_not_found(db_session):
    assert await data_service.get_tournament(db_session, 99999) is None
    assert await data_service.get_active_tournament(db_session) is None


# ============================================================================
# Recording games
# ============================================================================

@pytest.mark.asyncio
async def test_record_game(db_session, players, tournament):
    alice, bob, carol = players
    game = await data_service.record_game(
        db_session,
        sheet({alice: 10, bob: 7, carol: 4}, longest_road=alice, largest_army=bob, game_date="2025-03-14"),
    )

    assert game["game_number"] == 1
    assert game["winner_id"] == alice
    assert game["tournament_id"] == tournament["id"]
    assert game["date"] == "2025-03-14"
    assert len(game["scores"]) == 3

    rows = (await db_session.execute(select(GameScore).where(GameScore.game_id == game["id"]))).scalars().all()
    assert {r.player_id: r.points for r in rows} == {alice: 10, bob: 7, carol: 4}

    stats = await cached_tournament_stats(db_session, tournament["id"])
    assert stats[alice].wins == 1
    assert stats[alice].total_points == 10
    assert stats[alice].longest_road_count == 1
    assert stats[bob].largest_army_count == 1
    assert stats[carol].total_games == 1

    second = await data_service.record_game(db_session, sheet({alice: 3, bob: 10, carol: 9}))
    assert second["game_number"] == 2
    assert second["date"] is not None


@pytest.mark.asyncio
async def test_record_game_us_date_format(db_session, players, tournament):
    alice, bob, carol = players
    game = await data_service.record_game(
        db_session, sheet({alice: 10, bob: 7, carol: 4}, game_date="3/14/2025")
    )
    assert game["date"] == "2025-03-14"


@pytest.mark.asyncio
async def test_record_game_without_tournament(db_session, players):
    alice, bob, carol = players
    with pytest.raises(ValueError, match="No active tournament"):
        await data_service.record_game(db_session, sheet({alice: 10, bob: 7, carol: 4}))


@pytest.mark.asyncio
@pytest.mark.parametrize("case,message", [
    ("nobody_wins", "Someone must reach 10 points"),
    ("two_winners", "Only one player can reach 10 points"),
    ("missing_player", "Missing scores for player IDs"),
    ("unknown_player", "Unknown player IDs"),
    ("duplicate_player", "Each player can only have one score per game"),
    ("two_longest_roads", "Only one player can hold Longest Road"),
    ("two_largest_armies", "Only one player can hold Largest Army"),
])
async def test_record_game_validation(db_session, players, tournament, case, message):
    alice, bob, carol = players
    requests = {
        "nobody_wins": sheet({alice: 9, bob: 7, carol: 4}),
        "two_winners": sheet({alice: 10, bob: 11, carol: 4}),
        "missing_player": sheet({alice: 10, bob: 7}),
        "unknown_player": sheet({alice: 10, bob: 7, carol: 4, 999: 2}),
        "duplicate_player": RecordGameRequest(scores=[
            PlayerScoreEntry(player_id=alice, points=10),
            PlayerScoreEntry(player_id=alice, points=3),
            PlayerScoreEntry(player_id=bob, points=7),
            PlayerScoreEntry(player_id=carol, points=4),
        ]),
        "two_longest_roads": RecordGameRequest(scores=[
            PlayerScoreEntry(player_id=alice, points=10, longest_road=True),
            PlayerScoreEntry(player_id=bob, points=7, longest_road=True),
            PlayerScoreEntry(player_id=carol, points=4),
        ]),
        "two_largest_armies": RecordGameRequest(scores=[
            PlayerScoreEntry(player_id=alice, points=10, largest_army=True),
            PlayerScoreEntry(player_id=bob, points=7),
            PlayerScoreEntry(player_id=carol, points=4, largest_army=True),
        ]),
    }

    with pytest.raises(ValueError, match=message):
        await data_service.record_game(db_session, requests[case])

    games = (await db_session.execute(select(Game))).scalars().all()
    assert games == []


@pytest.mark.asyncio
async def test_record_game_invalid_date(db_session, players, tournament):
    alice, bob, carol = players
    with pytest.raises(ValueError, match="Invalid game date"):
        await data_service.record_game(db_session, sheet({alice: 10, bob: 7, carol: 4}, game_date="someday"))


@pytest.mark.asyncio
async def test_record_game_when_tournament_complete(db_session, players):
    alice, bob, carol = players
    await data_service.create_tournament(db_session, "Short Season", total_games=1)
    await data_service.record_game(db_session, sheet({alice: 10, bob: 7, carol: 4}))

    with pytest.raises(ValueError, match="Short Season is complete"):
        await data_service.record_game(db_session, sheet({alice: 10, bob: 7, carol: 4}))


# ============================================================================
# Deleting games
# ============================================================================

@pytest.mark.asyncio
async def test_delete_game_rebuilds_standings(db_session, players, tournament):
    alice, bob, carol = players
    first = await data_service.record_game(db_session, sheet({alice: 10, bob: 7, carol: 4}))
    second = await data_service.record_game(db_session, sheet({alice: 5, bob: 10, carol: 4}))

    assert await data_service.delete_game(db_session, second["id"]) is True

    stats = await cached_tournament_stats(db_session, tournament["id"])
    assert stats[bob].wins == 0
    assert stats[bob].total_points == 7
    assert stats[alice].win_streak == 1

    remaining = (await db_session.execute(select(GameScore))).scalars().all()
    assert {s.game_id for s in remaining} == {first["id"]}

    assert await data_service.delete_game(db_session, second["id"]) is False


# ============================================================================
# Stats
# ============================================================================

@pytest.mark.asyncio
async def test_cached_stats_match_replay(db_session, players, tournament):
    """Cached tables always equal a full recompute from the games."""
    alice, bob, carol = players
    await data_service.record_game(db_session, sheet({alice: 10, bob: 7, carol: 4}, longest_road=bob))
    await data_service.record_game(db_session, sheet({alice: 10, bob: 8, carol: 2}))
    await data_service.record_game(db_session, sheet({alice: 6, bob: 5, carol: 10}, largest_army=carol))

    standings = await data_service.get_standings(db_session, tournament["id"])
    cached = await cached_tournament_stats(db_session, tournament["id"])
    global_cached = await cached_global_stats(db_session)

    for row in standings["standings"]:
        for cache in (cached[row["player_id"]], global_cached[row["player_id"]]):
            assert cache.total_games == row["games_played"]
            assert cache.wins == row["wins"]
            assert cache.total_points == row["total_points"]
            assert cache.longest_road_count == row["longest_road_count"]
            assert cache.largest_army_count == row["largest_army_count"]
            assert cache.win_streak == row["win_streak"]
            assert cache.best_win_streak == row["best_win_streak"]

    assert cached[alice].best_win_streak == 2
    assert cached[alice].win_streak == 0
    assert cached[carol].win_streak == 1

    result = await data_service.refresh_cached_stats(db_session, tournament["id"])
    assert result == {"player_count": 3, "game_count": 3}
    refreshed = await cached_tournament_stats(db_session, tournament["id"])
    assert {pid: s.total_points for pid, s in refreshed.items()} == {alice: 26, bob: 20, carol: 16}


@pytest.mark.asyncio
async def test_get_standings(db_session, players, tournament):
    alice, bob, carol = players
    await data_service.record_game(db_session, sheet({alice: 10, bob: 7, carol: 4}))

    standings = await data_service.get_standings(db_session, tournament["id"])
    assert standings["games_played"] == 1
    assert standings["games_remaining"] == 19
    assert standings["tournament"]["id"] == tournament["id"]

    rows = standings["standings"]
    assert [r["name"] for r in rows] == ["Alice", "Bob", "Carol"]
    assert [r["rank"] for r in rows] == [1, 2, 3]
    assert all(5 <= r["lose_chance"] <= 90 for r in rows)
    assert rows[0]["lose_chance"] < rows[2]["lose_chance"]


@pytest.mark.asyncio
async def test_get_standings_before_first_game(db_session, players, tournament):
    standings = await data_service.get_standings(db_session, tournament["id"])
    assert standings["games_played"] == 0
    assert [r["lose_chance"] for r in standings["standings"]] == [33, 33, 33]


@pytest.mark.asyncio
async def test_get_standings_all_time(db_session, players, tournament):
    alice, bob, carol = players
    await data_service.record_game(db_session, sheet({alice: 10, bob: 7, carol: 4}))
    await data_service.create_tournament(db_session, "Season 2")
    await data_service.record_game(db_session, sheet({alice: 3, bob: 10, carol: 4}))

    standings = await data_service.get_standings(db_session)
    assert standings["tournament"] is None
    assert standings["games_played"] == 2
    by_player = {r["player_id"]: r for r in standings["standings"]}
    assert by_player[bob]["total_points"] == 17
    assert by_player[bob]["win_streak"] == 1
    assert by_player[alice]["win_streak"] == 0
    assert "lose_chance" not in by_player[alice]


@pytest.mark.asyncio
async def test_get_standings_unknown_tournament(db_session):
    assert await data_service.get_standings(db_session, 99999) is None


@pytest.mark.asyncio
async def test_game_history_newest_first(db_session, players, tournament):
    alice, bob, carol = players
    await data_service.record_game(db_session, sheet({alice: 10, bob: 7, carol: 4}))
    await data_service.record_game(db_session, sheet({alice: 3, bob: 10, carol: 4}))

    history = await data_service.get_game_history(db_session, tournament["id"])
    assert [g["game_number"] for g in history] == [2, 1]
    assert history[0]["winner_name"] == "Bob"
    assert [s["name"] for s in history[0]["scores"]] == ["Bob", "Carol", "Alice"]


@pytest.mark.asyncio
async def test_positions_and_checkpoint(db_session, players, tournament):
    alice, bob, carol = players
    await data_service.record_game(db_session, sheet({alice: 10, bob: 7, carol: 4}))
    await data_service.record_game(db_session, sheet({alice: 2, bob: 10, carol: 4}))

    positions = await data_service.get_positions(db_session, tournament["id"])
    top = {e["name"]: e["value"] for e in positions["games_at_top"]}
    bottom = {e["name"]: e["value"] for e in positions["games_at_bottom"]}
    assert top == {"Alice": 1, "Bob": 1, "Carol": 0}
    assert bottom == {"Alice": 0, "Bob": 0, "Carol": 2}

    checkpoint = await data_service.get_checkpoint(db_session, tournament["id"], 1)
    assert checkpoint == [
        {"player_id": alice, "name": "Alice", "points": 10},
        {"player_id": bob, "name": "Bob", "points": 7},
        {"player_id": carol, "name": "Carol", "points": 4},
    ]
    after_two = await data_service.get_checkpoint(db_session, tournament["id"], 2)
    assert [row["points"] for row in after_two] == [17, 12, 8]


@pytest.mark.asyncio
async def test_season_comparison(db_session, players, tournament):
    alice, bob, carol = players
    await data_service.record_game(db_session, sheet({alice: 10, bob: 7, carol: 4}))
    await data_service.record_game(db_session, sheet({alice: 10, bob: 7, carol: 4}))

    assert await data_service.get_season_comparison(db_session, tournament["id"]) is None

    second = await data_service.create_tournament(db_session, "Season 2")
    await data_service.record_game(db_session, sheet({alice: 4, bob: 10, carol: 4}))

    comparison = await data_service.get_season_comparison(db_session, second["id"])
    assert comparison["previous_tournament_id"] == tournament["id"]
    assert comparison["as_of_game"] == 1
    assert comparison["previous_games_used"] == 1

    by_player = {row["player_id"]: row for row in comparison["players"]}
    assert by_player[bob]["name"] == "Bob"
    assert by_player[bob]["points_difference"] == 3
    assert by_player[alice]["points_difference"] == -6
    assert len(comparison["progression"]) == 2
