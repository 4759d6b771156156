"""
SQLAlchemy ORM models for the tournament scoreboard.
"""

import enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from scoreboard.database.db import Base
from scoreboard.utils.constants import DEFAULT_TOTAL_GAMES, DEFAULT_PRIZE_POOL


class TournamentStatus(str, enum.Enum):
    """Tournament status enum."""

    ACTIVE = "active"
    COMPLETED = "completed"


class Player(Base):
    """Players on the roster."""

    __tablename__ = "players"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    scores = relationship("GameScore", back_populates="player")
    tournament_stats = relationship("TournamentPlayerStats", back_populates="player")
    global_stats = relationship("PlayerStats", back_populates="player", uselist=False)

    __table_args__ = (Index("idx_players_name", "name"),)


class Tournament(Base):
    """A season: a bounded series of games with its own standings."""

    __tablename__ = "tournaments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, unique=True)
    total_games = Column(Integer, nullable=False, default=DEFAULT_TOTAL_GAMES)
    prize_pool = Column(Integer, nullable=True, default=DEFAULT_PRIZE_POOL)
    status = Column(
        Enum(TournamentStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=TournamentStatus.ACTIVE,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    games = relationship("Game", back_populates="tournament")
    player_stats = relationship("TournamentPlayerStats", back_populates="tournament")

    __table_args__ = (
        CheckConstraint("total_games > 0", name="ck_tournaments_total_games_positive"),
        Index("idx_tournaments_status", "status"),
        Index("idx_tournaments_created_at", "created_at"),
    )


class Game(Base):
    """A single recorded game within a tournament."""

    __tablename__ = "games"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id"), nullable=True)
    game_number = Column(Integer, nullable=False)  # Sequential within its tournament
    winner_id = Column(Integer, ForeignKey("players.id"), nullable=False)
    date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    tournament = relationship("Tournament", back_populates="games")
    winner = relationship("Player", foreign_keys=[winner_id])
    scores = relationship("GameScore", back_populates="game")

    __table_args__ = (
        UniqueConstraint("tournament_id", "game_number", name="uq_games_tournament_number"),
        Index("idx_games_tournament", "tournament_id"),
        Index("idx_games_winner", "winner_id"),
    )


class GameScore(Base):
    """One player's result in one game."""

    __tablename__ = "game_scores"

    id = Column(Integer, primary_key=True, autoincrement=True)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False)
    player_id = Column(Integer, ForeignKey("players.id"), nullable=False)
    points = Column(Integer, nullable=False, default=0)
    longest_road = Column(Boolean, nullable=False, default=False)
    largest_army = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    game = relationship("Game", back_populates="scores")
    player = relationship("Player", back_populates="scores")

    __table_args__ = (
        UniqueConstraint("game_id", "player_id", name="uq_game_scores_game_player"),
        CheckConstraint("points >= 0", name="ck_game_scores_points_non_negative"),
        Index("idx_game_scores_game", "game_id"),
        Index("idx_game_scores_player", "player_id"),
    )


class TournamentPlayerStats(Base):
    """Cached standings per (tournament, player). Rebuilt from games on every write."""

    __tablename__ = "tournament_player_stats"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id"), nullable=False)
    player_id = Column(Integer, ForeignKey("players.id"), nullable=False)
    total_games = Column(Integer, default=0, nullable=False)
    wins = Column(Integer, default=0, nullable=False)
    total_points = Column(Integer, default=0, nullable=False)
    longest_road_count = Column(Integer, default=0, nullable=False)
    largest_army_count = Column(Integer, default=0, nullable=False)
    win_streak = Column(Integer, default=0, nullable=False)
    best_win_streak = Column(Integer, default=0, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    tournament = relationship("Tournament", back_populates="player_stats")
    player = relationship("Player", back_populates="tournament_stats")

    __table_args__ = (
        UniqueConstraint("tournament_id", "player_id", name="uq_tournament_player_stats"),
        Index("idx_tournament_player_stats_tournament", "tournament_id"),
    )


class PlayerStats(Base):
    """Cached standings per player across every tournament."""

    __tablename__ = "player_stats"

    player_id = Column(Integer, ForeignKey("players.id"), nullable=False, primary_key=True)
    total_games = Column(Integer, default=0, nullable=False)
    wins = Column(Integer, default=0, nullable=False)
    total_points = Column(Integer, default=0, nullable=False)
    longest_road_count = Column(Integer, default=0, nullable=False)
    largest_army_count = Column(Integer, default=0, nullable=False)
    win_streak = Column(Integer, default=0, nullable=False)
    best_win_streak = Column(Integer, default=0, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    player = relationship("Player", back_populates="global_stats")
