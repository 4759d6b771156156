"""001_initial_schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the scoreboard schema:
- players, tournaments, games, game_scores
- cached standings: tournament_player_stats, player_stats
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _stats_columns():
    return [
        sa.Column('total_games', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('wins', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('longest_road_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('largest_army_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('win_streak', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('best_win_streak', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create all tables from scratch."""
    op.create_table(
        'players',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('idx_players_name', 'players', ['name'])

    op.create_table(
        'tournaments',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(), nullable=False, unique=True),
        sa.Column('total_games', sa.Integer(), nullable=False, server_default='20'),
        sa.Column('prize_pool', sa.Integer(), nullable=True),
        sa.Column(
            'status',
            sa.Enum('active', 'completed', name='tournamentstatus'),
            nullable=False,
            server_default='active',
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint('total_games > 0', name='ck_tournaments_total_games_positive'),
    )
    op.create_index('idx_tournaments_status', 'tournaments', ['status'])
    op.create_index('idx_tournaments_created_at', 'tournaments', ['created_at'])

    op.create_table(
        'games',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('tournament_id', sa.Integer(), sa.ForeignKey('tournaments.id'), nullable=True),
        sa.Column('game_number', sa.Integer(), nullable=False),
        sa.Column('winner_id', sa.Integer(), sa.ForeignKey('players.id'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('tournament_id', 'game_number', name='uq_games_tournament_number'),
    )
    op.create_index('idx_games_tournament', 'games', ['tournament_id'])
    op.create_index('idx_games_winner', 'games', ['winner_id'])

    op.create_table(
        'game_scores',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('game_id', sa.Integer(), sa.ForeignKey('games.id'), nullable=False),
        sa.Column('player_id', sa.Integer(), sa.ForeignKey('players.id'), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('longest_road', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('largest_army', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('game_id', 'player_id', name='uq_game_scores_game_player'),
        sa.CheckConstraint('points >= 0', name='ck_game_scores_points_non_negative'),
    )
    op.create_index('idx_game_scores_game', 'game_scores', ['game_id'])
    op.create_index('idx_game_scores_player', 'game_scores', ['player_id'])

    op.create_table(
        'tournament_player_stats',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('tournament_id', sa.Integer(), sa.ForeignKey('tournaments.id'), nullable=False),
        sa.Column('player_id', sa.Integer(), sa.ForeignKey('players.id'), nullable=False),
        *_stats_columns(),
        sa.UniqueConstraint('tournament_id', 'player_id', name='uq_tournament_player_stats'),
    )
    op.create_index(
        'idx_tournament_player_stats_tournament', 'tournament_player_stats', ['tournament_id']
    )

    op.create_table(
        'player_stats',
        sa.Column('player_id', sa.Integer(), sa.ForeignKey('players.id'), primary_key=True),
        *_stats_columns(),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('player_stats')
    op.drop_index('idx_tournament_player_stats_tournament', table_name='tournament_player_stats')
    op.drop_table('tournament_player_stats')
    op.drop_index('idx_game_scores_player', table_name='game_scores')
    op.drop_index('idx_game_scores_game', table_name='game_scores')
    op.drop_table('game_scores')
    op.drop_index('idx_games_winner', table_name='games')
    op.drop_index('idx_games_tournament', table_name='games')
    op.drop_table('games')
    op.drop_index('idx_tournaments_created_at', table_name='tournaments')
    op.drop_index('idx_tournaments_status', table_name='tournaments')
    op.drop_table('tournaments')
    op.drop_index('idx_players_name', table_name='players')
    op.drop_table('players')
    sa.Enum(name='tournamentstatus').drop(op.get_bind(), checkfirst=True)
