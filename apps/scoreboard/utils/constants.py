"""
Constants used across the scoreboard stats system.
"""

# Game rules
WIN_THRESHOLD = 10  # Points a player must reach in a single game to win it
DEFAULT_TOTAL_GAMES = 20  # Games per tournament unless configured otherwise
DEFAULT_PRIZE_POOL = 10000

# Lose-chance heuristic tuning (display only, not a calibrated model)
AVERAGE_SWING_PER_GAME = 3.5  # Assumed point swing between two players per game
LAST_PLACE_RISK = 65  # Risk for a player currently in last place
SAFE_LEAD_RISK = 8  # Risk for a player whose lead cannot be closed
RANK_PENALTY = 8  # Extra risk for the lowest rank, scaled down linearly to 0 for the leader
CONFIDENCE_RAMP = 1.5  # Progress multiplier; full confidence at 2/3 of the tournament
MIN_LOSE_CHANCE = 5
MAX_LOSE_CHANCE = 90
