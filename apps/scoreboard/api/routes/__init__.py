"""
API routes - combined router from all domain modules.

Shared infrastructure (limiter, constants) lives here; every sub-router
imports what it needs from this package.
"""

import os

from fastapi import APIRouter
from slowapi import Limiter
from slowapi.util import get_remote_address

# ---------------------------------------------------------------------------
# Shared rate limiter
# ---------------------------------------------------------------------------
IS_TEST_ENV = os.getenv("ENV", "").lower() == "test"
limiter = Limiter(key_func=get_remote_address)
if IS_TEST_ENV:

    def no_op_limit(*args, **kwargs):
        """No-op decorator for test mode - doesn't apply any rate limiting."""
        def decorator(func):
            return func
        return decorator

    limiter.limit = no_op_limit

# Admin endpoints are password-gated; throttle guessing
ADMIN_RATE_LIMIT = os.getenv("ADMIN_RATE_LIMIT", "10/minute")

# ---------------------------------------------------------------------------
# Import sub-routers and combine
# ---------------------------------------------------------------------------
from scoreboard.api.routes.health import router as health_router  # noqa: E402
from scoreboard.api.routes.players import router as players_router  # noqa: E402
from scoreboard.api.routes.tournaments import router as tournaments_router  # noqa: E402
from scoreboard.api.routes.games import router as games_router  # noqa: E402
from scoreboard.api.routes.stats import router as stats_router  # noqa: E402
from scoreboard.api.routes.changes import router as changes_router  # noqa: E402

router = APIRouter()
router.include_router(health_router)
router.include_router(players_router)
router.include_router(tournaments_router)
router.include_router(games_router)
router.include_router(stats_router)
router.include_router(changes_router)
