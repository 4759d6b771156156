"""
Tournament Scoreboard API Server

FastAPI server that records games and serves standings, positional stats
and season comparisons.
"""

import asyncio
from contextlib import asynccontextmanager, suppress
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
import logging
import os
import uvicorn
from slowapi import _rate_limit_exceeded_handler  # type: ignore
from slowapi.errors import RateLimitExceeded  # type: ignore

from scoreboard.api.routes import router, limiter as routes_limiter
from scoreboard.database import db
from scoreboard.services.websocket_manager import get_websocket_manager, WEBSOCKET_TIMEOUT_SECONDS

# Set up logging
# Allow log level to be configured via environment variable (default: INFO)
log_level = os.getenv("LOG_LEVEL", "INFO").upper()
numeric_level = getattr(logging, log_level, logging.INFO)
logging.basicConfig(
    level=numeric_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


async def _sweep_stale_connections():
    """Periodically drop change subscribers that stopped responding."""
    manager = get_websocket_manager()
    while True:
        await asyncio.sleep(WEBSOCKET_TIMEOUT_SECONDS)
        try:
            await manager.cleanup_stale_connections()
        except Exception as e:
            logger.error(f"Error cleaning up WebSocket connections: {e}", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler for startup and shutdown events."""
    # Startup
    logger.info("Starting up Tournament Scoreboard API...")

    # Create tables if they don't exist; alembic migrations are the primary path
    try:
        await db.init_database()
        logger.info("Database initialized")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)
        # Don't raise - allow app to start so /api/health still answers

    sweeper = asyncio.create_task(_sweep_stale_connections())
    logger.info("WebSocket cleanup task started")

    yield  # App is running

    # Shutdown
    logger.info("Shutting down Tournament Scoreboard API...")
    sweeper.cancel()
    with suppress(asyncio.CancelledError):
        await sweeper
    await db.engine.dispose()


app = FastAPI(
    title="Tournament Scoreboard API",
    description="API for recording board-game tournaments and retrieving standings and statistics",
    version="1.0.0",
    lifespan=lifespan,
)

# Setup rate limiter
app.state.limiter = routes_limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS middleware - origins configured via ALLOWED_ORIGINS env var
allowed_origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(router)


@app.get("/", response_class=HTMLResponse)
async def root():
    """API root endpoint - frontend is served separately."""
    return HTMLResponse(
        content="""
        <!DOCTYPE html>
        <html>
            <head>
                <title>Tournament Scoreboard API</title>
                <style>
                    body { font-family: sans-serif; max-width: 800px; margin: 50px auto; padding: 20px; }
                    h1 { color: #b5651d; }
                    a { color: #b5651d; }
                </style>
            </head>
            <body>
                <h1>Tournament Scoreboard API</h1>
                <p>API is running successfully!</p>
                <h2>Available Resources:</h2>
                <ul>
                    <li><a href="/docs">API Documentation</a> - Interactive API docs</li>
                    <li><a href="/api/health">Health Check</a> - System status</li>
                    <li><a href="/api/stats/standings">Standings</a> - All-time leaderboard</li>
                </ul>
                <p><em>Note: Frontend is served separately.</em></p>
            </body>
        </html>
    """
    )


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
