"""Change-notification WebSocket route."""

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from scoreboard.services.websocket_manager import get_websocket_manager, WEBSOCKET_TIMEOUT_SECONDS
from scoreboard.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)
router = APIRouter()


@router.websocket("/api/ws/changes")
async def websocket_changes(websocket: WebSocket):
    """
    WebSocket endpoint that pushes a small event whenever a table changes.

    Optional query parameter: ?topics=games,game_scores (all topics by default).
    Clients should re-fetch whatever they display when an event arrives.
    """
    await websocket.accept()

    raw_topics = websocket.query_params.get("topics")
    topics = [t.strip() for t in raw_topics.split(",") if t.strip()] if raw_topics else None

    manager = get_websocket_manager()
    try:
        await manager.connect(websocket, topics)
    except ValueError as e:
        await websocket.close(code=1008, reason=str(e))
        return

    try:
        last_activity = utcnow()

        while True:
            try:
                data = await asyncio.wait_for(websocket.receive_text(), timeout=WEBSOCKET_TIMEOUT_SECONDS)

                last_activity = utcnow()
                await manager.update_activity(websocket)

                # Client sends "ping", server responds "pong"
                if data == "ping":
                    await websocket.send_text("pong")
            except asyncio.TimeoutError:
                if (utcnow() - last_activity).total_seconds() > WEBSOCKET_TIMEOUT_SECONDS:
                    logger.info("Change subscriber timed out, closing connection")
                    await websocket.close(code=1000, reason="Connection timeout")
                    break
                try:
                    await websocket.send_text("ping")
                except Exception:
                    break
    except WebSocketDisconnect:
        logger.info("Change subscriber disconnected")
    except Exception as e:
        logger.error(f"Change subscriber error: {e}")
    finally:
        await manager.disconnect(websocket)
