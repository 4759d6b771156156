"""
WebSocket connection manager for table-change notifications.

Clients subscribe to one or more topics (table names) and receive a small
JSON event whenever a row in that table changes. Events carry no derived
data; subscribers re-fetch a fresh snapshot on every event.
"""

import asyncio
import json
import logging
from typing import Dict, Iterable, Optional, Set
from datetime import timedelta
from fastapi import WebSocket
from scoreboard.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)

# Timeout for WebSocket connections (30 seconds of inactivity)
WEBSOCKET_TIMEOUT_SECONDS = 30

TOPICS = ("tournaments", "games", "game_scores", "tournament_player_stats")


class WebSocketManager:
    """Manages WebSocket subscriptions for change notifications."""

    def __init__(self):
        """Initialize the WebSocket manager."""
        # Dictionary mapping topic to set of subscribed WebSocket connections
        self.subscriptions: Dict[str, Set[WebSocket]] = {}
        # Dictionary mapping WebSocket to last activity timestamp
        self.connection_timestamps = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, topics: Optional[Iterable[str]] = None):
        """
        Register a WebSocket connection for a set of topics.

        Args:
            websocket: WebSocket connection object
            topics: Topics to subscribe to; all topics when omitted

        Raises:
            ValueError: If an unknown topic is requested
        """
        topics = list(topics) if topics else list(TOPICS)
        unknown = [t for t in topics if t not in TOPICS]
        if unknown:
            raise ValueError(f"Unknown topics: {', '.join(unknown)}")

        async with self._lock:
            for topic in topics:
                self.subscriptions.setdefault(topic, set()).add(websocket)
            self.connection_timestamps[websocket] = utcnow()
        logger.info(f"WebSocket subscribed to {', '.join(topics)}")

    async def disconnect(self, websocket: WebSocket):
        """Remove a WebSocket connection from every topic."""
        async with self._lock:
            for topic in list(self.subscriptions):
                self.subscriptions[topic].discard(websocket)
                if not self.subscriptions[topic]:
                    del self.subscriptions[topic]
            self.connection_timestamps.pop(websocket, None)
        logger.info("WebSocket disconnected")

    async def broadcast(self, table: str, event: str, record: Optional[dict] = None) -> int:
        """
        Send a change event to every subscriber of a table.

        Args:
            table: Changed table (topic)
            event: "INSERT", "UPDATE" or "DELETE"
            record: Optional identifying fields of the changed row

        Returns:
            Number of connections the event was delivered to
        """
        async with self._lock:
            connections = list(self.subscriptions.get(table, ()))

        message_json = json.dumps({"table": table, "event": event, "record": record or {}}, default=str)

        # Send outside the lock to avoid blocking
        delivered = 0
        dead_connections = []
        for websocket in connections:
            try:
                await websocket.send_text(message_json)
                delivered += 1
            except Exception as e:
                logger.warning(f"Error sending change event for {table}: {e}")
                dead_connections.append(websocket)

        for websocket in dead_connections:
            await self.disconnect(websocket)

        return delivered

    async def get_subscriber_count(self, topic: str) -> int:
        """Get the number of connections subscribed to a topic."""
        async with self._lock:
            return len(self.subscriptions.get(topic, ()))

    async def update_activity(self, websocket: WebSocket):
        """
        Update the last activity timestamp for a WebSocket connection.
        Called when receiving ping or other messages from client.
        """
        async with self._lock:
            if websocket in self.connection_timestamps:
                self.connection_timestamps[websocket] = utcnow()

    async def cleanup_stale_connections(self):
        """
        Drop connections with no activity within the timeout period.
        """
        timeout_threshold = utcnow() - timedelta(seconds=WEBSOCKET_TIMEOUT_SECONDS)

        async with self._lock:
            stale_connections = [
                websocket
                for websocket, last_activity in self.connection_timestamps.items()
                if last_activity < timeout_threshold
            ]

        for websocket in stale_connections:
            await self.disconnect(websocket)
            logger.info("Cleaned up stale WebSocket connection")


# Global WebSocket manager instance
_websocket_manager: Optional[WebSocketManager] = None


def get_websocket_manager() -> WebSocketManager:
    """
    Get the global WebSocket manager instance.

    Returns:
        WebSocketManager instance
    """
    global _websocket_manager
    if _websocket_manager is None:
        _websocket_manager = WebSocketManager()
    return _websocket_manager
