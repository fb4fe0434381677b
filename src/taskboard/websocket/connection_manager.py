"""WebSocket connection management and the notification channel."""

import asyncio
import json
import logging
from typing import Any, Literal, Protocol

from fastapi import WebSocket

logger = logging.getLogger(__name__)

NotificationLevel = Literal["success", "error", "info"]


class Notifier(Protocol):
    """Fire-and-forget, user-visible message channel."""

    def notify(self, level: NotificationLevel, message: str) -> None:
        """Emit a notification; never blocks and never raises."""
        ...


class ConnectionManager:
    """Manages active WebSocket connections and broadcasts notifications."""

    def __init__(self) -> None:
        """Initialize connection manager with empty connection list."""
        self.active_connections: list[WebSocket] = []
        self._background_tasks: set[asyncio.Task[None]] = set()

    async def connect(self, websocket: WebSocket) -> None:
        """Accept and register a new WebSocket connection.

        Args:
            websocket: WebSocket connection to register
        """
        await websocket.accept()
        self.active_connections.append(websocket)
        logger.info(f"[ConnectionManager] Client connected (total: {len(self.active_connections)})")

    def disconnect(self, websocket: WebSocket) -> None:
        """Remove a WebSocket connection from active list.

        Args:
            websocket: WebSocket connection to remove
        """
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
            logger.info(
                f"[ConnectionManager] Client disconnected (total: {len(self.active_connections)})"
            )

    def notify(self, level: NotificationLevel, message: str) -> None:
        """Broadcast a notification without waiting for delivery.

        Args:
            level: success, error or info
            message: Human-readable text
        """
        logger.info(f"[ConnectionManager] Notification ({level}): {message}")
        if not self.active_connections:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("[ConnectionManager] No running loop, notification not broadcast")
            return

        payload = {"type": "notification", "level": level, "message": message}
        task = loop.create_task(self.broadcast(payload))
        # Keep a strong reference until delivery finishes
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def broadcast(self, message: dict[str, Any]) -> None:
        """Broadcast message to all connected clients.

        Args:
            message: Dictionary to send as JSON to all clients
        """
        if not self.active_connections:
            logger.debug("[ConnectionManager] No active connections to broadcast to")
            return

        message_json = json.dumps(message)
        num_clients = len(self.active_connections)
        logger.debug(f"[ConnectionManager] Broadcasting to {num_clients} clients: {message_json}")

        # Send to all connections, remove dead ones
        dead_connections = []
        for connection in list(self.active_connections):
            try:
                await connection.send_text(message_json)
            except Exception as e:
                logger.warning(f"[ConnectionManager] Failed to send to client: {e}")
                dead_connections.append(connection)

        for connection in dead_connections:
            self.disconnect(connection)
