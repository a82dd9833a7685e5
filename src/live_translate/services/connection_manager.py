"""Websocket listeners of the live translation session."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)

# Events buffered per slow client before it is disconnected
MAX_PENDING_EVENTS = 1000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class LiveClient:
    """Tracks a single listening websocket and its outbound queue."""

    client_id: str
    websocket: WebSocket
    outbox: "asyncio.Queue[dict[str, Any]]" = field(
        default_factory=lambda: asyncio.Queue(maxsize=MAX_PENDING_EVENTS)
    )
    connected_at: datetime = field(default_factory=_utcnow)
    last_activity: datetime = field(default_factory=_utcnow)
    writer: Optional[asyncio.Task] = None

    def update_activity(self):
        """Update the last activity timestamp."""
        self.last_activity = _utcnow()


class ConnectionManager:
    """Manages active websocket connections and fans pipeline events out to them.

    publish() is synchronous so the pipeline can call it from stage callbacks;
    each client has its own writer task so events reach it in publish order.
    """

    def __init__(self):
        self.active_connections: Dict[str, LiveClient] = {}

    @property
    def listener_count(self) -> int:
        return len(self.active_connections)

    async def connect(self, websocket: WebSocket, client_id: str) -> LiveClient:
        """Accept a new websocket connection and start its writer."""
        await websocket.accept()
        previous = self.active_connections.get(client_id)
        if previous is not None:
            self._close_client(previous)

        client = LiveClient(client_id=client_id, websocket=websocket)
        client.writer = asyncio.create_task(
            self._writer(client), name=f"live-writer-{client_id}"
        )
        self.active_connections[client_id] = client
        logger.info(f"Client connected: {client_id} ({self.listener_count} listening)")
        return client

    def disconnect(self, client_id: str, client: Optional[LiveClient] = None) -> None:
        """Remove a client connection."""
        current = self.active_connections.get(client_id)
        if current is None or (client is not None and current is not client):
            return
        del self.active_connections[client_id]
        self._close_client(current)
        logger.info(f"Client disconnected: {client_id}")

    def get_client(self, client_id: str) -> Optional[LiveClient]:
        return self.active_connections.get(client_id)

    def publish(self, event: dict[str, Any]) -> None:
        """Queue an event for every connected client."""
        for client_id, client in list(self.active_connections.items()):
            try:
                client.outbox.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(f"Client {client_id} is not keeping up; disconnecting")
                self.disconnect(client_id, client)

    async def send_message(self, client_id: str, message: dict[str, Any]) -> None:
        """Queue a JSON message for a specific client."""
        client = self.active_connections.get(client_id)
        if client:
            try:
                client.outbox.put_nowait(message)
            except asyncio.QueueFull:
                logger.warning(f"Client {client_id} is not keeping up; disconnecting")
                self.disconnect(client_id, client)

    async def close_all(self) -> None:
        for client_id in list(self.active_connections):
            self.disconnect(client_id)

    async def _writer(self, client: LiveClient) -> None:
        while True:
            message = await client.outbox.get()
            try:
                await client.websocket.send_json(message)
            except Exception as e:
                logger.warning(f"Error sending to {client.client_id}: {e}")
                self.disconnect(client.client_id, client)
                return

    @staticmethod
    def _close_client(client: LiveClient) -> None:
        writer = client.writer
        if writer is not None and not writer.done() and writer is not asyncio.current_task():
            writer.cancel()


__all__ = ["ConnectionManager", "LiveClient"]
