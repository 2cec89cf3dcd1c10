"""
WebSocket Connection Manager
Tracks per-thread subscribers and pushes direct messages to them
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Set

from fastapi import WebSocket


class ConnectionManager:
    """Manages WebSocket connections grouped by conversation thread."""

    def __init__(self):
        self.subscribers: Dict[str, Set[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, thread_id: str):
        """Accept a connection and subscribe it to one thread."""
        await websocket.accept()
        self.subscribers.setdefault(thread_id, set()).add(websocket)
        await websocket.send_json(
            {
                "type": "connection_established",
                "thread_id": thread_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )

    def disconnect(self, websocket: WebSocket):
        """Remove a connection from every thread it was subscribed to."""
        for thread_id in list(self.subscribers):
            self.subscribers[thread_id].discard(websocket)
            if not self.subscribers[thread_id]:
                del self.subscribers[thread_id]

    def subscriber_count(self, thread_id: str) -> int:
        return len(self.subscribers.get(thread_id, ()))

    async def broadcast_to_thread(self, thread_id: str, event_type: str, data: dict):
        """Send an event to every connection subscribed to ``thread_id``."""
        message = {
            "type": event_type,
            "thread_id": thread_id,
            "data": data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        disconnected: List[WebSocket] = []
        for connection in list(self.subscribers.get(thread_id, ())):
            try:
                await connection.send_json(message)
            except Exception:
                disconnected.append(connection)
        for connection in disconnected:
            self.disconnect(connection)
