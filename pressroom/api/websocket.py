"""
WebSocket API Endpoints
Pushes direct messages for one conversation thread
"""
from __future__ import annotations

import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

router = APIRouter()


@router.websocket("/ws/threads/{thread_id}")
async def thread_websocket(websocket: WebSocket, thread_id: str):
    """
    Subscribe to direct messages for a thread.

    Example:
      ws://localhost:8000/ws/threads/thread-123
    """
    manager = websocket.app.state.connection_manager
    await manager.connect(websocket, thread_id)
    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                continue
            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_json({"type": "pong", "thread_id": thread_id})
    except WebSocketDisconnect:
        manager.disconnect(websocket)
