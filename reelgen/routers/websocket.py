"""
WebSocket Router
Pushes job status events to connected clients.
"""

import asyncio
import json
from typing import Any, Dict, Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..utils.logger import get_logger

router = APIRouter()
logger = get_logger()


class ConnectionHub:
    """Per-client bounded queues; slow clients lose their oldest events."""

    def __init__(self, max_queue_size: int = 500):
        self.max_queue_size = max_queue_size
        self._queues: Dict[WebSocket, asyncio.Queue] = {}
        self._users: Dict[WebSocket, str] = {}

    def __len__(self) -> int:
        return len(self._queues)

    def register(self, websocket: WebSocket, user_id: str = "") -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._queues[websocket] = queue
        self._users[websocket] = user_id
        return queue

    def unregister(self, websocket: WebSocket):
        self._queues.pop(websocket, None)
        self._users.pop(websocket, None)

    def broadcast(self, payload: Dict[str, Any], owner: Optional[str] = None):
        """Queue ``payload`` for every client; owned events reach only their owner"""
        for websocket, queue in list(self._queues.items()):
            if owner and self._users.get(websocket) != owner:
                continue
            if queue.full():
                try:
                    queue.get_nowait()
                except asyncio.QueueEmpty:
                    pass
            try:
                queue.put_nowait(payload)
            except asyncio.QueueFull:
                pass


hub = ConnectionHub()


async def forward_status_event(event: Dict[str, Any]):
    """Status listener: fan a job record out to the clients allowed to see it."""
    hub.broadcast({"type": "status", "data": event}, owner=event.get("user_id"))


def _websocket_api_key(websocket: WebSocket) -> str:
    api_key = websocket.headers.get("x-api-key", "").strip()
    if api_key:
        return api_key

    auth_header = websocket.headers.get("authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header.split(" ", 1)[1].strip()

    return websocket.query_params.get("token", "").strip()


def _websocket_user_id(websocket: WebSocket) -> str:
    user_id = websocket.headers.get("x-user-id", "").strip()
    return user_id or websocket.query_params.get("user_id", "").strip()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Stream status events until the client goes away."""
    api_key = websocket.app.state.settings.api_key
    if api_key and _websocket_api_key(websocket) != api_key:
        await websocket.close(code=1008, reason="Unauthorized")
        return

    await websocket.accept()
    user_id = _websocket_user_id(websocket)
    queue = hub.register(websocket, user_id)
    logger.info(f"WebSocket connected for {user_id or 'anonymous'}. Total: {len(hub)}")

    tasks = [
        asyncio.create_task(send_updates(websocket, queue)),
        asyncio.create_task(receive_messages(websocket)),
    ]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc and not isinstance(exc, WebSocketDisconnect):
                logger.error(f"WebSocket task error: {exc}")
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        hub.unregister(websocket)
        logger.info(f"WebSocket removed. Total: {len(hub)}")


async def send_updates(websocket: WebSocket, queue: asyncio.Queue):
    while True:
        payload = await queue.get()
        await websocket.send_json(payload)


async def receive_messages(websocket: WebSocket):
    """Answer pings; other client messages are ignored."""
    while True:
        data = await websocket.receive_text()
        try:
            message = json.loads(data)
        except json.JSONDecodeError:
            logger.warning("Ignoring malformed WebSocket message")
            continue
        if isinstance(message, dict) and message.get("type") == "ping":
            await websocket.send_json({"type": "pong"})
