"""WebSocket push channel: connected clients and broadcast"""

import logging
from typing import Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..models import PushMessage

logger = logging.getLogger(__name__)

router = APIRouter()


class ConnectionManager:
    """Tracks open push connections"""

    def __init__(self):
        self.connections: Set[WebSocket] = set()

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.connections.add(websocket)
        logger.info("Client connected (%d open)", len(self.connections))

    def disconnect(self, websocket: WebSocket):
        self.connections.discard(websocket)
        logger.info("Client disconnected (%d open)", len(self.connections))

    async def broadcast(self, message: PushMessage):
        """Send ``message`` to every open connection, dropping dead ones"""
        data = message.to_json()
        for websocket in list(self.connections):
            try:
                await websocket.send_text(data)
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.debug("Dropping connection after failed send: %s", e)
                self.disconnect(websocket)


@router.websocket("/ws")
async def push_channel(websocket: WebSocket):
    """Push channel; clients only listen, incoming frames are logged"""
    manager: ConnectionManager = websocket.app.state.connections
    await manager.connect(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            logger.debug("Received: %s", message)
    except WebSocketDisconnect:
        manager.disconnect(websocket)
