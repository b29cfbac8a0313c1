import json
from typing import Any, Dict, List
from fastapi import WebSocket
import logging

logger = logging.getLogger(__name__)


def case_room(case_id: str) -> str:
    return f"case:{case_id}"


class ConnectionManager:
    def __init__(self):
        # Map room_id -> List[WebSocket]
        self.active_connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, room_id: str):
        await websocket.accept()
        self.active_connections.setdefault(room_id, []).append(websocket)
        logger.info("WebSocket connected: %s. Total in room: %d", room_id, len(self.active_connections[room_id]))

    def disconnect(self, websocket: WebSocket, room_id: str):
        connections = self.active_connections.get(room_id)
        if connections and websocket in connections:
            connections.remove(websocket)
            if not connections:
                del self.active_connections[room_id]
            logger.info("WebSocket disconnected: %s", room_id)

    def room_size(self, room_id: str) -> int:
        return len(self.active_connections.get(room_id, []))

    async def broadcast(self, message: str, room_id: str):
        # Iterate over a copy; dead sockets are dropped as they fail.
        for connection in list(self.active_connections.get(room_id, [])):
            try:
                await connection.send_text(message)
            except Exception as e:
                logger.error("Error broadcasting to %s: %s", room_id, e)
                self.disconnect(connection, room_id)

    async def broadcast_json(self, payload: Dict[str, Any], room_id: str):
        await self.broadcast(json.dumps(payload), room_id)


manager = ConnectionManager()
