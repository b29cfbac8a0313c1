from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from src.core.websockets.manager import case_room, manager
import logging

logger = logging.getLogger(__name__)
router = APIRouter()

@router.websocket("/cases/{case_id}")
async def case_progress_websocket(websocket: WebSocket, case_id: str):
    """
    Streams analysis progress for one case.
    Clients only listen; anything they send is ignored.
    """
    room_id = case_room(case_id)
    await manager.connect(websocket, room_id)
    try:
        while True:
            data = await websocket.receive_text()
            logger.debug("Ignoring client message in %s: %d chars", room_id, len(data))
    except WebSocketDisconnect:
        manager.disconnect(websocket, room_id)
    except Exception as e:
        logger.error("WebSocket error in room %s: %s: %s", room_id, type(e).__name__, e)
        manager.disconnect(websocket, room_id)
