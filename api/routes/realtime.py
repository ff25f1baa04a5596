"""
WebSocket de eventos en tiempo real (/ws).

Los clientes solo escuchan: los mensajes entrantes se ignoran.
"""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from sandbox_core.events import build_message, manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def ws_events_endpoint(websocket: WebSocket):
    await manager.connect(websocket)
    try:
        await websocket.send_json(build_message("connected", {"clients": len(manager.connections)}))
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug(f"[WebSocket] {websocket.client} cerró la conexión")
    finally:
        manager.disconnect(websocket)
