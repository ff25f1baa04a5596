"""
Broadcast de eventos a los clientes WebSocket conectados.

Hay un único `ConnectionManager` por proceso (`manager`). No hay colas ni
garantías de entrega: cada evento se envía a las conexiones abiertas en ese
momento y la que falla se descarta.
"""

from __future__ import annotations

import logging
from datetime import datetime, UTC
from typing import Any, Dict, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


def build_message(event_type: str, data: Any) -> Dict[str, Any]:
    return {"type": event_type, "data": data, "timestamp": datetime.now(UTC).isoformat()}


class ConnectionManager:
    def __init__(self):
        self.connections: Set[WebSocket] = set()

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.connections.add(websocket)
        logger.info(f"[WebSocket] Cliente conectado ({len(self.connections)} activos)")

    def disconnect(self, websocket: WebSocket) -> None:
        self.connections.discard(websocket)
        logger.info(f"[WebSocket] Cliente desconectado ({len(self.connections)} activos)")

    async def broadcast(self, event_type: str, data: Any) -> int:
        """
        Envía `{type, data, timestamp}` a todas las conexiones.

        Returns:
            Cantidad de conexiones a las que se envió
        """
        message = build_message(event_type, data)
        sent = 0
        for websocket in list(self.connections):
            try:
                await websocket.send_json(message)
                sent += 1
            except Exception as e:
                logger.warning(f"[WebSocket] Falló el envío, se descarta la conexión: {e}")
                self.connections.discard(websocket)
        return sent


manager = ConnectionManager()


async def broadcast_update(event_type: str, data: Any) -> int:
    return await manager.broadcast(event_type, data)
