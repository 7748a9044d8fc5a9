import asyncio
from typing import Any, Dict, Set

from fastapi import WebSocket

from appointments.core.logger import logger


class ConnectionManager:
    """
    Currently-connected realtime subscribers (admin dashboards).

    `publish` reaches only the sockets connected at that moment; there is no
    backlog, so a subscriber that connects later never sees earlier events.
    """

    def __init__(self):
        self.active: Set[WebSocket] = set()

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active.add(websocket)
        logger.info(f"🟢 WebSocket connected ({len(self.active)} active)")

    def disconnect(self, websocket: WebSocket):
        self.active.discard(websocket)
        logger.info(f"🔴 WebSocket disconnected ({len(self.active)} active)")

    async def _send(self, websocket: WebSocket, message: Dict[str, Any]) -> bool:
        try:
            await websocket.send_json(message)
            return True
        except Exception as e:
            logger.warning(f"⚠️ Dropping realtime subscriber: {e}")
            self.disconnect(websocket)
            return False

    async def publish(self, topic: str, payload: Dict[str, Any]) -> int:
        """Sends `{event, data}` to every current subscriber. Returns the number reached."""
        message = {"event": topic, "data": payload}
        subscribers = list(self.active)
        if not subscribers:
            return 0
        results = await asyncio.gather(*(self._send(ws, message) for ws in subscribers))
        return sum(1 for ok in results if ok)
