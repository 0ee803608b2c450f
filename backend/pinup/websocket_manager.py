"""WebSocket connections to browser review shells.

One connection per open review page; the server runs a host controller for
each and relays frame messages and state snapshots over it.
"""

import asyncio
from typing import Dict, Optional, Set
from fastapi import WebSocket, WebSocketDisconnect
from pinup.logger import get_logger

logger = get_logger(__name__)


class WebSocketManager:
    """Tracks review shell connections by connection id"""

    def __init__(self):
        self.connections: Dict[str, WebSocket] = {}
        self.locks: Dict[str, asyncio.Lock] = {}
        self._outgoing: Set[asyncio.Task] = set()

    async def connect(self, connection_id: str, websocket: WebSocket):
        """Accept a review shell and give it its own send lock"""
        await websocket.accept()
        self.connections[connection_id] = websocket
        self.locks[connection_id] = asyncio.Lock()
        logger.info(f"WebSocket connected: {connection_id}")

    async def disconnect(self, connection_id: str):
        """Forget a review shell once it closes or a send fails"""
        if connection_id in self.connections:
            del self.connections[connection_id]
        if connection_id in self.locks:
            del self.locks[connection_id]
        logger.info(f"WebSocket disconnected: {connection_id}")

    async def send_message(self, connection_id: str, message: dict):
        """Send one envelope to a review shell; False if it is gone"""
        if connection_id not in self.connections:
            logger.warning(f"No WebSocket connection for: {connection_id}")
            return False

        try:
            async with self.locks[connection_id]:
                await self.connections[connection_id].send_json(message)
            return True
        except Exception as e:
            logger.error(f"Failed to send WebSocket message to {connection_id}: {e}")
            await self.disconnect(connection_id)
            return False

    def post(self, connection_id: str, message: dict):
        """Queue a send from synchronous code; sends keep their call order"""
        task = asyncio.get_running_loop().create_task(
            self.send_message(connection_id, message)
        )
        self._outgoing.add(task)
        task.add_done_callback(self._outgoing.discard)

    async def flush(self):
        """Wait for queued sends to finish"""
        while self._outgoing:
            await asyncio.gather(*list(self._outgoing))

    async def receive_message(self, connection_id: str) -> Optional[dict]:
        """Receive a JSON message; None once the connection is gone"""
        if connection_id not in self.connections:
            return None

        try:
            return await self.connections[connection_id].receive_json()
        except WebSocketDisconnect:
            await self.disconnect(connection_id)
            return None
        except ValueError as e:
            logger.warning(f"Ignoring non-JSON WebSocket frame from {connection_id}: {e}")
            return {}
        except Exception as e:
            logger.error(f"Failed to receive WebSocket message from {connection_id}: {e}")
            await self.disconnect(connection_id)
            return None


# --- global websocket manager instance ---
ws_manager = WebSocketManager()
