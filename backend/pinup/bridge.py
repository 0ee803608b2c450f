"""In-process frame boundary between a host controller and an embedded runtime.

Messages are JSON-encoded on send and decoded on delivery, so nothing but
plain data crosses, and each is delivered on a later turn of the event loop.
Order is preserved per direction; there is no ordering between directions.
"""

import asyncio
import json
from typing import Callable, Optional

from pinup.host import HostController
from pinup.logger import get_logger
from pinup.runtime import EmbeddedRuntime
from pinup.surface import Surface

logger = get_logger(__name__)

TO_CHILD = "parent->child"
TO_PARENT = "child->parent"


class FrameBridge:
    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._receivers: dict[str, Callable] = {}
        self._pending = 0
        self.history: list[tuple[str, dict]] = []

    def attach(self, parent: Callable, child: Callable):
        self._receivers[TO_PARENT] = parent
        self._receivers[TO_CHILD] = child

    def _post(self, direction: str, message: dict):
        payload = json.dumps(message)
        loop = self._loop or asyncio.get_running_loop()
        self._pending += 1
        loop.call_soon(self._deliver, direction, payload)

    def _deliver(self, direction: str, payload: str):
        self._pending -= 1
        message = json.loads(payload)
        self.history.append((direction, message))
        receiver = self._receivers.get(direction)
        if receiver is None:
            logger.debug(f"No receiver attached for {direction}; dropping message")
            return
        receiver(message)

    def to_child(self, message: dict):
        self._post(TO_CHILD, message)

    def to_parent(self, message: dict):
        self._post(TO_PARENT, message)

    def sent(self, direction: str, type: Optional[str] = None) -> list[dict]:
        return [
            m
            for d, m in self.history
            if d == direction and (type is None or m.get("type") == type)
        ]

    async def drain(self):
        """Wait until every message posted so far (and its fallout) is delivered"""
        while self._pending:
            await asyncio.sleep(0)


def connect(
    surface: Surface,
    project_id: str,
    version_id: str,
    store,
    **host_kwargs,
) -> tuple[HostController, EmbeddedRuntime, FrameBridge]:
    """Wire a host controller and an embedded runtime over a fresh bridge.

    The runtime is not started; call ``runtime.start()`` once the document
    has loaded.
    """
    bridge = FrameBridge()
    host = HostController(project_id, version_id, store, bridge.to_child, **host_kwargs)
    runtime = EmbeddedRuntime(surface, bridge.to_parent)
    bridge.attach(parent=host.handle_message, child=runtime.receive)
    return host, runtime, bridge
