from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Iterable

from fastapi import WebSocket

from relay.metrics import set_connected_channels
from relay.rooms import RoomRegistry
from relay.schemas import outbound

logger = logging.getLogger(__name__)

SEND_TIMEOUT = 5.0


class ConnectionManager:
    """
    Connected channels and the addressing used to reach them.

    Outbound events go to one channel, to the members of a room, or to every
    channel, optionally leaving one channel out. A channel whose send fails
    or times out is disconnected.
    """

    def __init__(self, rooms: RoomRegistry, send_timeout: float = SEND_TIMEOUT) -> None:
        self.rooms = rooms
        self.send_timeout = send_timeout
        self.connections: dict[str, WebSocket] = {}

    async def connect(self, websocket: WebSocket) -> str:
        await websocket.accept()
        channel_id = uuid.uuid4().hex
        self.connections[channel_id] = websocket
        set_connected_channels(len(self.connections))
        logger.info("Channel connected", extra={"channel_id": channel_id})
        return channel_id

    def disconnect(self, channel_id: str) -> None:
        if channel_id in self.connections:
            del self.connections[channel_id]
            self.rooms.leave_all(channel_id)
            set_connected_channels(len(self.connections))
            logger.info("Channel disconnected", extra={"channel_id": channel_id})

    async def send(self, channel_id: str, event: str, data: Any = None) -> None:
        await self._deliver([channel_id], outbound(event, data))

    async def broadcast(self, event: str, data: Any = None, exclude: str | None = None) -> None:
        targets = [cid for cid in self.connections if cid != exclude]
        await self._deliver(targets, outbound(event, data))

    async def to_room(
        self,
        room: str,
        event: str,
        data: Any = None,
        exclude: str | None = None,
    ) -> None:
        targets = [cid for cid in self.rooms.members(room) if cid != exclude]
        await self._deliver(targets, outbound(event, data))

    async def _deliver(self, channel_ids: Iterable[str], frame: dict) -> None:
        targets: list[str] = []
        coros: list[asyncio.Future] = []
        for cid in channel_ids:
            ws = self.connections.get(cid)
            if ws is None:
                continue
            targets.append(cid)
            coros.append(asyncio.wait_for(ws.send_json(frame), self.send_timeout))
        if not coros:
            return
        results = await asyncio.gather(*coros, return_exceptions=True)
        for cid, result in zip(targets, results):
            if isinstance(result, Exception):
                logger.warning(
                    f"Failed to send {frame['event']}: {result!r}",
                    extra={"channel_id": cid},
                )
                self.disconnect(cid)
