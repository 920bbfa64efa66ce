import logging

from relay.connections import ConnectionManager
from relay.schemas import TypingPayload

logger = logging.getLogger(__name__)


class PresenceNotifier:
    """Relays typing signals. Nothing about who is typing is stored."""

    def __init__(self, connections: ConnectionManager):
        self.connections = connections

    async def typing(self, channel_id: str, payload: TypingPayload) -> None:
        logger.debug(f"Typing signal from {payload.user!r}, room={payload.room}")
        if payload.room:
            await self.connections.to_room(payload.room, "typing", payload.user, exclude=channel_id)
        else:
            await self.connections.broadcast("typing", payload.user, exclude=channel_id)
