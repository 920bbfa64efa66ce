import logging
from collections import defaultdict

logger = logging.getLogger(__name__)


class RoomRegistry:
    """
    Room subscriptions per channel.

    Joining is idempotent and there is no explicit leave; a channel stays in
    every room it joined until it disconnects.
    """

    def __init__(self):
        self._rooms: dict[str, set[str]] = defaultdict(set)

    def join(self, channel_id: str, room: str) -> None:
        self._rooms[room].add(channel_id)
        logger.info(f"Channel {channel_id} joined {room}")

    def members(self, room: str) -> set[str]:
        return set(self._rooms.get(room, ()))

    def rooms_of(self, channel_id: str) -> set[str]:
        return {room for room, members in self._rooms.items() if channel_id in members}

    def leave_all(self, channel_id: str) -> None:
        """Drop a channel from every room, removing rooms left empty."""
        for room in list(self._rooms):
            self._rooms[room].discard(channel_id)
            if not self._rooms[room]:
                del self._rooms[room]
