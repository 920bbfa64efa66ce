import logging
import threading
from typing import Any, Optional

from relay.schemas import Message, MessageId

logger = logging.getLogger(__name__)


class MessageLog:
    """
    Ordered, in-memory log of every message sent during the process lifetime.

    The log is unbounded and is only touched through the methods below.
    Matching is by ``id``; when several entries share an id every one of
    them is updated or removed.
    """

    def __init__(self):
        self._messages: list[Message] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)

    # =========================================================================
    # Message Repository Functions
    # =========================================================================

    def append(self, message: Message) -> Message:
        """
        Store a new message with status 'delivered'.

        Returns:
            The stored message
        """
        # Client-supplied status is never trusted
        message.status = "delivered"
        with self._lock:
            self._messages.append(message)
            size = len(self._messages)
        logger.info(f"Message stored: id={message.id}, room={message.room}")
        logger.debug(f"Log size: {size}")
        return message

    def history(self, room: str) -> list[Message]:
        """Messages whose room is exactly ``room``, in send order."""
        with self._lock:
            return [m for m in self._messages if m.room == room]

    def all(self) -> list[Message]:
        """Snapshot of the whole log, in send order."""
        with self._lock:
            return list(self._messages)

    def find(self, message_id: MessageId) -> Optional[Message]:
        """First message with the given id, or None."""
        with self._lock:
            return next((m for m in self._messages if m.id == message_id), None)

    def delete(self, message_id: MessageId) -> int:
        """
        Remove every message with the given id.

        Returns:
            Number of entries removed
        """
        with self._lock:
            # Every duplicate of the id goes
            before = len(self._messages)
            self._messages = [m for m in self._messages if m.id != message_id]
            removed = before - len(self._messages)
        logger.info(f"Deleted message {message_id}: {removed} entries")
        return removed

    def edit(self, message_id: MessageId, new_text: Any) -> int:
        """
        Replace the text of every message with the given id and flag it edited.

        Returns:
            Number of entries updated
        """
        with self._lock:
            matches = [m for m in self._messages if m.id == message_id]
            for m in matches:
                m.text = new_text
                m.edited = True
        logger.info(f"Edited message {message_id}: {len(matches)} entries")
        return len(matches)

    def react(self, message_id: MessageId, reaction: Any) -> Optional[Message]:
        """
        Append a reaction to every message with the given id.

        Returns:
            The first matching message, or None when the id is unknown
        """
        with self._lock:
            matches = [m for m in self._messages if m.id == message_id]
            for m in matches:
                m.reactions = [*(m.reactions or []), reaction]
        # Caller routes the reaction by the first match's room
        logger.info(f"Reaction on message {message_id}: {len(matches)} entries")
        return matches[0] if matches else None

    def mark_seen(self, message_id: MessageId) -> int:
        """
        Set status 'seen' on every message with the given id.

        Returns:
            Number of entries updated
        """
        with self._lock:
            matches = [m for m in self._messages if m.id == message_id]
            for m in matches:
                m.status = "seen"
        logger.info(f"Message {message_id} seen: {len(matches)} entries")
        return len(matches)
