"""
Broadcast engine: applies inbound channel events to the message log and the
OTP store, then publishes the result to the right audience.

Events are processed one at a time under a single lock, so every handler
sees and leaves the log in a consistent state, and publications to an
audience go out in the order their events were processed.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

from relay.connections import ConnectionManager
from relay.errors import AttachmentTooLarge, InvalidFormat, MalformedEvent, NotFound, RelayError
from relay.logging_utils import channel_id_ctx
from relay.metrics import record_otp_outcome, record_socket_event
from relay.otp import OtpAuthenticator
from relay.presence import PresenceNotifier
from relay.schemas import (
    EditPayload,
    Message,
    MessageId,
    ReactPayload,
    TypingPayload,
    VerifyOtpPayload,
    parse_event,
)
from relay.storage import MessageLog
from relay.utils import base64_decoded_length

logger = logging.getLogger(__name__)

MAX_ATTACHMENT_BYTES = 5 * 1024 * 1024


class BroadcastEngine:
    """
    Serialized event processor over one message log and one OTP store.

    The lock is held through publication, including every outbound send.
    A channel that is slow to read therefore holds up the events of all
    other channels until its send completes or hits the connection
    manager's send timeout, after which that channel is dropped.
    """

    def __init__(
        self,
        log: MessageLog,
        otp: OtpAuthenticator,
        connections: ConnectionManager,
        max_attachment_bytes: int = MAX_ATTACHMENT_BYTES,
    ):
        self.log = log
        self.otp = otp
        self.connections = connections
        self.presence = PresenceNotifier(connections)
        self.max_attachment_bytes = max_attachment_bytes
        self._lock = asyncio.Lock()
        self._handlers: dict[str, Callable[[str, Any], Awaitable[None]]] = {
            "join_room": self.join_room,
            "request_otp": self.request_otp,
            "verify_otp": self.verify_otp,
            "send_message": self.send_message,
            "typing": self.typing,
            "delete_message": self.delete_message,
            "edit_message": self.edit_message,
            "react_message": self.react_message,
            "message_seen": self.message_seen,
            "get_all_messages": self.get_all_messages,
        }

    async def dispatch(self, channel_id: str, frame: Any) -> None:
        """
        Validate and process one inbound frame from a channel.

        Malformed frames are dropped without a reply. Domain errors are
        reported to the sender as an ``error`` event.
        """
        token = channel_id_ctx.set(channel_id)
        try:
            try:
                event = parse_event(frame)
            except MalformedEvent as e:
                name = self._event_name(frame)
                logger.warning(f"Dropped malformed {name} event", extra={"detail": str(e)})
                record_socket_event(name, "malformed")
                return

            handler = self._handlers[event.event]
            # One event at a time, publication included
            async with self._lock:
                try:
                    await handler(channel_id, event.data)
                except RelayError as e:
                    # Rejected events leave the log untouched
                    logger.warning(f"Rejected {event.event}: {e.message}")
                    record_socket_event(event.event, "rejected")
                    await self.connections.send(channel_id, "error", {"message": e.message})
                    return
            record_socket_event(event.event, "ok")
        finally:
            channel_id_ctx.reset(token)

    def _event_name(self, frame: Any) -> str:
        if isinstance(frame, dict) and frame.get("event") in self._handlers:
            return frame["event"]
        return "unknown"

    # =========================================================================
    # Rooms
    # =========================================================================

    async def join_room(self, channel_id: str, room: str) -> None:
        self.connections.rooms.join(channel_id, room)
        history = [m.to_payload() for m in self.log.history(room)]
        await self.connections.send(channel_id, "room_history", history)

    # =========================================================================
    # OTP
    # =========================================================================

    async def request_otp(self, channel_id: str, mobile: Any) -> None:
        try:
            self.otp.request_code(mobile)
        except InvalidFormat:
            record_otp_outcome("invalid_format")
            raise
        record_otp_outcome("issued")
        await self.connections.send(channel_id, "otp_generated")

    async def verify_otp(self, channel_id: str, payload: VerifyOtpPayload) -> None:
        success = self.otp.verify_code(payload.mobile, payload.otp)
        record_otp_outcome("verified" if success else "failed")
        await self.connections.send(channel_id, "otp_verified", {"success": success})

    # =========================================================================
    # Messages
    # =========================================================================

    async def send_message(self, channel_id: str, message: Message) -> None:
        if message.file and message.file_data:
            size = base64_decoded_length(message.file_data)
            if size > self.max_attachment_bytes:
                logger.warning(f"Attachment of {size} bytes on message {message.id} rejected")
                limit_mb = self.max_attachment_bytes // (1024 * 1024)
                raise AttachmentTooLarge(f"File size exceeds {limit_mb}MB limit")

        self.log.append(message)
        payload = message.to_payload()
        # Room messages reach room members only, global ones everyone
        if message.is_global:
            await self.connections.broadcast("receive_message", payload)
        else:
            await self.connections.to_room(message.room, "receive_message", payload)

    async def typing(self, channel_id: str, payload: TypingPayload) -> None:
        await self.presence.typing(channel_id, payload)

    async def delete_message(self, channel_id: str, message_id: MessageId) -> None:
        self.log.delete(message_id)
        await self.connections.broadcast("message_deleted", message_id)

    async def edit_message(self, channel_id: str, payload: EditPayload) -> None:
        self.log.edit(payload.id, payload.new_text)
        await self.connections.broadcast(
            "message_edited", {"id": payload.id, "newText": payload.new_text}
        )

    async def react_message(self, channel_id: str, payload: ReactPayload) -> None:
        first = self.log.react(payload.id, payload.reaction)
        if first is None:
            # Unknown id: nothing to react to, nobody to tell but the sender
            raise NotFound()
        data = {"id": payload.id, "reaction": payload.reaction}
        if first.is_global:
            await self.connections.broadcast("message_reacted", data)
        else:
            await self.connections.to_room(first.room, "message_reacted", data)

    async def message_seen(self, channel_id: str, message_id: MessageId) -> None:
        self.log.mark_seen(message_id)
        await self.connections.broadcast("message_seen", message_id)

    async def get_all_messages(self, channel_id: str, _: Any = None) -> None:
        messages = [m.to_payload() for m in self.log.all()]
        await self.connections.send(channel_id, "all_messages", messages)
