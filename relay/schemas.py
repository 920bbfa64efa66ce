"""
Pydantic schemas for channel events.

This module contains:
- The Message record stored in the log and echoed to clients
- Payload models for inbound events
- The tagged union that turns a raw frame into a typed event
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from relay.errors import MalformedEvent


MessageId = Union[str, int]


# =============================================================================
# Message Record
# =============================================================================

class Message(BaseModel):
    """
    A chat message as sent by a client.

    Identity is the client-supplied ``id``; it is required but its
    uniqueness is not checked. Unknown fields are kept so clients get
    back exactly what they sent, plus the server-managed state.
    """
    id: MessageId = Field(..., description="Client-supplied message identifier")
    room: Optional[str] = Field(None, description="Room name; absent means global")
    sender: Optional[Any] = Field(None, description="Sender, unvalidated")
    text: Optional[Any] = Field(None, description="Message text, unvalidated")
    file: Optional[Any] = Field(None, description="Attachment flag or descriptor")
    file_data: Optional[str] = Field(
        None,
        alias="fileData",
        serialization_alias="fileData",
        description="Base64-encoded attachment payload"
    )
    status: Optional[str] = Field(None, description="Delivery state: delivered or seen")
    edited: Optional[Any] = Field(None, description="True once an edit was applied")
    reactions: Optional[list[Any]] = Field(None, description="Reactions, in arrival order")

    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow",
    )

    @field_validator("id")
    @classmethod
    def validate_id_present(cls, v: MessageId) -> MessageId:
        # Empty string, 0 and false all count as a missing id
        if not v:
            raise ValueError("id must be non-empty")
        return v

    @property
    def is_global(self) -> bool:
        return not self.room

    def to_payload(self) -> dict:
        """Wire representation; fields neither sent nor set by the server stay absent."""
        return self.model_dump(by_alias=True, exclude_unset=True)


# =============================================================================
# Inbound Payloads
# =============================================================================

class VerifyOtpPayload(BaseModel):
    mobile: str
    otp: Union[str, int]


class TypingPayload(BaseModel):
    user: Any = None
    room: Optional[str] = None


class EditPayload(BaseModel):
    id: MessageId
    new_text: Any = Field(..., alias="newText", serialization_alias="newText")

    model_config = ConfigDict(populate_by_name=True)


class ReactPayload(BaseModel):
    id: MessageId
    reaction: Any


# =============================================================================
# Inbound Events (tagged by "event")
# =============================================================================

class JoinRoom(BaseModel):
    event: Literal["join_room"]
    data: str


class RequestOtp(BaseModel):
    event: Literal["request_otp"]
    # Format is checked by the authenticator so bad numbers get an error reply
    data: Any = None


class VerifyOtp(BaseModel):
    event: Literal["verify_otp"]
    data: VerifyOtpPayload


class SendMessage(BaseModel):
    event: Literal["send_message"]
    data: Message


class Typing(BaseModel):
    event: Literal["typing"]
    data: TypingPayload


class DeleteMessage(BaseModel):
    event: Literal["delete_message"]
    data: MessageId


class EditMessage(BaseModel):
    event: Literal["edit_message"]
    data: EditPayload


class ReactMessage(BaseModel):
    event: Literal["react_message"]
    data: ReactPayload


class MessageSeen(BaseModel):
    event: Literal["message_seen"]
    data: MessageId


class GetAllMessages(BaseModel):
    event: Literal["get_all_messages"]
    data: Any = None


InboundEvent = Annotated[
    Union[
        JoinRoom,
        RequestOtp,
        VerifyOtp,
        SendMessage,
        Typing,
        DeleteMessage,
        EditMessage,
        ReactMessage,
        MessageSeen,
        GetAllMessages,
    ],
    Field(discriminator="event"),
]

_inbound_adapter = TypeAdapter(InboundEvent)


def parse_event(frame: Any) -> BaseModel:
    """
    Validate a decoded frame into one of the inbound event models.

    Raises:
        MalformedEvent: unknown event name or payload of the wrong shape
    """
    try:
        return _inbound_adapter.validate_python(frame)
    except ValidationError as e:
        raise MalformedEvent(str(e)) from e


def outbound(event: str, data: Any = None) -> dict:
    """Build an outbound frame."""
    return {"event": event, "data": data}


# =============================================================================
# HTTP Response Models
# =============================================================================

class HealthResponse(BaseModel):
    """Response model for health check endpoints."""
    status: str = Field(..., description="Health status")
