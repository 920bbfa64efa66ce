"""
Domain errors raised by the relay components.

The broadcast engine catches these and reports them to the requesting
channel as an ``error`` event. ``MalformedEvent`` is the exception to that
rule: it is logged and counted, never reported.
"""


class RelayError(Exception):
    """Base class for errors reported back to a channel."""

    message = "Request failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class InvalidFormat(RelayError):
    message = "Invalid mobile number format"


class AttachmentTooLarge(RelayError):
    message = "File size exceeds 5MB limit"


class NotFound(RelayError):
    message = "Message not found"


class MalformedEvent(Exception):
    """Inbound frame that cannot be turned into a known event."""
