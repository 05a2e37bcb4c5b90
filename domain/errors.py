"""Domain exceptions raised by the realtime core"""


class RealtimeError(Exception):
    """Base class for errors surfaced to socket clients"""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthenticationError(RealtimeError):
    """Handshake credential missing, invalid or bound to an unusable account"""


class MessageValidationError(RealtimeError):
    """A direct message failed validation; nothing was persisted"""


class NotFoundError(RealtimeError):
    """Entity missing or not owned by the requesting user"""
