"""Domain models for the realtime messaging system"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from fastapi import WebSocket

from .constants import NotificationType


@dataclass
class User:
    """Represents a marketplace user as seen by the realtime core"""
    id: int
    name: str
    email: str = ""
    avatar: str | None = None
    is_verified: bool = False
    last_seen: datetime | None = None


@dataclass
class Participant:
    """Denormalised identity attached to a message for response shaping"""
    id: int
    name: str
    avatar: str | None = None


@dataclass
class Message:
    """A persisted direct message between two users

    The read flag only ever flips from False to True.
    """
    id: int
    content: str
    sender_id: int
    receiver_id: int
    created_at: datetime
    listing_id: int | None = None
    is_read: bool = False
    sender: Participant | None = None
    receiver: Participant | None = None


@dataclass
class Notification:
    """A persisted notification owned by one user"""
    id: int
    user_id: int
    type: NotificationType
    title: str
    message: str
    created_at: datetime
    data: dict[str, Any] | None = None
    read: bool = False


@dataclass
class NotificationSetting:
    """Per-user email preferences; defaults mirror a freshly created row"""
    user_id: int
    email_notifications: bool = True
    new_message_email: bool = True
    search_match_email: bool = True
    listing_inquiry_email: bool = True
    listing_favorited_email: bool = False
    report_resolved_email: bool = True
    weekly_digest_email: bool = True


@dataclass
class NotificationEmailJob:
    """Event: an outbound email should be sent for a notification"""
    user_id: int
    type: NotificationType
    title: str
    message: str
    data: dict[str, Any] | None = None


@dataclass(frozen=True)
class AuthenticatedConnection:
    """A live socket whose handshake resolved to a verified user

    Identity is fixed for the lifetime of the socket.
    """
    user_id: int
    user_name: str
    websocket: WebSocket = field(compare=False, repr=False)
    connection_id: str = field(default_factory=lambda: uuid.uuid4().hex)
