"""Wire payload formatting for messages and notifications"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from .models import Message, Notification, Participant


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _participant_payload(participant: Participant | None, fallback_id: int) -> dict[str, Any]:
    if participant is None:
        return {"id": fallback_id, "name": ""}
    payload: dict[str, Any] = {"id": participant.id, "name": participant.name}
    if participant.avatar:
        payload["avatar"] = participant.avatar
    return payload


def serialize_message(message: Message) -> dict[str, Any]:
    """Return the full message payload sent to conversation rooms and senders"""
    payload: dict[str, Any] = {
        "id": message.id,
        "content": message.content,
        "isRead": message.is_read,
        "createdAt": _isoformat(message.created_at),
        "sender": _participant_payload(message.sender, message.sender_id),
        "receiver": _participant_payload(message.receiver, message.receiver_id),
    }
    if message.listing_id is not None:
        payload["listingId"] = message.listing_id
    return payload


def serialize_message_notification(message: Message, sender_name: str) -> dict[str, Any]:
    """Return the lightweight preview pushed to the receiver's personal room"""
    payload: dict[str, Any] = {
        "senderId": message.sender_id,
        "senderName": sender_name,
        "content": message.content,
    }
    if message.listing_id is not None:
        payload["listingId"] = message.listing_id
    return payload


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the full notification payload"""
    return {
        "id": notification.id,
        "type": notification.type.value,
        "title": notification.title,
        "message": notification.message,
        "data": notification.data,
        "read": notification.read,
        "createdAt": _isoformat(notification.created_at),
    }
