"""Inbound event payload schemas"""
from pydantic import BaseModel, ConfigDict, Field


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ConversationPayload(_Payload):
    other_user_id: int = Field(alias="otherUserId")


class SendMessagePayload(_Payload):
    content: str | None = None
    receiver_id: int = Field(alias="receiverId")
    listing_id: int | None = Field(default=None, alias="listingId")


class TypingPayload(_Payload):
    receiver_id: int = Field(alias="receiverId")


class MarkMessagesReadPayload(_Payload):
    from_user_id: int = Field(alias="fromUserId")


class MarkNotificationReadPayload(_Payload):
    notification_id: int = Field(alias="notificationId")
