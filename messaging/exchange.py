"""Direct message validation, persistence and fan-out"""
import logging

from database.marketplace_database import MarketplaceDatabase
from domain.constants import (
    ERROR_CONTENT_REQUIRED,
    ERROR_LISTING_NOT_FOUND,
    ERROR_RECEIVER_NOT_FOUND,
    ERROR_SELF_MESSAGE,
    ERROR_SEND_FAILED,
    EVENT_MESSAGE_ERROR,
    EVENT_MESSAGE_NOTIFICATION,
    EVENT_MESSAGE_SENT,
    EVENT_NEW_MESSAGE,
    NotificationType,
)
from domain.errors import MessageValidationError
from domain.models import AuthenticatedConnection, Message
from domain.rooms import conversation_key
from domain.serializers import serialize_message, serialize_message_notification
from events.tasks import spawn_background
from notifications.dispatcher import NotificationDispatcher
from sockets.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)


class MessageExchange:
    """Routes direct messages between users"""

    def __init__(
        self,
        db: MarketplaceDatabase,
        connection_manager: ConnectionManager,
        dispatcher: NotificationDispatcher | None = None,
        notify_new_message: bool = True,
    ) -> None:
        self.db = db
        self.connection_manager = connection_manager
        self.dispatcher = dispatcher
        self.notify_new_message = notify_new_message

    async def validate(self, sender_id: int, content: str | None, receiver_id: int, listing_id: int | None) -> str:
        """Check a message before it is stored; returns the trimmed content

        Raises:
            MessageValidationError: with the reason reported back to the sender
        """
        content = (content or "").strip()
        if not content:
            raise MessageValidationError(ERROR_CONTENT_REQUIRED)

        receiver = await self.db.get_user(receiver_id)
        if receiver is None:
            raise MessageValidationError(ERROR_RECEIVER_NOT_FOUND)

        if sender_id == receiver_id:
            raise MessageValidationError(ERROR_SELF_MESSAGE)

        if listing_id is not None and not await self.db.listing_exists(listing_id):
            raise MessageValidationError(ERROR_LISTING_NOT_FOUND)

        return content

    async def send_message(
        self,
        sender: AuthenticatedConnection,
        content: str | None,
        receiver_id: int,
        listing_id: int | None = None,
    ) -> Message | None:
        """Validate, persist and fan out a message

        Emission order is conversation room, receiver's personal room, then the
        sender's acknowledgement. Failures reach the sender as message_error and
        nothing is broadcast. Returns the stored message, or None on failure.
        """
        try:
            content = await self.validate(sender.user_id, content, receiver_id, listing_id)
            message = await self.db.create_message(sender.user_id, receiver_id, content, listing_id)
        except MessageValidationError as e:
            logger.info("Rejected message from user %s: %s", sender.user_id, e.message)
            await self.connection_manager.send(sender, EVENT_MESSAGE_ERROR, {"message": e.message})
            return None
        except Exception:
            logger.exception("Error sending message from user %s to %s", sender.user_id, receiver_id)
            await self.connection_manager.send(sender, EVENT_MESSAGE_ERROR, {"message": ERROR_SEND_FAILED})
            return None

        payload = serialize_message(message)
        await self.connection_manager.emit_to_room(conversation_key(sender.user_id, receiver_id), EVENT_NEW_MESSAGE, payload)
        await self.connection_manager.emit_to_user(
            receiver_id, EVENT_MESSAGE_NOTIFICATION, serialize_message_notification(message, sender.user_name)
        )
        await self.connection_manager.send(sender, EVENT_MESSAGE_SENT, payload)

        if self.dispatcher is not None and self.notify_new_message:
            spawn_background(self._notify_receiver(message, sender.user_name), f"NEW_MESSAGE notification for message {message.id}")
        return message

    async def _notify_receiver(self, message: Message, sender_name: str) -> None:
        data = {"senderId": message.sender_id, "messageId": message.id}
        if message.listing_id is not None:
            data["listingId"] = message.listing_id
        await self.dispatcher.create_notification(
            message.receiver_id,
            NotificationType.NEW_MESSAGE,
            "New message",
            f"{sender_name} sent you a message",
            data,
        )
