"""Typing indicators and read receipts"""
import logging

from database.marketplace_database import MarketplaceDatabase
from domain.constants import (
    ERROR_MARK_MESSAGES_FAILED,
    EVENT_MESSAGE_ERROR,
    EVENT_MESSAGES_MARKED_READ,
    EVENT_MESSAGES_READ,
    EVENT_USER_STOPPED_TYPING,
    EVENT_USER_TYPING,
)
from domain.models import AuthenticatedConnection
from domain.rooms import conversation_key
from sockets.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)


class ConversationSignals:
    """Relays ephemeral typing state and persists read receipts"""

    def __init__(self, db: MarketplaceDatabase, connection_manager: ConnectionManager) -> None:
        self.db = db
        self.connection_manager = connection_manager

    async def typing_start(self, connection: AuthenticatedConnection, receiver_id: int) -> None:
        await self.connection_manager.emit_to_room(
            conversation_key(connection.user_id, receiver_id),
            EVENT_USER_TYPING,
            {"userId": connection.user_id, "userName": connection.user_name},
            exclude=connection,
        )

    async def typing_stop(self, connection: AuthenticatedConnection, receiver_id: int) -> None:
        await self.connection_manager.emit_to_room(
            conversation_key(connection.user_id, receiver_id),
            EVENT_USER_STOPPED_TYPING,
            {"userId": connection.user_id},
            exclude=connection,
        )

    async def mark_messages_read(self, connection: AuthenticatedConnection, from_user_id: int) -> int | None:
        """Mark everything from_user_id sent to this user as read

        Notifies every connection of the original sender and acknowledges the
        caller. Returns the number of messages flipped, or None on failure.
        """
        try:
            count = await self.db.mark_messages_read(connection.user_id, from_user_id)
        except Exception:
            logger.exception("Error marking messages from %s read for user %s", from_user_id, connection.user_id)
            await self.connection_manager.send(connection, EVENT_MESSAGE_ERROR, {"message": ERROR_MARK_MESSAGES_FAILED})
            return None

        await self.connection_manager.emit_to_user(
            from_user_id,
            EVENT_MESSAGES_READ,
            {"readBy": connection.user_id, "readByName": connection.user_name, "count": count},
        )
        await self.connection_manager.send(connection, EVENT_MESSAGES_MARKED_READ, {"count": count})
        return count
