"""Presence tracking and conversation room membership"""
import logging

from database.marketplace_database import MarketplaceDatabase
from domain.models import AuthenticatedConnection
from domain.rooms import PersonalRoom, conversation_key
from events.tasks import spawn_background
from sockets.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)


class PresenceRegistry:
    """Joins connections to their rooms and records last-seen timestamps"""

    def __init__(self, connection_manager: ConnectionManager, db: MarketplaceDatabase) -> None:
        self.connection_manager = connection_manager
        self.db = db

    async def connect(self, connection: AuthenticatedConnection) -> None:
        """Accept an authenticated socket and join its personal room"""
        await self.connection_manager.connect(connection)
        self.connection_manager.join(connection, PersonalRoom(connection.user_id))
        self._record_last_seen(connection.user_id)
        logger.info(
            "User %s (ID: %s) connected. Total clients: %s",
            connection.user_name, connection.user_id, self.connection_manager.get_connection_count()
        )

    def join(self, connection: AuthenticatedConnection, other_user_id: int) -> None:
        """Join the conversation room shared with other_user_id"""
        self.connection_manager.join(connection, conversation_key(connection.user_id, other_user_id))
        logger.debug("User %s joined conversation with %s", connection.user_id, other_user_id)

    def leave(self, connection: AuthenticatedConnection, other_user_id: int) -> None:
        """Leave the conversation room shared with other_user_id"""
        self.connection_manager.leave(connection, conversation_key(connection.user_id, other_user_id))

    def disconnect(self, connection: AuthenticatedConnection) -> None:
        """Drop the connection from all rooms and stamp last-seen, once per connection"""
        if not self.connection_manager.disconnect(connection):
            return
        self._record_last_seen(connection.user_id)
        logger.info(
            "User %s (ID: %s) disconnected. Total clients: %s",
            connection.user_name, connection.user_id, self.connection_manager.get_connection_count()
        )

    def _record_last_seen(self, user_id: int) -> None:
        spawn_background(self.db.touch_last_seen(user_id), f"last-seen update for user {user_id}")
