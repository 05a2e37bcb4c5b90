"""WebSocket connection registry with room-based broadcast"""
import json
import logging
from typing import Any

from domain.models import AuthenticatedConnection
from domain.rooms import PersonalRoom, RoomKey

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks live connections and the rooms each one has joined

    A connection only ever adds or removes itself, so membership changes
    never race across connections.
    """

    def __init__(self) -> None:
        """Initialize connection manager with no connections or rooms"""
        self.active_connections: dict[str, AuthenticatedConnection] = {}
        self._rooms: dict[RoomKey, dict[str, AuthenticatedConnection]] = {}
        self._memberships: dict[str, set[RoomKey]] = {}

    async def connect(self, connection: AuthenticatedConnection) -> None:
        """Accept the socket and track it"""
        await connection.websocket.accept()
        self.register(connection)

    def register(self, connection: AuthenticatedConnection) -> None:
        """Track an already-accepted connection"""
        self.active_connections[connection.connection_id] = connection
        self._memberships.setdefault(connection.connection_id, set())

    def is_connected(self, connection: AuthenticatedConnection) -> bool:
        return connection.connection_id in self.active_connections

    def join(self, connection: AuthenticatedConnection, room: RoomKey) -> None:
        """Add the connection to a room; joining twice is a no-op"""
        if not self.is_connected(connection):
            return
        self._rooms.setdefault(room, {})[connection.connection_id] = connection
        self._memberships[connection.connection_id].add(room)

    def leave(self, connection: AuthenticatedConnection, room: RoomKey) -> None:
        """Remove the connection from a room if it is a member"""
        members = self._rooms.get(room)
        if members is not None:
            members.pop(connection.connection_id, None)
            if not members:
                self._rooms.pop(room, None)
        memberships = self._memberships.get(connection.connection_id)
        if memberships is not None:
            memberships.discard(room)

    def disconnect(self, connection: AuthenticatedConnection) -> bool:
        """Drop the connection from every room

        Returns True only for the call that actually removed it.
        """
        if self.active_connections.pop(connection.connection_id, None) is None:
            return False
        for room in self._memberships.pop(connection.connection_id, set()):
            members = self._rooms.get(room)
            if members is None:
                continue
            members.pop(connection.connection_id, None)
            if not members:
                self._rooms.pop(room, None)
        return True

    def rooms_of(self, connection: AuthenticatedConnection) -> set[RoomKey]:
        """Rooms the connection currently belongs to"""
        return set(self._memberships.get(connection.connection_id, set()))

    def room_members(self, room: RoomKey) -> list[AuthenticatedConnection]:
        return list(self._rooms.get(room, {}).values())

    async def send(self, connection: AuthenticatedConnection, event: str, data: Any) -> bool:
        """Send one event to a single connection

        Send failures are logged; the connection's own receive loop owns teardown.
        """
        message_text = json.dumps({"event": event, "data": data})
        try:
            await connection.websocket.send_text(message_text)
        except Exception as e:
            logger.warning("Error sending %s to connection %s (user %s): %s", event, connection.connection_id, connection.user_id, e)
            return False
        return True

    async def emit_to_room(self, room: RoomKey, event: str, data: Any, exclude: AuthenticatedConnection | None = None) -> int:
        """Send an event to every member of a room

        Args:
            room: Room to broadcast to
            event: Event name
            data: JSON-serializable payload
            exclude: Connection to skip, typically the sender

        Returns:
            Number of connections the event was delivered to
        """
        delivered = 0
        for connection in self.room_members(room):
            if exclude is not None and connection.connection_id == exclude.connection_id:
                continue
            if await self.send(connection, event, data):
                delivered += 1
        return delivered

    async def emit_to_user(self, user_id: int, event: str, data: Any) -> int:
        """Send an event to every connection of one user via their personal room"""
        return await self.emit_to_room(PersonalRoom(user_id), event, data)

    def get_connection_count(self) -> int:
        """Get the number of active connections"""
        return len(self.active_connections)

    def get_user_connection_count(self, user_id: int) -> int:
        return len(self._rooms.get(PersonalRoom(user_id), {}))
