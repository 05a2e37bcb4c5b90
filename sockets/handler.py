"""WebSocket connection handling and event routing"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from domain.constants import (
    ERROR_INVALID_FORMAT,
    ERROR_MARK_ALL_NOTIFICATIONS_FAILED,
    ERROR_MARK_NOTIFICATION_FAILED,
    ERROR_NOTIFICATION_COUNT_FAILED,
    EVENT_ALL_NOTIFICATIONS_MARKED_READ,
    EVENT_ERROR,
    EVENT_GET_NOTIFICATION_COUNT,
    EVENT_JOIN_CONVERSATION,
    EVENT_LEAVE_CONVERSATION,
    EVENT_MARK_ALL_NOTIFICATIONS_READ,
    EVENT_MARK_MESSAGES_READ,
    EVENT_MARK_NOTIFICATION_READ,
    EVENT_MESSAGE_ERROR,
    EVENT_NOTIFICATION_COUNT_UPDATED,
    EVENT_NOTIFICATION_ERROR,
    EVENT_NOTIFICATION_MARKED_READ,
    EVENT_SEND_MESSAGE,
    EVENT_TYPING_START,
    EVENT_TYPING_STOP,
    WS_CLOSE_INTERNAL_ERROR,
    WS_CLOSE_POLICY_VIOLATION,
)
from domain.errors import AuthenticationError, NotFoundError
from domain.models import AuthenticatedConnection
from messaging.exchange import MessageExchange
from messaging.signals import ConversationSignals
from notifications.dispatcher import NotificationDispatcher
from sockets.authenticator import ConnectionAuthenticator
from sockets.connection_manager import ConnectionManager
from sockets.presence import PresenceRegistry
from sockets.schemas import (
    ConversationPayload,
    MarkMessagesReadPayload,
    MarkNotificationReadPayload,
    SendMessagePayload,
    TypingPayload,
)

logger = logging.getLogger(__name__)


@dataclass
class RealtimeServices:
    """Components a connection's handlers talk to, wired once at startup"""
    connection_manager: ConnectionManager
    authenticator: ConnectionAuthenticator
    presence: PresenceRegistry
    exchange: MessageExchange
    signals: ConversationSignals
    dispatcher: NotificationDispatcher


EventHandler = Callable[[AuthenticatedConnection, Any, RealtimeServices], Awaitable[None]]


def parse_frame(raw: str) -> tuple[str, Any]:
    """Split an incoming frame into event name and payload

    Raises:
        ValueError: the frame is not a JSON object with a string "event"
    """
    frame = json.loads(raw)
    if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
        raise ValueError("Frame must be an object with an 'event' name")
    return frame["event"], frame.get("data")


async def on_join_conversation(connection: AuthenticatedConnection, data: Any, services: RealtimeServices) -> None:
    try:
        payload = ConversationPayload.model_validate(data)
    except ValidationError:
        await services.connection_manager.send(connection, EVENT_ERROR, {"message": "Failed to join conversation"})
        return
    services.presence.join(connection, payload.other_user_id)


async def on_leave_conversation(connection: AuthenticatedConnection, data: Any, services: RealtimeServices) -> None:
    try:
        payload = ConversationPayload.model_validate(data)
    except ValidationError:
        await services.connection_manager.send(connection, EVENT_ERROR, {"message": "Failed to leave conversation"})
        return
    services.presence.leave(connection, payload.other_user_id)


async def on_send_message(connection: AuthenticatedConnection, data: Any, services: RealtimeServices) -> None:
    try:
        payload = SendMessagePayload.model_validate(data)
    except ValidationError:
        await services.connection_manager.send(connection, EVENT_MESSAGE_ERROR, {"message": ERROR_INVALID_FORMAT})
        return
    await services.exchange.send_message(connection, payload.content, payload.receiver_id, payload.listing_id)


async def on_typing_start(connection: AuthenticatedConnection, data: Any, services: RealtimeServices) -> None:
    try:
        payload = TypingPayload.model_validate(data)
    except ValidationError:
        await services.connection_manager.send(connection, EVENT_ERROR, {"message": ERROR_INVALID_FORMAT})
        return
    await services.signals.typing_start(connection, payload.receiver_id)


async def on_typing_stop(connection: AuthenticatedConnection, data: Any, services: RealtimeServices) -> None:
    try:
        payload = TypingPayload.model_validate(data)
    except ValidationError:
        await services.connection_manager.send(connection, EVENT_ERROR, {"message": ERROR_INVALID_FORMAT})
        return
    await services.signals.typing_stop(connection, payload.receiver_id)


async def on_mark_messages_read(connection: AuthenticatedConnection, data: Any, services: RealtimeServices) -> None:
    try:
        payload = MarkMessagesReadPayload.model_validate(data)
    except ValidationError:
        await services.connection_manager.send(connection, EVENT_MESSAGE_ERROR, {"message": ERROR_INVALID_FORMAT})
        return
    await services.signals.mark_messages_read(connection, payload.from_user_id)


async def on_mark_notification_read(connection: AuthenticatedConnection, data: Any, services: RealtimeServices) -> None:
    # Clients send the bare id; an object form is accepted too
    try:
        if isinstance(data, dict):
            notification_id = MarkNotificationReadPayload.model_validate(data).notification_id
        else:
            notification_id = MarkNotificationReadPayload.model_validate({"notificationId": data}).notification_id
    except ValidationError:
        await _notification_error(connection, services, ERROR_MARK_NOTIFICATION_FAILED, ERROR_INVALID_FORMAT)
        return

    try:
        await services.dispatcher.mark_notification_as_read(notification_id, connection.user_id)
    except NotFoundError as e:
        await _notification_error(connection, services, ERROR_MARK_NOTIFICATION_FAILED, e.message)
        return
    except Exception as e:
        logger.exception("Error marking notification %s read for user %s", notification_id, connection.user_id)
        await _notification_error(connection, services, ERROR_MARK_NOTIFICATION_FAILED, str(e) or "Unknown error")
        return
    await services.connection_manager.send(connection, EVENT_NOTIFICATION_MARKED_READ, {"notificationId": notification_id})


async def on_mark_all_notifications_read(connection: AuthenticatedConnection, data: Any, services: RealtimeServices) -> None:
    try:
        updated = await services.dispatcher.mark_all_notifications_as_read(connection.user_id)
    except Exception as e:
        logger.exception("Error marking all notifications read for user %s", connection.user_id)
        await _notification_error(connection, services, ERROR_MARK_ALL_NOTIFICATIONS_FAILED, str(e) or "Unknown error")
        return
    await services.connection_manager.send(connection, EVENT_ALL_NOTIFICATIONS_MARKED_READ, {"updatedCount": updated})


async def on_get_notification_count(connection: AuthenticatedConnection, data: Any, services: RealtimeServices) -> None:
    try:
        unread_count = await services.dispatcher.get_unread_count(connection.user_id)
    except Exception as e:
        logger.exception("Error counting notifications for user %s", connection.user_id)
        await _notification_error(connection, services, ERROR_NOTIFICATION_COUNT_FAILED, str(e) or "Unknown error")
        return
    await services.connection_manager.send(connection, EVENT_NOTIFICATION_COUNT_UPDATED, {"unreadCount": unread_count})


async def _notification_error(connection: AuthenticatedConnection, services: RealtimeServices, message: str, error: str) -> None:
    await services.connection_manager.send(connection, EVENT_NOTIFICATION_ERROR, {"message": message, "error": error})


EVENT_HANDLERS: dict[str, EventHandler] = {
    EVENT_JOIN_CONVERSATION: on_join_conversation,
    EVENT_LEAVE_CONVERSATION: on_leave_conversation,
    EVENT_SEND_MESSAGE: on_send_message,
    EVENT_TYPING_START: on_typing_start,
    EVENT_TYPING_STOP: on_typing_stop,
    EVENT_MARK_MESSAGES_READ: on_mark_messages_read,
    EVENT_MARK_NOTIFICATION_READ: on_mark_notification_read,
    EVENT_MARK_ALL_NOTIFICATIONS_READ: on_mark_all_notifications_read,
    EVENT_GET_NOTIFICATION_COUNT: on_get_notification_count,
}


async def process_frame(connection: AuthenticatedConnection, raw: str, services: RealtimeServices) -> None:
    """Parse one frame and run its handler; never raises"""
    try:
        event, data = parse_frame(raw)
    except ValueError:
        logger.info("Invalid frame received from user %s", connection.user_id)
        await services.connection_manager.send(connection, EVENT_ERROR, {"message": ERROR_INVALID_FORMAT})
        return

    handler = EVENT_HANDLERS.get(event)
    if handler is None:
        await services.connection_manager.send(connection, EVENT_ERROR, {"message": f"Unknown event: {event}"})
        return

    try:
        await handler(connection, data, services)
    except Exception:
        logger.exception("Unhandled error in %s handler for user %s", event, connection.user_id)
        await services.connection_manager.send(connection, EVENT_ERROR, {"message": "Internal server error"})


async def close_quietly(websocket: WebSocket, code: int) -> None:
    """Close a socket that may already be gone"""
    try:
        await websocket.close(code=code)
    except (RuntimeError, OSError) as e:
        logger.warning("Could not close socket with code %s: %s", code, e)


async def handle_websocket_connection(websocket: WebSocket, services: RealtimeServices) -> None:
    """Authenticate the socket, then process its events in order until it closes"""
    try:
        connection = await services.authenticator.authenticate(websocket)
    except AuthenticationError as e:
        logger.info("Rejected socket connection: %s", e.message)
        # Reject at handshake, before anything is registered
        await websocket.close(code=WS_CLOSE_POLICY_VIOLATION, reason=e.message)
        return
    except Exception:
        logger.exception("Error authenticating socket connection")
        await websocket.close(code=WS_CLOSE_INTERNAL_ERROR, reason="Authentication failed")
        return

    try:
        await services.presence.connect(connection)
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            raw = message.get("text")
            if raw is None:
                # Binary frames carry no event envelope
                logger.info("Binary frame received from user %s", connection.user_id)
                await services.connection_manager.send(connection, EVENT_ERROR, {"message": ERROR_INVALID_FORMAT})
                continue
            await process_frame(connection, raw, services)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WebSocket error for user %s", connection.user_id)
        await close_quietly(websocket, WS_CLOSE_INTERNAL_ERROR)
    finally:
        services.presence.disconnect(connection)
