"""Notification creation, read-state changes and unread-count fan-out"""
import logging
from typing import Any

from database.marketplace_database import MarketplaceDatabase
from domain.constants import (
    ERROR_NOTIFICATION_NOT_FOUND,
    EVENT_NEW_NOTIFICATION,
    EVENT_NOTIFICATION_COUNT_UPDATED,
    NotificationType,
)
from domain.errors import NotFoundError
from domain.models import Notification, NotificationEmailJob, NotificationSetting
from domain.serializers import serialize_notification
from events.publisher import EmailJobPublisher
from events.tasks import spawn_background
from notifications.preferences import email_enabled_for
from sockets.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Persists notifications and keeps every open client's unread count in sync

    The broadcast substrate is injected at wiring time. The unread count is
    always recomputed from the database, never cached.
    """

    def __init__(self, db: MarketplaceDatabase, connection_manager: ConnectionManager, email_publisher: EmailJobPublisher) -> None:
        self.db = db
        self.connection_manager = connection_manager
        self.email_publisher = email_publisher

    async def create_notification(
        self,
        user_id: int,
        notification_type: NotificationType,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> Notification:
        """Persist a notification, push it and the new unread count, and queue email if wanted

        Raises whatever the store raises; in that case nothing is emitted.
        """
        notification = await self.db.create_notification(user_id, notification_type, title, message, data)
        unread_count = await self.get_unread_count(user_id)

        await self.connection_manager.emit_to_user(user_id, EVENT_NEW_NOTIFICATION, serialize_notification(notification))
        await self.connection_manager.emit_to_user(user_id, EVENT_NOTIFICATION_COUNT_UPDATED, {"unreadCount": unread_count})

        spawn_background(self._queue_email(notification), f"email job for notification {notification.id}")
        return notification

    async def mark_notification_as_read(self, notification_id: int, user_id: int) -> Notification:
        """Mark one of the user's notifications read

        Raises:
            NotFoundError: the notification does not exist or belongs to someone else
        """
        notification = await self.db.get_notification(notification_id, user_id)
        if notification is None:
            raise NotFoundError(ERROR_NOTIFICATION_NOT_FOUND)

        await self.db.mark_notification_read(notification_id, user_id)
        notification.read = True
        await self.emit_unread_count(user_id)
        return notification

    async def mark_all_notifications_as_read(self, user_id: int) -> int:
        """Mark every notification of the user read; returns how many changed"""
        updated = await self.db.mark_all_notifications_read(user_id)
        # Sent even when nothing changed so every client converges on zero
        await self.connection_manager.emit_to_user(user_id, EVENT_NOTIFICATION_COUNT_UPDATED, {"unreadCount": 0})
        return updated

    async def get_unread_count(self, user_id: int) -> int:
        return await self.db.count_unread_notifications(user_id)

    async def emit_unread_count(self, user_id: int) -> int:
        """Recompute the unread count and push it to all of the user's connections"""
        unread_count = await self.get_unread_count(user_id)
        await self.connection_manager.emit_to_user(user_id, EVENT_NOTIFICATION_COUNT_UPDATED, {"unreadCount": unread_count})
        return unread_count

    async def get_notification_settings(self, user_id: int) -> NotificationSetting:
        """Return the user's settings, creating the default row on first access"""
        return await self.db.get_or_create_notification_settings(user_id)

    async def update_notification_settings(self, user_id: int, **toggles: bool) -> NotificationSetting:
        """Upsert the given toggles; unknown names raise ValueError"""
        return await self.db.upsert_notification_settings(user_id, toggles)

    async def _queue_email(self, notification: Notification) -> None:
        settings = await self.db.get_or_create_notification_settings(notification.user_id)
        if not email_enabled_for(notification.type, settings):
            logger.debug("Email disabled for %s notifications of user %s", notification.type.value, notification.user_id)
            return
        await self.email_publisher.publish(NotificationEmailJob(
            user_id=notification.user_id,
            type=notification.type,
            title=notification.title,
            message=notification.message,
            data=notification.data,
        ))
