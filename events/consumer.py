"""Event consuming for outbound notification emails"""
import asyncio
import logging

from database.marketplace_database import MarketplaceDatabase
from domain.models import NotificationEmailJob
from events.publisher import EVENT_TYPE_NOTIFICATION_EMAIL

logger = logging.getLogger(__name__)


class EmailJobConsumer:
    """Drains email jobs from the queue into the persistent mail queue"""

    def __init__(self, queue: asyncio.Queue[dict], db: MarketplaceDatabase) -> None:
        self.queue = queue
        self.db = db

    async def consume(self) -> None:
        """Continuously consume and process events"""
        while True:
            event = await self.queue.get()
            try:
                await self.handle_event(event)
            except Exception:
                logger.exception("Failed to queue notification email for user %s", event.get("user_id"))
            finally:
                self.queue.task_done()

    async def handle_event(self, event: dict) -> None:
        """Route event to the matching handler"""
        if event.get("type") == EVENT_TYPE_NOTIFICATION_EMAIL:
            await self.handle_notification_email(event)
        else:
            logger.warning("Ignoring unknown event type: %s", event.get("type"))

    async def handle_notification_email(self, event: dict) -> None:
        job = NotificationEmailJob(
            user_id=event["user_id"],
            type=event["notification_type"],
            title=event["title"],
            message=event["message"],
            data=event.get("data"),
        )
        job_id = await self.db.enqueue_notification_email(job)
        logger.info("Queued %s email job %s for user %s", job.type.value, job_id, job.user_id)
