"""Event publishing for outbound notification emails"""
import asyncio

from domain.models import NotificationEmailJob

EVENT_TYPE_NOTIFICATION_EMAIL = "notification_email"


class EmailJobPublisher:
    """Publishes email jobs to the event queue"""

    def __init__(self, queue: asyncio.Queue[dict]) -> None:
        self.queue = queue

    async def publish(self, job: NotificationEmailJob) -> None:
        """Publish an email job to the queue"""
        await self.queue.put({
            "type": EVENT_TYPE_NOTIFICATION_EMAIL,
            "user_id": job.user_id,
            "notification_type": job.type,
            "title": job.title,
            "message": job.message,
            "data": job.data,
        })
