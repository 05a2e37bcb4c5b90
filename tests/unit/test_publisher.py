"""Unit tests for EmailJobPublisher"""
import pytest
import asyncio
from unittest.mock import AsyncMock, MagicMock

from domain.constants import NotificationType
from domain.models import NotificationEmailJob
from events.publisher import EVENT_TYPE_NOTIFICATION_EMAIL, EmailJobPublisher


@pytest.mark.unit
class TestEmailJobPublisherInitialization:
    """Test EmailJobPublisher initialization"""

    def test_publisher_initialization(self):
        """Test creating EmailJobPublisher instance"""
        queue = asyncio.Queue()
        publisher = EmailJobPublisher(queue)

        assert publisher.queue is queue


@pytest.mark.unit
@pytest.mark.asyncio
class TestEmailJobPublisherPublish:
    """Test EmailJobPublisher publishing jobs"""

    async def test_publish_email_job(self):
        """Test publishing a NotificationEmailJob"""
        queue = asyncio.Queue()
        publisher = EmailJobPublisher(queue)

        job = NotificationEmailJob(
            user_id=7,
            type=NotificationType.REPORT_RESOLVED,
            title="Report resolved",
            message="We reviewed your report",
            data={"reportId": 12},
        )

        await publisher.publish(job)

        assert queue.qsize() == 1
        published = await queue.get()
        assert published == {
            "type": EVENT_TYPE_NOTIFICATION_EMAIL,
            "user_id": 7,
            "notification_type": NotificationType.REPORT_RESOLVED,
            "title": "Report resolved",
            "message": "We reviewed your report",
            "data": {"reportId": 12},
        }

    async def test_publish_preserves_order(self):
        queue = asyncio.Queue()
        publisher = EmailJobPublisher(queue)

        for user_id in (1, 2, 3):
            await publisher.publish(NotificationEmailJob(user_id=user_id, type=NotificationType.WEEKLY_DIGEST, title="t", message="m"))

        assert [(await queue.get())["user_id"] for _ in range(3)] == [1, 2, 3]

    async def test_publish_with_mocked_queue(self):
        """Test that publish delegates to queue.put"""
        queue = MagicMock()
        queue.put = AsyncMock()
        publisher = EmailJobPublisher(queue)

        await publisher.publish(NotificationEmailJob(user_id=1, type=NotificationType.NEW_MESSAGE, title="t", message="m"))

        queue.put.assert_awaited_once()
        assert queue.put.call_args[0][0]["data"] is None
