"""Database access layer for messages, notifications and their owners"""
import json
import logging
from datetime import datetime, timezone
from typing import Any

import aiosqlite

from domain.constants import NotificationType
from domain.models import Message, Notification, NotificationEmailJob, NotificationSetting, Participant, User

logger = logging.getLogger(__name__)

# Database path
DB_PATH = "marketplace.db"

SETTING_FIELDS = (
    "email_notifications",
    "new_message_email",
    "search_match_email",
    "listing_inquiry_email",
    "listing_favorited_email",
    "report_resolved_email",
    "weekly_digest_email",
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class MarketplaceDatabase:
    """Manages the SQLite store backing the realtime core"""

    def __init__(self, db_path: str = DB_PATH) -> None:
        self.db_path = db_path
        self.conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        """Initialize database and create tables"""
        self.conn = await aiosqlite.connect(self.db_path)
        assert self.conn is not None
        self.conn.row_factory = aiosqlite.Row

        await self.conn.execute("PRAGMA foreign_keys = ON")

        await self.conn.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                email TEXT NOT NULL DEFAULT '',
                avatar TEXT,
                is_verified INTEGER NOT NULL DEFAULT 0,
                last_seen TEXT
            )
        """)

        await self.conn.execute("""
            CREATE TABLE IF NOT EXISTS listings (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                owner_id INTEGER,
                FOREIGN KEY (owner_id) REFERENCES users(id)
            )
        """)

        await self.conn.execute("""
            CREATE TABLE IF NOT EXISTS messages (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                content TEXT NOT NULL,
                sender_id INTEGER NOT NULL,
                receiver_id INTEGER NOT NULL,
                listing_id INTEGER,
                is_read INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                FOREIGN KEY (sender_id) REFERENCES users(id),
                FOREIGN KEY (receiver_id) REFERENCES users(id),
                FOREIGN KEY (listing_id) REFERENCES listings(id),
                CHECK (sender_id <> receiver_id)
            )
        """)

        await self.conn.execute("""
            CREATE TABLE IF NOT EXISTS notifications (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                type TEXT NOT NULL,
                title TEXT NOT NULL,
                message TEXT NOT NULL,
                data TEXT,
                read INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                FOREIGN KEY (user_id) REFERENCES users(id)
            )
        """)

        await self.conn.execute("""
            CREATE TABLE IF NOT EXISTS notification_settings (
                user_id INTEGER PRIMARY KEY,
                email_notifications INTEGER NOT NULL DEFAULT 1,
                new_message_email INTEGER NOT NULL DEFAULT 1,
                search_match_email INTEGER NOT NULL DEFAULT 1,
                listing_inquiry_email INTEGER NOT NULL DEFAULT 1,
                listing_favorited_email INTEGER NOT NULL DEFAULT 0,
                report_resolved_email INTEGER NOT NULL DEFAULT 1,
                weekly_digest_email INTEGER NOT NULL DEFAULT 1,
                FOREIGN KEY (user_id) REFERENCES users(id)
            )
        """)

        # Outbound email jobs picked up by the mail worker
        await self.conn.execute("""
            CREATE TABLE IF NOT EXISTS notification_queue (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                type TEXT NOT NULL,
                title TEXT NOT NULL,
                message TEXT NOT NULL,
                data TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY (user_id) REFERENCES users(id)
            )
        """)

        await self.conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_messages_pair
            ON messages(sender_id, receiver_id, is_read)
        """)

        await self.conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_notifications_user
            ON notifications(user_id, read)
        """)

        await self.conn.commit()
        logger.info("Database initialized at %s", self.db_path)

    async def close(self) -> None:
        """Close database connection"""
        if self.conn:
            await self.conn.close()
            self.conn = None

    # Users and listings

    async def create_user(self, name: str, email: str = "", is_verified: bool = True, avatar: str | None = None) -> int:
        """Insert a user and return its id"""
        assert self.conn is not None
        cursor = await self.conn.execute(
            "INSERT INTO users (name, email, avatar, is_verified) VALUES (?, ?, ?, ?)",
            (name, email, avatar, int(is_verified))
        )
        await self.conn.commit()
        return cursor.lastrowid

    async def get_user(self, user_id: int) -> User | None:
        """Look up a user by id"""
        assert self.conn is not None
        cursor = await self.conn.execute(
            "SELECT id, name, email, avatar, is_verified, last_seen FROM users WHERE id = ?",
            (user_id,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return User(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            avatar=row["avatar"],
            is_verified=bool(row["is_verified"]),
            last_seen=_parse_timestamp(row["last_seen"]),
        )

    async def touch_last_seen(self, user_id: int) -> None:
        """Record that the user was seen now"""
        assert self.conn is not None
        await self.conn.execute(
            "UPDATE users SET last_seen = ? WHERE id = ?",
            (_now().isoformat(), user_id)
        )
        await self.conn.commit()

    async def create_listing(self, title: str, owner_id: int | None = None) -> int:
        """Insert a listing and return its id"""
        assert self.conn is not None
        cursor = await self.conn.execute(
            "INSERT INTO listings (title, owner_id) VALUES (?, ?)",
            (title, owner_id)
        )
        await self.conn.commit()
        return cursor.lastrowid

    async def listing_exists(self, listing_id: int) -> bool:
        """Check whether a listing with this id exists"""
        assert self.conn is not None
        cursor = await self.conn.execute("SELECT 1 FROM listings WHERE id = ?", (listing_id,))
        return await cursor.fetchone() is not None

    # Messages

    async def create_message(self, sender_id: int, receiver_id: int, content: str, listing_id: int | None = None) -> Message:
        """Persist a direct message and return it with sender/receiver identity"""
        assert self.conn is not None
        created_at = _now()
        cursor = await self.conn.execute(
            "INSERT INTO messages (content, sender_id, receiver_id, listing_id, is_read, created_at) VALUES (?, ?, ?, ?, 0, ?)",
            (content, sender_id, receiver_id, listing_id, created_at.isoformat())
        )
        await self.conn.commit()
        message = await self.get_message(cursor.lastrowid)
        assert message is not None
        return message

    async def get_message(self, message_id: int) -> Message | None:
        """Load one message joined with both participants"""
        assert self.conn is not None
        cursor = await self.conn.execute(
            """
            SELECT m.id, m.content, m.sender_id, m.receiver_id, m.listing_id, m.is_read, m.created_at,
                   s.name AS sender_name, s.avatar AS sender_avatar,
                   r.name AS receiver_name, r.avatar AS receiver_avatar
            FROM messages m
            JOIN users s ON s.id = m.sender_id
            JOIN users r ON r.id = m.receiver_id
            WHERE m.id = ?
            """,
            (message_id,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return Message(
            id=row["id"],
            content=row["content"],
            sender_id=row["sender_id"],
            receiver_id=row["receiver_id"],
            listing_id=row["listing_id"],
            is_read=bool(row["is_read"]),
            created_at=_parse_timestamp(row["created_at"]),
            sender=Participant(id=row["sender_id"], name=row["sender_name"], avatar=row["sender_avatar"]),
            receiver=Participant(id=row["receiver_id"], name=row["receiver_name"], avatar=row["receiver_avatar"]),
        )

    async def mark_messages_read(self, receiver_id: int, sender_id: int) -> int:
        """Flip every unread message from sender_id to receiver_id; returns rows changed"""
        assert self.conn is not None
        cursor = await self.conn.execute(
            "UPDATE messages SET is_read = 1 WHERE sender_id = ? AND receiver_id = ? AND is_read = 0",
            (sender_id, receiver_id)
        )
        await self.conn.commit()
        return cursor.rowcount

    async def count_unread_messages(self, receiver_id: int, sender_id: int | None = None) -> int:
        """Count unread messages addressed to receiver_id, optionally from one sender"""
        assert self.conn is not None
        if sender_id is None:
            cursor = await self.conn.execute(
                "SELECT COUNT(*) FROM messages WHERE receiver_id = ? AND is_read = 0",
                (receiver_id,)
            )
        else:
            cursor = await self.conn.execute(
                "SELECT COUNT(*) FROM messages WHERE receiver_id = ? AND sender_id = ? AND is_read = 0",
                (receiver_id, sender_id)
            )
        row = await cursor.fetchone()
        return row[0]

    # Notifications

    async def create_notification(
        self,
        user_id: int,
        notification_type: NotificationType,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> Notification:
        """Persist an unread notification"""
        assert self.conn is not None
        created_at = _now()
        cursor = await self.conn.execute(
            "INSERT INTO notifications (user_id, type, title, message, data, read, created_at) VALUES (?, ?, ?, ?, ?, 0, ?)",
            (user_id, notification_type.value, title, message, _dump_json(data), created_at.isoformat())
        )
        await self.conn.commit()
        return Notification(
            id=cursor.lastrowid,
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            data=data,
            read=False,
            created_at=created_at,
        )

    async def get_notification(self, notification_id: int, user_id: int) -> Notification | None:
        """Load a notification only if it belongs to user_id"""
        assert self.conn is not None
        cursor = await self.conn.execute(
            "SELECT id, user_id, type, title, message, data, read, created_at FROM notifications WHERE id = ? AND user_id = ?",
            (notification_id, user_id)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return Notification(
            id=row["id"],
            user_id=row["user_id"],
            type=NotificationType(row["type"]),
            title=row["title"],
            message=row["message"],
            data=json.loads(row["data"]) if row["data"] else None,
            read=bool(row["read"]),
            created_at=_parse_timestamp(row["created_at"]),
        )

    async def mark_notification_read(self, notification_id: int, user_id: int) -> int:
        """Flip one notification to read, scoped to its owner"""
        assert self.conn is not None
        cursor = await self.conn.execute(
            "UPDATE notifications SET read = 1 WHERE id = ? AND user_id = ?",
            (notification_id, user_id)
        )
        await self.conn.commit()
        return cursor.rowcount

    async def mark_all_notifications_read(self, user_id: int) -> int:
        """Flip every unread notification of user_id; returns rows changed"""
        assert self.conn is not None
        cursor = await self.conn.execute(
            "UPDATE notifications SET read = 1 WHERE user_id = ? AND read = 0",
            (user_id,)
        )
        await self.conn.commit()
        return cursor.rowcount

    async def count_unread_notifications(self, user_id: int) -> int:
        """Count unread notifications straight from the store"""
        assert self.conn is not None
        cursor = await self.conn.execute(
            "SELECT COUNT(*) FROM notifications WHERE user_id = ? AND read = 0",
            (user_id,)
        )
        row = await cursor.fetchone()
        return row[0]

    # Notification settings

    async def get_notification_settings(self, user_id: int) -> NotificationSetting | None:
        """Load the user's settings row, if it was ever created"""
        assert self.conn is not None
        cursor = await self.conn.execute(
            f"SELECT user_id, {', '.join(SETTING_FIELDS)} FROM notification_settings WHERE user_id = ?",
            (user_id,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return NotificationSetting(user_id=row["user_id"], **{name: bool(row[name]) for name in SETTING_FIELDS})

    async def get_or_create_notification_settings(self, user_id: int) -> NotificationSetting:
        """Return the user's settings, inserting the default row on first access"""
        assert self.conn is not None
        await self.conn.execute(
            "INSERT OR IGNORE INTO notification_settings (user_id) VALUES (?)",
            (user_id,)
        )
        await self.conn.commit()
        settings = await self.get_notification_settings(user_id)
        assert settings is not None
        return settings

    async def upsert_notification_settings(self, user_id: int, values: dict[str, bool]) -> NotificationSetting:
        """Create or update the user's settings with the given toggles"""
        assert self.conn is not None
        unknown = set(values) - set(SETTING_FIELDS)
        if unknown:
            raise ValueError(f"Unknown notification settings: {', '.join(sorted(unknown))}")
        await self.conn.execute(
            "INSERT OR IGNORE INTO notification_settings (user_id) VALUES (?)",
            (user_id,)
        )
        if values:
            assignments = ", ".join(f"{name} = ?" for name in values)
            await self.conn.execute(
                f"UPDATE notification_settings SET {assignments} WHERE user_id = ?",
                (*(int(value) for value in values.values()), user_id)
            )
        await self.conn.commit()
        settings = await self.get_notification_settings(user_id)
        assert settings is not None
        return settings

    # Email queue

    async def enqueue_notification_email(self, job: NotificationEmailJob) -> int:
        """Store an outbound email job for the mail worker"""
        assert self.conn is not None
        cursor = await self.conn.execute(
            "INSERT INTO notification_queue (user_id, type, title, message, data, created_at) VALUES (?, ?, ?, ?, ?, ?)",
            (job.user_id, job.type.value, job.title, job.message, _dump_json(job.data), _now().isoformat())
        )
        await self.conn.commit()
        return cursor.lastrowid

    async def list_queued_emails(self, user_id: int) -> list[dict]:
        """Return queued email jobs for a user, oldest first"""
        assert self.conn is not None
        cursor = await self.conn.execute(
            "SELECT id, user_id, type, title, message, data, created_at FROM notification_queue WHERE user_id = ? ORDER BY id ASC",
            (user_id,)
        )
        rows = await cursor.fetchall()
        return [
            {
                "id": row["id"],
                "user_id": row["user_id"],
                "type": row["type"],
                "title": row["title"],
                "message": row["message"],
                "data": json.loads(row["data"]) if row["data"] else None,
                "created_at": row["created_at"],
            }
            for row in rows
        ]


def _dump_json(data: dict[str, Any] | None) -> str | None:
    return json.dumps(data) if data is not None else None
