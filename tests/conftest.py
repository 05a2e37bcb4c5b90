"""Pytest configuration and shared fixtures for all tests"""
import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from config import Settings
from database.marketplace_database import MarketplaceDatabase
from domain.models import AuthenticatedConnection
from events.publisher import EmailJobPublisher
from events.tasks import drain_background_tasks
from messaging.exchange import MessageExchange
from messaging.signals import ConversationSignals
from notifications.dispatcher import NotificationDispatcher
from sockets.authenticator import ConnectionAuthenticator
from sockets.connection_manager import ConnectionManager
from sockets.handler import RealtimeServices
from sockets.presence import PresenceRegistry

TEST_SECRET = "test-secret-key"


def make_websocket():
    """Create a mock WebSocket whose sent frames can be decoded"""
    ws = AsyncMock()
    ws.accept = AsyncMock()
    ws.send_text = AsyncMock()
    ws.close = AsyncMock()
    return ws


def sent_events(ws) -> list[tuple[str, dict]]:
    """Decode every frame sent through a mock WebSocket as (event, data)"""
    frames = [json.loads(call.args[0]) for call in ws.send_text.call_args_list]
    return [(frame["event"], frame["data"]) for frame in frames]


def event_names(ws) -> list[str]:
    return [event for event, _ in sent_events(ws)]


@pytest.fixture
def settings():
    """Settings with a fixed signing key and in-memory database"""
    return Settings(secret_key=TEST_SECRET, database_path=":memory:")


@pytest.fixture
async def in_memory_db():
    """Create an in-memory SQLite database for testing"""
    db = MarketplaceDatabase(":memory:")
    await db.init()
    yield db
    await drain_background_tasks()
    await db.close()


@pytest.fixture
async def users(in_memory_db):
    """Three verified users and one unverified user"""
    return {
        "alice": await in_memory_db.create_user("Alice", "alice@example.com"),
        "bob": await in_memory_db.create_user("Bob", "bob@example.com"),
        "carol": await in_memory_db.create_user("Carol", "carol@example.com"),
        "mallory": await in_memory_db.create_user("Mallory", "mallory@example.com", is_verified=False),
    }


@pytest.fixture
def connection_manager():
    """Create a ConnectionManager instance for testing"""
    return ConnectionManager()


@pytest.fixture
def email_queue():
    """Create a new email job queue for each test"""
    return asyncio.Queue()


@pytest.fixture
def dispatcher(in_memory_db, connection_manager, email_queue):
    return NotificationDispatcher(in_memory_db, connection_manager, EmailJobPublisher(email_queue))


@pytest.fixture
def presence(in_memory_db, connection_manager):
    return PresenceRegistry(connection_manager, in_memory_db)


@pytest.fixture
def exchange(in_memory_db, connection_manager):
    """MessageExchange without NEW_MESSAGE notifications"""
    return MessageExchange(in_memory_db, connection_manager)


@pytest.fixture
def signals(in_memory_db, connection_manager):
    return ConversationSignals(in_memory_db, connection_manager)


@pytest.fixture
def services(in_memory_db, connection_manager, settings, presence, exchange, signals, dispatcher):
    return RealtimeServices(
        connection_manager=connection_manager,
        authenticator=ConnectionAuthenticator(in_memory_db, settings),
        presence=presence,
        exchange=exchange,
        signals=signals,
        dispatcher=dispatcher,
    )


@pytest.fixture
def connect(users, connection_manager, presence):
    """Factory: open an authenticated mock connection for a named user"""
    names = {"alice": "Alice", "bob": "Bob", "carol": "Carol", "mallory": "Mallory"}

    async def _connect(name: str) -> AuthenticatedConnection:
        connection = AuthenticatedConnection(user_id=users[name], user_name=names[name], websocket=make_websocket())
        await presence.connect(connection)
        return connection

    return _connect


@pytest.fixture
def mock_websocket():
    """Create a mock WebSocket for testing"""
    return make_websocket()


@pytest.fixture
def mock_db():
    """A database double whose coroutine methods can be stubbed per test"""
    db = MagicMock()
    db.get_user = AsyncMock()
    db.listing_exists = AsyncMock(return_value=True)
    db.create_message = AsyncMock()
    db.mark_messages_read = AsyncMock(return_value=0)
    db.touch_last_seen = AsyncMock()
    return db
