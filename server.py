"""Main FastAPI application - realtime messaging and notification server"""
import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket
import uvicorn

from config import Settings, get_settings
from database.marketplace_database import MarketplaceDatabase
from events.consumer import EmailJobConsumer
from events.publisher import EmailJobPublisher
from events.tasks import drain_background_tasks
from messaging.exchange import MessageExchange
from messaging.signals import ConversationSignals
from notifications.dispatcher import NotificationDispatcher
from sockets.authenticator import ConnectionAuthenticator
from sockets.connection_manager import ConnectionManager
from sockets.handler import RealtimeServices, handle_websocket_connection
from sockets.presence import PresenceRegistry

logger = logging.getLogger(__name__)


def build_services(db: MarketplaceDatabase, settings: Settings, email_queue: asyncio.Queue[dict]) -> RealtimeServices:
    """Wire every component around one shared connection manager"""
    connection_manager = ConnectionManager()
    dispatcher = NotificationDispatcher(db, connection_manager, EmailJobPublisher(email_queue))
    return RealtimeServices(
        connection_manager=connection_manager,
        authenticator=ConnectionAuthenticator(db, settings),
        presence=PresenceRegistry(connection_manager, db),
        exchange=MessageExchange(db, connection_manager, dispatcher, notify_new_message=settings.notify_new_message),
        signals=ConversationSignals(db, connection_manager),
        dispatcher=dispatcher,
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application; settings default to the environment"""
    settings = settings or get_settings()
    email_queue: asyncio.Queue[dict] = asyncio.Queue()
    db = MarketplaceDatabase(settings.database_path)
    services = build_services(db, settings, email_queue)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup and shutdown"""
        await db.init()

        consumer = EmailJobConsumer(email_queue, db)
        consumer_task = asyncio.create_task(consumer.consume())
        logger.info("Email job consumer started")

        yield

        await drain_background_tasks()
        await email_queue.join()
        consumer_task.cancel()
        await db.close()
        logger.info("Application shutdown complete")

    app = FastAPI(lifespan=lifespan)
    app.state.db = db
    app.state.services = services

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "connections": services.connection_manager.get_connection_count()}

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        """WebSocket endpoint that delegates to handler"""
        await handle_websocket_connection(websocket, services)

    return app


if __name__ == "__main__":
    settings = get_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
