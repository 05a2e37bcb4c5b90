"""Handshake authentication for socket connections"""
import logging

from fastapi import WebSocket

from config import Settings
from database.marketplace_database import MarketplaceDatabase
from domain.constants import ERROR_INVALID_TOKEN, ERROR_INVALID_USER, ERROR_TOKEN_REQUIRED
from domain.errors import AuthenticationError
from domain.models import AuthenticatedConnection
from security.tokens import decode_access_token

logger = logging.getLogger(__name__)


def extract_token(websocket: WebSocket) -> str:
    """Read the bearer credential from the query string or Authorization header"""
    token = websocket.query_params.get("token", "").strip()
    if token:
        return token
    header = websocket.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    return ""


def parse_user_id(claim) -> int | None:
    """Accept an integer or a string of digits; floats and bools are not ids"""
    if isinstance(claim, bool):
        return None
    if isinstance(claim, int):
        return claim
    if isinstance(claim, str) and claim.isascii() and claim.isdigit():
        return int(claim)
    return None


class ConnectionAuthenticator:
    """Resolves a handshake token to a verified user"""

    def __init__(self, db: MarketplaceDatabase, settings: Settings) -> None:
        self.db = db
        self.settings = settings

    async def authenticate(self, websocket: WebSocket) -> AuthenticatedConnection:
        """Build an AuthenticatedConnection or raise AuthenticationError

        Nothing is registered for the socket until this returns.
        """
        token = extract_token(websocket)
        if not token:
            raise AuthenticationError(ERROR_TOKEN_REQUIRED)

        try:
            claims = decode_access_token(token, self.settings)
        except ValueError as exc:
            raise AuthenticationError(ERROR_INVALID_TOKEN) from exc

        user_id = parse_user_id(claims.get("userId", claims.get("sub")))
        if user_id is None:
            raise AuthenticationError(ERROR_INVALID_TOKEN)

        user = await self.db.get_user(user_id)
        if user is None or not user.is_verified:
            raise AuthenticationError(ERROR_INVALID_USER)

        return AuthenticatedConnection(user_id=user.id, user_name=user.name, websocket=websocket)
