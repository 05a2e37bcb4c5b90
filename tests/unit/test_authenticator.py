"""Unit tests for handshake authentication"""
import pytest
from datetime import timedelta
from unittest.mock import MagicMock

from jose import jwt

from domain.constants import ERROR_INVALID_TOKEN, ERROR_INVALID_USER, ERROR_TOKEN_REQUIRED
from domain.errors import AuthenticationError
from security.tokens import create_access_token, decode_access_token
from sockets.authenticator import ConnectionAuthenticator, extract_token, parse_user_id


def make_handshake(query: dict | None = None, headers: dict | None = None):
    ws = MagicMock()
    ws.query_params = query or {}
    ws.headers = headers or {}
    return ws


@pytest.mark.unit
class TestTokens:
    """Test JWT helpers"""

    def test_round_trip_claims(self, settings):
        token = create_access_token(42, settings=settings)
        assert decode_access_token(token, settings)["userId"] == 42

    def test_expired_token_rejected(self, settings):
        token = create_access_token(42, expires_delta=timedelta(minutes=-1), settings=settings)
        with pytest.raises(ValueError):
            decode_access_token(token, settings)

    def test_wrong_secret_rejected(self, settings):
        token = jwt.encode({"userId": 42}, "another-secret", algorithm="HS256")
        with pytest.raises(ValueError):
            decode_access_token(token, settings)


@pytest.mark.unit
class TestExtractToken:
    """Test where the handshake credential is read from"""

    def test_query_parameter(self):
        assert extract_token(make_handshake(query={"token": "abc"})) == "abc"

    def test_bearer_header(self):
        assert extract_token(make_handshake(headers={"authorization": "Bearer xyz"})) == "xyz"

    def test_missing(self):
        assert extract_token(make_handshake()) == ""


@pytest.mark.unit
@pytest.mark.asyncio
class TestConnectionAuthenticator:
    """Test resolving a handshake to a verified user"""

    async def test_valid_token_resolves_identity(self, in_memory_db, users, settings):
        authenticator = ConnectionAuthenticator(in_memory_db, settings)
        ws = make_handshake(query={"token": create_access_token(users["alice"], settings=settings)})

        connection = await authenticator.authenticate(ws)

        assert connection.user_id == users["alice"]
        assert connection.user_name == "Alice"
        assert connection.websocket is ws
        assert connection.connection_id

    async def test_each_socket_gets_its_own_connection_id(self, in_memory_db, users, settings):
        authenticator = ConnectionAuthenticator(in_memory_db, settings)
        token = create_access_token(users["alice"], settings=settings)

        first = await authenticator.authenticate(make_handshake(query={"token": token}))
        second = await authenticator.authenticate(make_handshake(query={"token": token}))

        assert first.connection_id != second.connection_id

    async def test_subject_claim_accepted(self, in_memory_db, users, settings):
        authenticator = ConnectionAuthenticator(in_memory_db, settings)
        token = jwt.encode({"sub": str(users["bob"])}, settings.secret_key, algorithm="HS256")

        connection = await authenticator.authenticate(make_handshake(query={"token": token}))

        assert connection.user_id == users["bob"]

    @pytest.mark.parametrize("query,reason", [
        ({}, ERROR_TOKEN_REQUIRED),
        ({"token": "not-a-jwt"}, ERROR_INVALID_TOKEN),
    ])
    async def test_bad_credentials(self, in_memory_db, settings, query, reason):
        authenticator = ConnectionAuthenticator(in_memory_db, settings)

        with pytest.raises(AuthenticationError) as exc_info:
            await authenticator.authenticate(make_handshake(query=query))

        assert exc_info.value.message == reason

    async def test_token_without_user_claim(self, in_memory_db, settings):
        authenticator = ConnectionAuthenticator(in_memory_db, settings)
        token = jwt.encode({"role": "admin"}, settings.secret_key, algorithm="HS256")

        with pytest.raises(AuthenticationError) as exc_info:
            await authenticator.authenticate(make_handshake(query={"token": token}))

        assert exc_info.value.message == ERROR_INVALID_TOKEN

    async def test_unknown_user_rejected(self, in_memory_db, settings):
        authenticator = ConnectionAuthenticator(in_memory_db, settings)
        token = create_access_token(9999, settings=settings)

        with pytest.raises(AuthenticationError) as exc_info:
            await authenticator.authenticate(make_handshake(query={"token": token}))

        assert exc_info.value.message == ERROR_INVALID_USER

    async def test_unverified_user_rejected(self, in_memory_db, users, settings):
        authenticator = ConnectionAuthenticator(in_memory_db, settings)
        token = create_access_token(users["mallory"], settings=settings)

        with pytest.raises(AuthenticationError) as exc_info:
            await authenticator.authenticate(make_handshake(query={"token": token}))

        assert exc_info.value.message == ERROR_INVALID_USER

    @pytest.mark.parametrize("claim", [1.9, 1.0, True, "1.9", "-1", " 1", "", None])
    async def test_non_integer_user_claim_rejected(self, in_memory_db, users, settings, claim):
        authenticator = ConnectionAuthenticator(in_memory_db, settings)
        token = jwt.encode({"userId": claim}, settings.secret_key, algorithm="HS256")

        with pytest.raises(AuthenticationError) as exc_info:
            await authenticator.authenticate(make_handshake(query={"token": token}))

        assert exc_info.value.message == ERROR_INVALID_TOKEN


@pytest.mark.unit
class TestParseUserId:
    """Test which claim values count as user ids"""

    @pytest.mark.parametrize("claim,expected", [(7, 7), ("7", 7), (1.9, None), (False, None), ("٣", None), ({}, None)])
    def test_parse(self, claim, expected):
        assert parse_user_id(claim) == expected
