"""JWT helpers for access tokens presented at the socket handshake"""
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from config import Settings, get_settings


def create_access_token(user_id: int, expires_delta: timedelta | None = None, settings: Settings | None = None) -> str:
    settings = settings or get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    return jwt.encode({"userId": user_id, "exp": expire}, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings | None = None) -> dict:
    """Verify signature and expiry, returning the claims"""
    settings = settings or get_settings()
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise ValueError("Could not validate credentials") from exc
