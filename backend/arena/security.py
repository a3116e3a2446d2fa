from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID
import jwt
from passlib.context import CryptContext
from arena.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

JWT_ALG = "HS256"


class TokenError(Exception):
    """A bearer token that cannot be used for the requested purpose."""


def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)

def _make_token(user_id: UUID, ttl_min: int, token_type: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "type": token_type,
        "iat": now.timestamp(),  # float keeps tokens issued in the same second distinct
        "exp": int((now + timedelta(minutes=ttl_min)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALG)

def make_access_token(user_id: UUID) -> str:
    return _make_token(user_id, settings.access_ttl_min, "access")

def make_refresh_token(user_id: UUID) -> str:
    return _make_token(user_id, settings.refresh_ttl_min, "refresh")

def decode_token(token: str) -> dict[str, Any]:
    return jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALG])

def token_subject(token: str, expected_type: str) -> UUID:
    """User id carried by a valid token of `expected_type` ("access" or "refresh")."""
    try:
        data = decode_token(token)
    except jwt.PyJWTError as e:
        raise TokenError("Invalid token") from e
    if data.get("type") != expected_type:
        raise TokenError("Wrong token type")
    try:
        return UUID(str(data.get("sub")))
    except ValueError as e:
        raise TokenError("Invalid token") from e
