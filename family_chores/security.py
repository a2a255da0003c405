from __future__ import annotations

# family_chores/security.py
import datetime as dt

import jwt
from passlib.hash import pbkdf2_sha256

from .config import get_settings
from .errors import Unauthenticated

ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    return pbkdf2_sha256.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return pbkdf2_sha256.verify(password, password_hash)
    except ValueError:
        # malformed stored hash
        return False


def issue_token(user_id: int, now: dt.datetime | None = None) -> str:
    settings = get_settings()
    now = now or dt.datetime.now(dt.timezone.utc)
    payload = {
        "userId": int(user_id),
        "iat": now,
        "exp": now + dt.timedelta(hours=settings["jwt_expires_hours"]),
    }
    return jwt.encode(payload, settings["jwt_secret"], algorithm=ALGORITHM)


def decode_token(token: str) -> int:
    """Return the user id carried by a bearer token, or raise Unauthenticated."""
    try:
        payload = jwt.decode(token, get_settings()["jwt_secret"], algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Your token has expired! Please log in again.")
    except jwt.InvalidTokenError:
        raise Unauthenticated("Invalid token. Please log in again!")
    user_id = payload.get("userId")
    if not isinstance(user_id, int):
        raise Unauthenticated("Invalid token. Please log in again!")
    return user_id
