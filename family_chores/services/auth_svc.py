from __future__ import annotations

# family_chores/services/auth_svc.py
import datetime as dt
import logging
import secrets
import string

from ..db import get_conn, transaction
from ..errors import Conflict, Forbidden, Locked, NotFound, Unauthenticated, ValidationError
from ..repository import family_repo, user_repo
from ..security import decode_token, hash_password, issue_token, verify_password
from .utils import fmt_ts, now_local, parse_ts

logger = logging.getLogger(__name__)

MAX_LOGIN_ATTEMPTS = 5
LOCKOUT_MINUTES = 15
FAMILY_CODE_LEN = 8
_CODE_ALPHABET = string.ascii_uppercase + string.digits


def _public(user: dict) -> dict:
    return {k: v for k, v in user.items() if k not in ("password_hash", "login_attempts", "locked_until")}


def generate_family_code(conn) -> str:
    for _ in range(50):
        code = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(FAMILY_CODE_LEN))
        if not family_repo.code_exists(conn, code):
            return code
    raise RuntimeError("could not generate a unique family code")


def authenticate(token: str | None, now: dt.datetime | None = None) -> dict:
    """Resolve a bearer token to exactly one active user (public columns)."""
    if not token:
        raise Unauthenticated()
    user_id = decode_token(token)
    with get_conn() as conn:
        user = user_repo.get(conn, user_id)
        if not user:
            raise Unauthenticated("The user belonging to this token no longer exists.")
        if not user["is_active"]:
            raise Unauthenticated("Your account has been deactivated.")
        user_repo.touch_last_login(conn, user_id, fmt_ts(now or now_local()))
    return user


def login(family_code: str, email: str, password: str, now: dt.datetime | None = None) -> dict:
    now = now or now_local()
    bad = "Invalid family code, email, or password"
    with get_conn() as conn:
        family = family_repo.get_by_code(conn, family_code)
        if not family:
            raise Unauthenticated(bad)
        user = user_repo.get_auth_row(conn, family["id"], email)
        if not user or not user["is_active"]:
            raise Unauthenticated(bad)

        locked_until = parse_ts(user["locked_until"])
        if locked_until and now < locked_until:
            raise Locked("Account is temporarily locked due to too many failed login attempts")

        if not verify_password(password, user["password_hash"]):
            attempts = (user["login_attempts"] or 0) + 1
            lock = now + dt.timedelta(minutes=LOCKOUT_MINUTES) if attempts >= MAX_LOGIN_ATTEMPTS else None
            user_repo.record_failed_login(conn, user["id"], attempts, fmt_ts(lock))
            if lock:
                logger.warning("user %s locked until %s after %s failed logins", user["id"], lock, attempts)
            raise Unauthenticated(bad)

        user_repo.record_successful_login(conn, user["id"], fmt_ts(now))
        user = user_repo.get(conn, user["id"])

    user["family_code"] = family["family_code"]
    user["family_name"] = family["name"]
    return {"token": issue_token(user["id"]), "user": _public(user)}


def register_family(family_name: str, admin_name: str | None, admin_email: str, admin_password: str) -> dict:
    """Create a family and its parent admin in one transaction."""
    name = admin_name or admin_email.split("@")[0]
    pw_hash = hash_password(admin_password)

    def _tx(conn):
        code = generate_family_code(conn)
        family_id = family_repo.insert(conn, family_name, code, admin_email.lower())
        user_id = user_repo.insert(conn, family_id, name, admin_email, pw_hash, "parent")
        user = user_repo.get(conn, user_id)
        user["family_code"] = code
        user["family_name"] = family_name
        return user

    user = transaction(_tx)
    logger.info("registered family %s (%s)", user["family_id"], user["family_code"])
    return {"token": issue_token(user["id"]), "user": user}


def register_user(family_code: str, name: str, email: str, password: str, role: str) -> dict:
    with get_conn() as conn:
        family = family_repo.get_by_code(conn, family_code)
        if not family:
            raise NotFound("Invalid family code")
        if user_repo.get_auth_row(conn, family["id"], email):
            raise Conflict("Email already exists in this family")
        user_id = user_repo.insert(conn, family["id"], name, email, hash_password(password), role)
        user = user_repo.get(conn, user_id)
    user["family_code"] = family["family_code"]
    user["family_name"] = family["name"]
    return {"token": issue_token(user["id"]), "user": user}


def family_by_code(family_code: str) -> dict:
    with get_conn() as conn:
        family = family_repo.get_by_code(conn, family_code)
        if not family:
            raise NotFound("Invalid family code")
        members = user_repo.list_roster(conn, family["id"])
    return {"family": {"id": family["id"], "name": family["name"]}, "members": members}


def add_member(actor: dict, name: str, role: str, email: str | None = None, password: str | None = None) -> dict:
    if actor["role"] != "parent":
        raise Forbidden("Only parents can add family members")
    if role not in ("parent", "child"):
        raise ValidationError("Role must be either parent or child")
    if email and not password:
        raise ValidationError("Password is required when an email is given")
    with get_conn() as conn:
        if email and user_repo.get_auth_row(conn, actor["family_id"], email):
            raise Conflict("Email already exists in this family")
        user_id = user_repo.insert(
            conn, actor["family_id"], name, email, hash_password(password) if password else None, role
        )
        return user_repo.get(conn, user_id)


def me(user: dict) -> dict:
    with get_conn() as conn:
        family = family_repo.get(conn, user["family_id"])
        stats = user_repo.get_stats(conn, user["id"])
    out = dict(user)
    out["family_code"] = family["family_code"]
    out["family_name"] = family["name"]
    out["stats"] = stats
    return out


def family_info(user: dict) -> dict:
    with get_conn() as conn:
        family = family_repo.get(conn, user["family_id"])
        members = user_repo.list_family(conn, user["family_id"])
    return {"family": family, "members": members}
