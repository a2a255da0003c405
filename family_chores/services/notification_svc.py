from __future__ import annotations

# family_chores/services/notification_svc.py
import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from ..config import get_settings
from ..db import get_conn
from ..errors import NotFound, ValidationError
from ..repository import notification_repo, user_repo
from .utils import dumps_json, loads_json

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {"email": True, "push": True, "sms": False, "in_app": True}


def get_user_settings(user_id: int) -> dict:
    with get_conn() as conn:
        raw = user_repo.get_notification_settings(conn, user_id)
    stored = loads_json(raw, {}) or {}
    return {k: bool(stored.get(k, v)) for k, v in DEFAULT_SETTINGS.items()}


def update_user_settings(user_id: int, patch: dict) -> dict:
    current = get_user_settings(user_id)
    for k in DEFAULT_SETTINGS:
        if patch.get(k) is not None:
            current[k] = bool(patch[k])
    with get_conn() as conn:
        user_repo.set_notification_settings(conn, user_id, dumps_json(current))
    return current


def send_email(to_email: str, subject: str, text_body: str) -> bool:
    """SMTP delivery; returns False (and logs) on failure."""
    s = get_settings()
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = s["smtp_from"]
    msg["To"] = to_email
    msg.attach(MIMEText(text_body, "plain", "utf-8"))
    try:
        with smtplib.SMTP(s["smtp_host"], s["smtp_port"], timeout=30) as server:
            server.ehlo()
            if s["smtp_use_tls"]:
                server.starttls(context=ssl.create_default_context())
                server.ehlo()
            if s["smtp_username"]:
                server.login(s["smtp_username"], s["smtp_password"] or "")
            server.sendmail(s["smtp_from"], [to_email], msg.as_string())
        return True
    except (smtplib.SMTPException, OSError) as e:
        logger.warning("email to %s failed: %s", to_email, e)
        return False


def send_push(subscriptions: list[dict], title: str, message: str, link: str | None) -> int:
    # No web-push transport is configured; deliveries are recorded in the log only.
    for sub in subscriptions:
        logger.info("push -> %s: %s | %s | %s", sub["endpoint"], title, message, link)
    return len(subscriptions)


def notify_user(user_id: int, ntype: str, title: str, message: str,
                link: str | None = None, data: dict | None = None) -> dict:
    """
    Deliver one notification over every channel the user and the deployment allow.
    Never raises: failures are logged and reported in the returned channel map.
    """
    result = {"in_app": False, "email": False, "push": False}
    try:
        prefs = get_user_settings(user_id)
        cfg = get_settings()
        with get_conn() as conn:
            user = user_repo.get(conn, user_id)
            if not user:
                return result
            if prefs["in_app"]:
                notification_repo.insert(conn, user_id, ntype, title, message, link, dumps_json(data))
                result["in_app"] = True
            subs = notification_repo.active_subscriptions(conn, user_id) if prefs["push"] else []
        if cfg["email_enabled"] and prefs["email"] and user.get("email"):
            result["email"] = send_email(user["email"], f"{cfg['app_name']}: {title}", message)
        if cfg["push_enabled"] and subs:
            result["push"] = send_push(subs, title, message, link) > 0
    except Exception as e:
        logger.error("notify_user(%s, %s) failed: %s", user_id, ntype, e)
    return result


def notify_users(user_ids, ntype: str, title: str, message: str,
                 link: str | None = None, data: dict | None = None) -> int:
    sent = 0
    for uid in dict.fromkeys(user_ids):
        if notify_user(uid, ntype, title, message, link, data)["in_app"]:
            sent += 1
    return sent


def notify_parents(family_id: int, ntype: str, title: str, message: str,
                   link: str | None = None, data: dict | None = None) -> int:
    try:
        with get_conn() as conn:
            parents = user_repo.list_parents(conn, family_id)
    except Exception as e:
        logger.error("notify_parents(%s) failed: %s", family_id, e)
        return 0
    return notify_users([p["id"] for p in parents], ntype, title, message, link, data)


# --- lifecycle hooks ---

def chore_assigned(chore: dict, assignee_id: int, assigned_by: dict | None = None):
    who = assigned_by["name"] if assigned_by else "The family schedule"
    notify_user(
        assignee_id, "chore_assigned", "New chore assigned",
        f"{who} assigned you \"{chore['title']}\".",
        link=f"/chores/{chore['id']}", data={"chore_id": chore["id"]},
    )


def chore_submitted(chore: dict, child: dict):
    notify_parents(
        chore["family_id"], "chore_completed", "Chore ready for review",
        f"{child['name']} submitted \"{chore['title']}\" for approval.",
        link=f"/chores/{chore['id']}", data={"chore_id": chore["id"], "user_id": child["id"]},
    )


def chore_reviewed(chore: dict, approved: bool, notes: str | None = None):
    if approved:
        title, message = "Chore approved", f"\"{chore['title']}\" was approved. Reward earned!"
    else:
        title = "Chore needs more work"
        message = f"\"{chore['title']}\" was sent back: {notes or 'Needs improvement'}"
    notify_user(
        chore["assigned_to"], "chore_approved" if approved else "chore_rejected", title, message,
        link=f"/chores/{chore['id']}", data={"chore_id": chore["id"], "approved": approved},
    )


def achievement_earned(user_id: int, achievement: dict):
    notify_user(
        user_id, "achievement_earned", "Achievement unlocked",
        f"You earned \"{achievement['name']}\"!",
        link="/achievements", data={"achievement_id": achievement["id"]},
    )


# --- inbox ---

def list_notifications(user_id: int, page: int, limit: int) -> dict:
    page = max(page, 1)
    limit = min(max(limit, 1), 100)
    with get_conn() as conn:
        total, rows = notification_repo.list_for_user(conn, user_id, limit, (page - 1) * limit)
    for r in rows:
        r["data"] = loads_json(r["data"])
        r["is_read"] = bool(r["is_read"])
    return {
        "notifications": rows,
        "pagination": {"page": page, "limit": limit, "totalCount": total,
                       "totalPages": (total + limit - 1) // limit},
    }


def unread_count(user_id: int) -> int:
    with get_conn() as conn:
        return notification_repo.unread_count(conn, user_id)


def mark_read(user_id: int, notification_id: int):
    with get_conn() as conn:
        if not notification_repo.mark_read(conn, notification_id, user_id):
            raise NotFound("Notification not found")


def mark_all_read(user_id: int) -> int:
    with get_conn() as conn:
        return notification_repo.mark_all_read(conn, user_id)


def delete_notification(user_id: int, notification_id: int):
    with get_conn() as conn:
        if not notification_repo.delete(conn, notification_id, user_id):
            raise NotFound("Notification not found")


def delete_all(user_id: int) -> int:
    with get_conn() as conn:
        return notification_repo.delete_all(conn, user_id)


def register_push(user_id: int, subscription: dict):
    if not isinstance(subscription, dict) or not subscription.get("endpoint"):
        raise ValidationError("Invalid subscription object")
    with get_conn() as conn:
        notification_repo.upsert_subscription(conn, user_id, subscription["endpoint"], dumps_json(subscription))
    notify_user(user_id, "test", "Notifications Enabled",
                "You have successfully enabled push notifications!", link="/settings/notifications")


def unregister_push(user_id: int, endpoint: str | None):
    if not endpoint:
        raise ValidationError("Endpoint is required")
    with get_conn() as conn:
        notification_repo.deactivate_subscription(conn, user_id, endpoint)
