from __future__ import annotations

from sqlite3 import Connection


def insert(conn: Connection, user_id: int, ntype: str, title: str, message: str,
           link: str | None, data_json: str | None) -> int:
    cur = conn.execute(
        "INSERT INTO user_notifications(user_id, notification_type, title, message, link, data) VALUES(?,?,?,?,?,?)",
        (user_id, ntype, title, message, link, data_json),
    )
    return cur.lastrowid


def list_for_user(conn: Connection, user_id: int, limit: int, offset: int) -> tuple[int, list[dict]]:
    total = conn.execute(
        "SELECT COUNT(*) AS cnt FROM user_notifications WHERE user_id=?", (user_id,)
    ).fetchone()["cnt"]
    rows = conn.execute(
        "SELECT * FROM user_notifications WHERE user_id=? ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
        (user_id, limit, offset),
    ).fetchall()
    return total, [dict(r) for r in rows]


def unread_count(conn: Connection, user_id: int) -> int:
    return conn.execute(
        "SELECT COUNT(*) AS cnt FROM user_notifications WHERE user_id=? AND is_read=0", (user_id,)
    ).fetchone()["cnt"]


def mark_read(conn: Connection, notification_id: int, user_id: int) -> int:
    cur = conn.execute(
        "UPDATE user_notifications SET is_read=1 WHERE id=? AND user_id=?", (notification_id, user_id)
    )
    return cur.rowcount


def mark_all_read(conn: Connection, user_id: int) -> int:
    cur = conn.execute("UPDATE user_notifications SET is_read=1 WHERE user_id=? AND is_read=0", (user_id,))
    return cur.rowcount


def delete(conn: Connection, notification_id: int, user_id: int) -> int:
    cur = conn.execute("DELETE FROM user_notifications WHERE id=? AND user_id=?", (notification_id, user_id))
    return cur.rowcount


def delete_all(conn: Connection, user_id: int) -> int:
    cur = conn.execute("DELETE FROM user_notifications WHERE user_id=?", (user_id,))
    return cur.rowcount


# --- push subscriptions ---

def upsert_subscription(conn: Connection, user_id: int, endpoint: str, subscription_json: str):
    conn.execute(
        """INSERT INTO push_subscriptions(user_id, endpoint, subscription, is_active)
           VALUES(?,?,?,1)
           ON CONFLICT(user_id, endpoint) DO UPDATE SET
             subscription=excluded.subscription, is_active=1, updated_at=datetime('now','localtime')""",
        (user_id, endpoint, subscription_json),
    )


def deactivate_subscription(conn: Connection, user_id: int, endpoint: str) -> int:
    cur = conn.execute(
        "UPDATE push_subscriptions SET is_active=0, updated_at=datetime('now','localtime') WHERE user_id=? AND endpoint=?",
        (user_id, endpoint),
    )
    return cur.rowcount


def active_subscriptions(conn: Connection, user_id: int) -> list[dict]:
    rows = conn.execute(
        "SELECT * FROM push_subscriptions WHERE user_id=? AND is_active=1", (user_id,)
    ).fetchall()
    return [dict(r) for r in rows]
