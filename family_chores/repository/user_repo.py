from __future__ import annotations

from sqlite3 import Connection
from typing import Optional

PUBLIC_COLUMNS = (
    "id, family_id, name, email, role, earnings, screen_time_earned, avatar_url, "
    "is_active, last_login, preferences, notification_settings, created_at, updated_at"
)


def insert(conn: Connection, family_id: int, name: str, email: str | None,
           password_hash: str | None, role: str) -> int:
    cur = conn.execute(
        "INSERT INTO users(family_id, name, email, password_hash, role) VALUES(?,?,?,?,?)",
        (family_id, name, email.lower() if email else None, password_hash, role),
    )
    return cur.lastrowid


def get(conn: Connection, user_id: int) -> Optional[dict]:
    r = conn.execute(f"SELECT {PUBLIC_COLUMNS} FROM users WHERE id=?", (user_id,)).fetchone()
    return dict(r) if r else None


def get_in_family(conn: Connection, user_id: int, family_id: int) -> Optional[dict]:
    r = conn.execute(
        f"SELECT {PUBLIC_COLUMNS} FROM users WHERE id=? AND family_id=?", (user_id, family_id)
    ).fetchone()
    return dict(r) if r else None


def list_roster(conn: Connection, family_id: int) -> list[dict]:
    """Login-picker view of active members: no email, plus a has_logged_in flag."""
    rows = conn.execute(
        """SELECT id, name, role, avatar_url, last_login,
             CASE WHEN last_login IS NULL THEN 0 ELSE 1 END AS has_logged_in
           FROM users WHERE family_id=? AND is_active=1 ORDER BY role DESC, name ASC""",
        (family_id,),
    ).fetchall()
    return [dict(r) for r in rows]


def get_auth_row(conn: Connection, family_id: int, email: str) -> Optional[dict]:
    """Full row including credentials, for login only."""
    r = conn.execute(
        "SELECT * FROM users WHERE family_id=? AND email=?", (family_id, (email or "").lower())
    ).fetchone()
    return dict(r) if r else None


def list_family(conn: Connection, family_id: int, active_only: bool = True) -> list[dict]:
    sql = f"SELECT {PUBLIC_COLUMNS} FROM users WHERE family_id=?"
    if active_only:
        sql += " AND is_active=1"
    sql += " ORDER BY role DESC, name"
    return [dict(r) for r in conn.execute(sql, (family_id,)).fetchall()]


def list_parents(conn: Connection, family_id: int) -> list[dict]:
    rows = conn.execute(
        f"SELECT {PUBLIC_COLUMNS} FROM users WHERE family_id=? AND role='parent' AND is_active=1",
        (family_id,),
    ).fetchall()
    return [dict(r) for r in rows]


def member_ids(conn: Connection, family_id: int) -> set[int]:
    rows = conn.execute("SELECT id FROM users WHERE family_id=? AND is_active=1", (family_id,)).fetchall()
    return {r["id"] for r in rows}


def touch_last_login(conn: Connection, user_id: int, ts: str):
    conn.execute("UPDATE users SET last_login=? WHERE id=?", (ts, user_id))


def record_failed_login(conn: Connection, user_id: int, attempts: int, locked_until: str | None):
    conn.execute(
        "UPDATE users SET login_attempts=?, locked_until=? WHERE id=?",
        (attempts, locked_until, user_id),
    )


def record_successful_login(conn: Connection, user_id: int, ts: str):
    conn.execute(
        "UPDATE users SET login_attempts=0, locked_until=NULL, last_login=? WHERE id=?",
        (ts, user_id),
    )


def credit(conn: Connection, user_id: int, earnings: float, screen_time: int):
    conn.execute(
        "UPDATE users SET earnings = ROUND(earnings + ?, 2), screen_time_earned = screen_time_earned + ?, "
        "updated_at = datetime('now','localtime') WHERE id=?",
        (earnings, screen_time, user_id),
    )


def update_profile(conn: Connection, user_id: int, name: str | None = None, email: str | None = None,
                   avatar_url: str | None = None, preferences: str | None = None,
                   role: str | None = None, is_active: bool | None = None):
    # COALESCE keeps a column when its argument is NULL
    conn.execute(
        """UPDATE users SET
             name = COALESCE(?, name),
             email = COALESCE(?, email),
             avatar_url = COALESCE(?, avatar_url),
             preferences = COALESCE(?, preferences),
             role = COALESCE(?, role),
             is_active = COALESCE(?, is_active),
             updated_at = datetime('now','localtime')
           WHERE id=?""",
        (name, email.lower() if email else None, avatar_url, preferences, role,
         None if is_active is None else int(is_active), user_id),
    )


def get_notification_settings(conn: Connection, user_id: int) -> Optional[str]:
    r = conn.execute("SELECT notification_settings FROM users WHERE id=?", (user_id,)).fetchone()
    return r["notification_settings"] if r else None


def set_notification_settings(conn: Connection, user_id: int, settings_json: str):
    conn.execute(
        "UPDATE users SET notification_settings=?, updated_at=datetime('now','localtime') WHERE id=?",
        (settings_json, user_id),
    )


def get_stats(conn: Connection, user_id: int) -> dict:
    r = conn.execute(
        """SELECT
             (SELECT COUNT(*) FROM completed_tasks WHERE user_id=:u) AS total_completed,
             (SELECT COUNT(*) FROM chores WHERE assigned_to=:u AND status='in_progress') AS in_progress_count,
             (SELECT COUNT(*) FROM chores WHERE assigned_to=:u AND status='pending_acceptance') AS pending_acceptance_count,
             (SELECT COUNT(*) FROM chores WHERE assigned_to=:u AND status='pending_approval') AS pending_approval_count,
             (SELECT COUNT(*) FROM user_achievements WHERE user_id=:u) AS achievements_count""",
        {"u": user_id},
    ).fetchone()
    return dict(r)
