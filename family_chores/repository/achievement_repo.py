from __future__ import annotations

from sqlite3 import Connection


def insert(conn: Connection, rec: dict) -> int:
    cur = conn.execute(
        """INSERT INTO achievements(family_id, name, description, icon, badge_color, criteria_type,
             criteria_value, reward_type, reward_amount)
           VALUES(:family_id, :name, :description, :icon, :badge_color, :criteria_type,
             :criteria_value, :reward_type, :reward_amount)""",
        rec,
    )
    return cur.lastrowid


def list_family(conn: Connection, family_id: int) -> list[dict]:
    rows = conn.execute(
        "SELECT * FROM achievements WHERE family_id=? AND is_active=1 ORDER BY criteria_type, criteria_value",
        (family_id,),
    ).fetchall()
    return [dict(r) for r in rows]


def not_yet_earned(conn: Connection, family_id: int, user_id: int) -> list[dict]:
    rows = conn.execute(
        """SELECT a.* FROM achievements a
           WHERE a.family_id=? AND a.is_active=1
             AND NOT EXISTS (SELECT 1 FROM user_achievements ua WHERE ua.achievement_id=a.id AND ua.user_id=?)""",
        (family_id, user_id),
    ).fetchall()
    return [dict(r) for r in rows]


def award(conn: Connection, user_id: int, achievement_id: int, progress_value: float):
    conn.execute(
        "INSERT OR IGNORE INTO user_achievements(user_id, achievement_id, progress_value) VALUES(?,?,?)",
        (user_id, achievement_id, progress_value),
    )


def earned_by_user(conn: Connection, user_id: int) -> list[dict]:
    rows = conn.execute(
        """SELECT a.*, ua.earned_at, ua.progress_value FROM user_achievements ua
           JOIN achievements a ON a.id = ua.achievement_id
           WHERE ua.user_id=? ORDER BY ua.earned_at DESC""",
        (user_id,),
    ).fetchall()
    return [dict(r) for r in rows]
