from __future__ import annotations

from sqlite3 import Connection


def insert(conn: Connection, rec: dict) -> int:
    cur = conn.execute(
        """INSERT INTO completed_tasks(
             chore_id, user_id, submission_id, chore_title, chore_description, reward_type,
             reward_earned, completed_at, approved_by, approved_at, photo_path, notes)
           VALUES(:chore_id, :user_id, :submission_id, :chore_title, :chore_description, :reward_type,
             :reward_earned, :completed_at, :approved_by, :approved_at, :photo_path, :notes)""",
        rec,
    )
    return cur.lastrowid


def list_for_user(conn: Connection, user_id: int, limit: int = 20) -> list[dict]:
    rows = conn.execute(
        """SELECT ct.*, u.name AS approved_by_name
           FROM completed_tasks ct LEFT JOIN users u ON u.id = ct.approved_by
           WHERE ct.user_id=? ORDER BY ct.completed_at DESC, ct.id DESC LIMIT ?""",
        (user_id, limit),
    ).fetchall()
    return [dict(r) for r in rows]


def list_for_family(conn: Connection, family_id: int) -> list[dict]:
    rows = conn.execute(
        """SELECT ct.user_id, ct.reward_type, ct.reward_earned, ct.completed_at
           FROM completed_tasks ct JOIN users u ON u.id = ct.user_id
           WHERE u.family_id=?""",
        (family_id,),
    ).fetchall()
    return [dict(r) for r in rows]


def count_for_user(conn: Connection, user_id: int) -> int:
    return conn.execute("SELECT COUNT(*) AS cnt FROM completed_tasks WHERE user_id=?", (user_id,)).fetchone()["cnt"]
