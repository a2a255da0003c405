from __future__ import annotations

from sqlite3 import Connection
from typing import Optional


def insert(conn: Connection, chore_id: int, user_id: int, assigned_by: int | None,
           assigned_at: str, deadline: str | None, notes: str | None = None) -> int:
    cur = conn.execute(
        "INSERT INTO chore_assignments(chore_id, user_id, assigned_by, assigned_at, status, acceptance_deadline, notes) "
        "VALUES(?,?,?,?, 'pending', ?, ?)",
        (chore_id, user_id, assigned_by, assigned_at, deadline, notes),
    )
    return cur.lastrowid


def latest_pending(conn: Connection, chore_id: int, user_id: int) -> Optional[dict]:
    r = conn.execute(
        "SELECT * FROM chore_assignments WHERE chore_id=? AND user_id=? AND status='pending' "
        "ORDER BY assigned_at DESC, id DESC LIMIT 1",
        (chore_id, user_id),
    ).fetchone()
    return dict(r) if r else None


def latest_for_user(conn: Connection, chore_id: int, user_id: int) -> Optional[dict]:
    r = conn.execute(
        "SELECT * FROM chore_assignments WHERE chore_id=? AND user_id=? ORDER BY assigned_at DESC, id DESC LIMIT 1",
        (chore_id, user_id),
    ).fetchone()
    return dict(r) if r else None


def mark_accepted(conn: Connection, assignment_id: int, ts: str):
    conn.execute(
        "UPDATE chore_assignments SET status='accepted', accepted_at=? WHERE id=?", (ts, assignment_id)
    )


def mark_declined(conn: Connection, assignment_id: int, ts: str):
    conn.execute(
        "UPDATE chore_assignments SET status='declined', declined_at=? WHERE id=?", (ts, assignment_id)
    )


def list_for_chore(conn: Connection, chore_id: int) -> list[dict]:
    rows = conn.execute(
        "SELECT a.*, u.name AS user_name FROM chore_assignments a LEFT JOIN users u ON u.id = a.user_id "
        "WHERE a.chore_id=? ORDER BY a.assigned_at, a.id",
        (chore_id,),
    ).fetchall()
    return [dict(r) for r in rows]
