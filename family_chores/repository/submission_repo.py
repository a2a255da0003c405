from __future__ import annotations

from sqlite3 import Connection
from typing import Optional


def insert(conn: Connection, chore_id: int, user_id: int, assignment_id: int | None,
           photo_path: str | None, photo_thumbnail: str | None, notes: str | None, ts: str) -> int:
    cur = conn.execute(
        "INSERT INTO chore_submissions(chore_id, user_id, assignment_id, photo_path, photo_thumbnail, notes, submitted_at) "
        "VALUES(?,?,?,?,?,?,?)",
        (chore_id, user_id, assignment_id, photo_path, photo_thumbnail, notes, ts),
    )
    return cur.lastrowid


def get(conn: Connection, submission_id: int) -> Optional[dict]:
    r = conn.execute("SELECT * FROM chore_submissions WHERE id=?", (submission_id,)).fetchone()
    return dict(r) if r else None


def latest_for(conn: Connection, chore_id: int, user_id: int) -> Optional[dict]:
    r = conn.execute(
        "SELECT * FROM chore_submissions WHERE chore_id=? AND user_id=? ORDER BY submitted_at DESC, id DESC LIMIT 1",
        (chore_id, user_id),
    ).fetchone()
    return dict(r) if r else None


def review(conn: Connection, submission_id: int, status: str, reviewer_id: int, ts: str, notes: str | None):
    conn.execute(
        "UPDATE chore_submissions SET status=?, reviewed_by=?, reviewed_at=?, review_notes=? WHERE id=?",
        (status, reviewer_id, ts, notes, submission_id),
    )


def list_for_chore(conn: Connection, chore_id: int) -> list[dict]:
    rows = conn.execute(
        """SELECT s.*, u.name AS submitted_by_name, r.name AS reviewed_by_name
           FROM chore_submissions s
           LEFT JOIN users u ON u.id = s.user_id
           LEFT JOIN users r ON r.id = s.reviewed_by
           WHERE s.chore_id=? ORDER BY s.submitted_at DESC, s.id DESC""",
        (chore_id,),
    ).fetchall()
    return [dict(r) for r in rows]
