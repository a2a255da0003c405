from __future__ import annotations

from sqlite3 import Connection
from typing import Optional

# Typed partial-update targets: request field -> fixed SQL fragment.
PATCH_COLUMNS = {
    "title": "title = ?",
    "description": "description = ?",
    "reward_amount": "reward_amount = ?",
    "reward_type": "reward_type = ?",
    "requires_photo": "requires_photo = ?",
    "acceptance_timer": "acceptance_timer = ?",
    "status": "status = ?",
}


def insert(conn: Connection, rec: dict) -> int:
    cur = conn.execute(
        """INSERT INTO chores(
             family_id, template_id, title, description, reward_type, reward_amount, current_reward,
             requires_photo, acceptance_timer, status, priority, due_date, estimated_duration,
             difficulty_level, category, created_by, assigned_to, assigned_at, metadata)
           VALUES(:family_id, :template_id, :title, :description, :reward_type, :reward_amount, :current_reward,
             :requires_photo, :acceptance_timer, :status, :priority, :due_date, :estimated_duration,
             :difficulty_level, :category, :created_by, :assigned_to, :assigned_at, :metadata)""",
        {
            "template_id": None,
            "description": None,
            "requires_photo": 0,
            "acceptance_timer": 5,
            "priority": "medium",
            "due_date": None,
            "estimated_duration": None,
            "difficulty_level": "medium",
            "category": None,
            "assigned_to": None,
            "assigned_at": None,
            "metadata": None,
            **rec,
        },
    )
    return cur.lastrowid


def get(conn: Connection, chore_id: int) -> Optional[dict]:
    r = conn.execute("SELECT * FROM chores WHERE id=?", (chore_id,)).fetchone()
    return dict(r) if r else None


def get_in_family(conn: Connection, chore_id: int, family_id: int) -> Optional[dict]:
    r = conn.execute("SELECT * FROM chores WHERE id=? AND family_id=?", (chore_id, family_id)).fetchone()
    return dict(r) if r else None


def get_detail(conn: Connection, chore_id: int, family_id: int) -> Optional[dict]:
    r = conn.execute(
        """SELECT c.*, cb.name AS created_by_name, at.name AS assigned_to_name
           FROM chores c
           LEFT JOIN users cb ON cb.id = c.created_by
           LEFT JOIN users at ON at.id = c.assigned_to
           WHERE c.id=? AND c.family_id=?""",
        (chore_id, family_id),
    ).fetchone()
    return dict(r) if r else None


def list_family(conn: Connection, family_id: int, status: str | None = None,
                assigned_to: int | None = None) -> list[dict]:
    sql = (
        "SELECT c.*, u.name AS assigned_to_name, "
        "(SELECT COUNT(*) FROM chore_submissions s WHERE s.chore_id = c.id) AS submission_count "
        "FROM chores c LEFT JOIN users u ON u.id = c.assigned_to WHERE c.family_id=?"
    )
    params: list = [family_id]
    if status:
        sql += " AND c.status=?"
        params.append(status)
    if assigned_to:
        sql += " AND c.assigned_to=?"
        params.append(assigned_to)
    sql += " ORDER BY c.created_at DESC, c.id DESC"
    return [dict(r) for r in conn.execute(sql, params).fetchall()]


def list_for_user(conn: Connection, user_id: int) -> list[dict]:
    rows = conn.execute(
        """SELECT c.*, u.name AS created_by_name,
             (SELECT COUNT(*) FROM chore_submissions s WHERE s.chore_id = c.id) AS submission_count
           FROM chores c LEFT JOIN users u ON u.id = c.created_by
           WHERE c.assigned_to=?
           ORDER BY CASE c.status
               WHEN 'pending_acceptance' THEN 1
               WHEN 'in_progress' THEN 2
               WHEN 'pending_approval' THEN 3
               ELSE 4 END,
             c.created_at DESC, c.id DESC""",
        (user_id,),
    ).fetchall()
    return [dict(r) for r in rows]


def set_assignment(conn: Connection, chore_id: int, status: str, assigned_to: int | None, assigned_at: str | None):
    conn.execute(
        "UPDATE chores SET status=?, assigned_to=?, assigned_at=?, updated_at=datetime('now','localtime') WHERE id=?",
        (status, assigned_to, assigned_at, chore_id),
    )


def mark_accepted(conn: Connection, chore_id: int, ts: str):
    conn.execute(
        "UPDATE chores SET status='in_progress', accepted_at=?, updated_at=datetime('now','localtime') WHERE id=?",
        (ts, chore_id),
    )


def mark_submitted(conn: Connection, chore_id: int, submission_id: int):
    conn.execute(
        "UPDATE chores SET status='pending_approval', active_submission_id=?, "
        "updated_at=datetime('now','localtime') WHERE id=?",
        (submission_id, chore_id),
    )


def mark_completed(conn: Connection, chore_id: int, ts: str):
    conn.execute(
        "UPDATE chores SET status='completed', completed_at=?, active_submission_id=NULL, "
        "updated_at=datetime('now','localtime') WHERE id=?",
        (ts, chore_id),
    )


def mark_rejected(conn: Connection, chore_id: int):
    conn.execute(
        "UPDATE chores SET status='in_progress', active_submission_id=NULL, "
        "updated_at=datetime('now','localtime') WHERE id=?",
        (chore_id,),
    )


def apply_patch(conn: Connection, chore_id: int, fields: dict):
    """fields keys must come from PATCH_COLUMNS; values are bound, never interpolated."""
    sets = []
    params = []
    for key, fragment in PATCH_COLUMNS.items():
        if key in fields:
            sets.append(fragment)
            params.append(fields[key])
    if not sets:
        return
    sets.append("updated_at = datetime('now','localtime')")
    params.append(chore_id)
    conn.execute(f"UPDATE chores SET {', '.join(sets)} WHERE id=?", params)


def clear_assignee(conn: Connection, chore_id: int):
    conn.execute("UPDATE chores SET assigned_to=NULL, assigned_at=NULL WHERE id=?", (chore_id,))


def delete(conn: Connection, chore_id: int):
    conn.execute("DELETE FROM chores WHERE id=?", (chore_id,))


def count_by_status(conn: Connection, family_id: int) -> list[dict]:
    rows = conn.execute(
        "SELECT status, COUNT(*) AS cnt FROM chores WHERE family_id=? GROUP BY status", (family_id,)
    ).fetchall()
    return [dict(r) for r in rows]
