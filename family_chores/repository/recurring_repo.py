from __future__ import annotations

from sqlite3 import Connection
from typing import Optional

# Typed partial-update targets for templates: field -> fixed SQL fragment.
PATCH_COLUMNS = {
    "title": "title = ?",
    "description": "description = ?",
    "reward_type": "reward_type = ?",
    "reward_amount": "reward_amount = ?",
    "requires_photo": "requires_photo = ?",
    "frequency": "frequency = ?",
    "day_of_week": "day_of_week = ?",
    "day_of_month": "day_of_month = ?",
    "custom_schedule": "custom_schedule = ?",
    "start_date": "start_date = ?",
    "end_date": "end_date = ?",
    "next_due_date": "next_due_date = ?",
    "auto_assign": "auto_assign = ?",
    "assigned_to": "assigned_to = ?",
    "rotation_type": "rotation_type = ?",
    "rotation_members": "rotation_members = ?",
    "priority": "priority = ?",
    "estimated_duration": "estimated_duration = ?",
    "difficulty_level": "difficulty_level = ?",
    "category": "category = ?",
    "is_active": "is_active = ?",
}


def insert(conn: Connection, rec: dict) -> int:
    cur = conn.execute(
        """INSERT INTO recurring_chores(
             family_id, template_id, title, description, reward_type, reward_amount, requires_photo,
             frequency, day_of_week, day_of_month, custom_schedule, start_date, end_date, next_due_date,
             auto_assign, assigned_to, rotation_type, rotation_members, priority, estimated_duration,
             difficulty_level, category, created_by, metadata)
           VALUES(:family_id, :template_id, :title, :description, :reward_type, :reward_amount, :requires_photo,
             :frequency, :day_of_week, :day_of_month, :custom_schedule, :start_date, :end_date, :next_due_date,
             :auto_assign, :assigned_to, :rotation_type, :rotation_members, :priority, :estimated_duration,
             :difficulty_level, :category, :created_by, :metadata)""",
        {
            "template_id": None,
            "description": None,
            "day_of_week": None,
            "day_of_month": None,
            "custom_schedule": None,
            "end_date": None,
            "priority": "medium",
            "estimated_duration": None,
            "difficulty_level": "medium",
            "category": None,
            "metadata": None,
            **rec,
        },
    )
    return cur.lastrowid


def get_in_family(conn: Connection, recurring_id: int, family_id: int) -> Optional[dict]:
    r = conn.execute(
        """SELECT rc.*, u.name AS assigned_to_name, cb.name AS created_by_name
           FROM recurring_chores rc
           LEFT JOIN users u ON u.id = rc.assigned_to
           LEFT JOIN users cb ON cb.id = rc.created_by
           WHERE rc.id=? AND rc.family_id=?""",
        (recurring_id, family_id),
    ).fetchone()
    return dict(r) if r else None


def list_family(conn: Connection, family_id: int) -> list[dict]:
    rows = conn.execute(
        """SELECT rc.*, u.name AS assigned_to_name,
             (SELECT COUNT(*) FROM recurring_chore_history h WHERE h.recurring_id = rc.id) AS generated_count
           FROM recurring_chores rc LEFT JOIN users u ON u.id = rc.assigned_to
           WHERE rc.family_id=? ORDER BY rc.next_due_date ASC, rc.id""",
        (family_id,),
    ).fetchall()
    return [dict(r) for r in rows]


def list_due(conn: Connection, end_of_today: str, today: str, family_id: int | None = None) -> list[dict]:
    sql = (
        "SELECT * FROM recurring_chores WHERE is_active=1 AND next_due_date IS NOT NULL "
        "AND next_due_date <= ? AND (end_date IS NULL OR date(end_date) >= date(?))"
    )
    params: list = [end_of_today, today]
    if family_id is not None:
        sql += " AND family_id=?"
        params.append(family_id)
    sql += " ORDER BY next_due_date, id"
    return [dict(r) for r in conn.execute(sql, params).fetchall()]


def get(conn: Connection, recurring_id: int) -> Optional[dict]:
    r = conn.execute("SELECT * FROM recurring_chores WHERE id=?", (recurring_id,)).fetchone()
    return dict(r) if r else None


def get_active(conn: Connection, recurring_id: int, family_id: int) -> Optional[dict]:
    r = conn.execute(
        "SELECT * FROM recurring_chores WHERE id=? AND family_id=? AND is_active=1", (recurring_id, family_id)
    ).fetchone()
    return dict(r) if r else None


def apply_patch(conn: Connection, recurring_id: int, fields: dict):
    sets = []
    params = []
    for key, fragment in PATCH_COLUMNS.items():
        if key in fields:
            sets.append(fragment)
            params.append(fields[key])
    if not sets:
        return
    sets.append("updated_at = datetime('now','localtime')")
    params.append(recurring_id)
    conn.execute(f"UPDATE recurring_chores SET {', '.join(sets)} WHERE id=?", params)


def advance(conn: Connection, recurring_id: int, next_due_date: str, last_generated: str):
    conn.execute(
        "UPDATE recurring_chores SET next_due_date=?, last_generated=?, updated_at=datetime('now','localtime') WHERE id=?",
        (next_due_date, last_generated, recurring_id),
    )


def delete(conn: Connection, recurring_id: int):
    conn.execute("DELETE FROM recurring_chores WHERE id=?", (recurring_id,))


# --- history ---

def history_exists_on(conn: Connection, recurring_id: int, due_date: str) -> bool:
    r = conn.execute(
        "SELECT 1 FROM recurring_chore_history WHERE recurring_id=? AND date(due_date)=date(?) LIMIT 1",
        (recurring_id, due_date),
    ).fetchone()
    return r is not None


def last_history(conn: Connection, recurring_id: int) -> Optional[dict]:
    r = conn.execute(
        "SELECT * FROM recurring_chore_history WHERE recurring_id=? ORDER BY due_date DESC, id DESC LIMIT 1",
        (recurring_id,),
    ).fetchone()
    return dict(r) if r else None


def insert_history(conn: Connection, recurring_id: int, chore_id: int, due_date: str,
                   assigned_to: int | None) -> int:
    cur = conn.execute(
        "INSERT INTO recurring_chore_history(recurring_id, chore_id, due_date, status, assigned_to) "
        "VALUES(?,?,?, 'generated', ?)",
        (recurring_id, chore_id, due_date, assigned_to),
    )
    return cur.lastrowid


def complete_history_for_chore(conn: Connection, chore_id: int, user_id: int, ts: str):
    conn.execute(
        "UPDATE recurring_chore_history SET status='completed', completed_by=?, completed_at=? "
        "WHERE chore_id=? AND status='generated'",
        (user_id, ts, chore_id),
    )


def list_history(conn: Connection, recurring_id: int, limit: int = 20) -> list[dict]:
    rows = conn.execute(
        """SELECT h.*, u.name AS assigned_to_name, c.status AS chore_status
           FROM recurring_chore_history h
           LEFT JOIN users u ON u.id = h.assigned_to
           LEFT JOIN chores c ON c.id = h.chore_id
           WHERE h.recurring_id=? ORDER BY h.due_date DESC, h.id DESC LIMIT ?""",
        (recurring_id, limit),
    ).fetchall()
    return [dict(r) for r in rows]
