from __future__ import annotations

from sqlite3 import Connection
from typing import Optional


def insert(conn: Connection, rec: dict) -> int:
    cur = conn.execute(
        """INSERT INTO uploads(user_id, family_id, original_filename, stored_filename, file_path,
             thumbnail_path, file_size, mime_type, upload_type)
           VALUES(:user_id, :family_id, :original_filename, :stored_filename, :file_path,
             :thumbnail_path, :file_size, :mime_type, :upload_type)""",
        rec,
    )
    return cur.lastrowid


def get_in_family(conn: Connection, upload_id: int, family_id: int) -> Optional[dict]:
    r = conn.execute("SELECT * FROM uploads WHERE id=? AND family_id=?", (upload_id, family_id)).fetchone()
    return dict(r) if r else None


def list_family(conn: Connection, family_id: int, upload_type: str | None = None) -> list[dict]:
    sql = ("SELECT up.*, u.name AS uploaded_by_name FROM uploads up LEFT JOIN users u ON u.id = up.user_id "
           "WHERE up.family_id=?")
    params: list = [family_id]
    if upload_type:
        sql += " AND up.upload_type=?"
        params.append(upload_type)
    sql += " ORDER BY up.created_at DESC, up.id DESC"
    return [dict(r) for r in conn.execute(sql, params).fetchall()]


def delete(conn: Connection, upload_id: int):
    conn.execute("DELETE FROM uploads WHERE id=?", (upload_id,))
