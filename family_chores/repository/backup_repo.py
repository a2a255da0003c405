from __future__ import annotations

from sqlite3 import Connection


def log(conn: Connection, backup_type: str, filename: str | None, file_size: int,
        status: str, error_message: str | None = None):
    conn.execute(
        "INSERT INTO backup_logs(backup_type, filename, file_size, status, error_message) VALUES(?,?,?,?,?)",
        (backup_type, filename, file_size, status, error_message),
    )


def recent(conn: Connection, limit: int = 10) -> list[dict]:
    rows = conn.execute(
        "SELECT * FROM backup_logs ORDER BY created_at DESC, id DESC LIMIT ?", (limit,)
    ).fetchall()
    return [dict(r) for r in rows]


def last_success(conn: Connection):
    r = conn.execute(
        "SELECT * FROM backup_logs WHERE status='success' ORDER BY created_at DESC, id DESC LIMIT 1"
    ).fetchone()
    return dict(r) if r else None
