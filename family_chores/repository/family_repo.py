from __future__ import annotations

from sqlite3 import Connection
from typing import Optional


def insert(conn: Connection, name: str, family_code: str, admin_email: str | None,
           timezone: str = "UTC", currency: str = "USD") -> int:
    cur = conn.execute(
        "INSERT INTO families(name, family_code, admin_email, timezone, currency) VALUES(?,?,?,?,?)",
        (name, family_code, admin_email, timezone, currency),
    )
    return cur.lastrowid


def get(conn: Connection, family_id: int) -> Optional[dict]:
    r = conn.execute("SELECT * FROM families WHERE id=?", (family_id,)).fetchone()
    return dict(r) if r else None


def get_by_code(conn: Connection, family_code: str) -> Optional[dict]:
    r = conn.execute(
        "SELECT * FROM families WHERE family_code=?", ((family_code or "").upper(),)
    ).fetchone()
    return dict(r) if r else None


def code_exists(conn: Connection, family_code: str) -> bool:
    return conn.execute("SELECT 1 FROM families WHERE family_code=?", (family_code,)).fetchone() is not None


def list_ids(conn: Connection) -> list[int]:
    return [r["id"] for r in conn.execute("SELECT id FROM families ORDER BY id").fetchall()]
