from __future__ import annotations

# family_chores/services/backup_svc.py
import json
import logging
import os
from datetime import datetime
from pathlib import Path

from ..config import get_settings
from ..db import get_conn, transaction
from ..errors import Forbidden, NotFound, ValidationError
from ..repository import backup_repo

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0"
BACKUP_PREFIX = "db_backup_"
RESTORE_CONFIRMATION = "CONFIRM_RESTORE"

# parents before children; restore inserts in this order and deletes in reverse
BUSINESS_TABLES = [
    "families",
    "users",
    "achievements",
    "recurring_chores",
    "chores",
    "chore_assignments",
    "chore_submissions",
    "completed_tasks",
    "recurring_chore_history",
    "user_achievements",
    "user_notifications",
    "push_subscriptions",
    "uploads",
    "activity_log",
]


def _backup_dir() -> Path:
    d = Path(get_settings()["backup_dir"])
    d.mkdir(parents=True, exist_ok=True)
    return d


def resolve_backup(filename: str) -> Path:
    """Path of a backup file inside backup_dir; Forbidden on traversal, NotFound if absent."""
    root = _backup_dir().resolve()
    path = (root / filename).resolve()
    if path.parent != root:
        raise Forbidden("Access denied")
    if not path.is_file():
        raise NotFound("Backup file not found")
    return path


def dump_tables() -> dict:
    data = {
        "timestamp": datetime.now().isoformat(),
        "version": BACKUP_VERSION,
        "tables": {},
        "summary": {},
    }
    with get_conn() as conn:
        for table in BUSINESS_TABLES:
            rows = [dict(r) for r in conn.execute(f"SELECT * FROM {table} ORDER BY id").fetchall()]
            data["tables"][table] = rows
            data["summary"][table] = len(rows)
    return data


def create_backup(backup_type: str = "full") -> dict:
    """Write a JSON dump of every business table, log it, then rotate old files."""
    filename = f"{BACKUP_PREFIX}{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}.json"
    path = _backup_dir() / filename
    try:
        data = dump_tables()
        path.write_text(json.dumps(data, ensure_ascii=False, indent=2, default=str), encoding="utf-8")
        size = path.stat().st_size
    except Exception as e:
        logger.error("backup failed: %s", e)
        with get_conn() as conn:
            backup_repo.log(conn, backup_type, filename, 0, "failed", str(e))
        raise
    with get_conn() as conn:
        backup_repo.log(conn, backup_type, filename, size, "success")
    removed = rotate_backups()
    logger.info("backup %s written (%s bytes), %s old backups removed", filename, size, len(removed))
    return {"filename": filename, "size": size, "summary": data["summary"], "created_at": data["timestamp"]}


def list_backups() -> list[dict]:
    out = []
    for p in _backup_dir().glob(f"{BACKUP_PREFIX}*.json"):
        st = p.stat()
        out.append({
            "filename": p.name,
            "size": st.st_size,
            "created_at": datetime.fromtimestamp(st.st_mtime).isoformat(timespec="seconds"),
        })
    # names embed the creation timestamp
    out.sort(key=lambda b: b["filename"], reverse=True)
    return out


def rotate_backups(max_backups: int | None = None) -> list[str]:
    keep = max_backups if max_backups is not None else get_settings()["max_backups"]
    backups = list_backups()
    removed = []
    for b in backups[keep:]:
        try:
            os.remove(_backup_dir() / b["filename"])
            removed.append(b["filename"])
        except OSError as e:
            logger.warning("could not remove old backup %s: %s", b["filename"], e)
    return removed


def backup_stats() -> dict:
    backups = list_backups()
    with get_conn() as conn:
        recent = backup_repo.recent(conn, 10)
        last_ok = backup_repo.last_success(conn)
    return {
        "count": len(backups),
        "total_size": sum(b["size"] for b in backups),
        "latest": backups[0] if backups else None,
        "max_backups": get_settings()["max_backups"],
        "last_success": last_ok,
        "recent_logs": recent,
    }


def delete_backup(filename: str):
    os.remove(resolve_backup(filename))


def restore_backup(filename: str, confirm: str | None) -> dict:
    """Replace every business table with the file's contents in one transaction."""
    if confirm != RESTORE_CONFIRMATION:
        raise ValidationError("Restore operation requires explicit confirmation")
    path = resolve_backup(filename)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except ValueError:
        raise ValidationError("Backup file is not valid JSON")
    tables = data.get("tables") if isinstance(data, dict) else None
    if not isinstance(tables, dict):
        raise ValidationError("Backup file format is invalid")

    def _tx(conn):
        restored = {}
        for table in reversed(BUSINESS_TABLES):
            conn.execute(f"DELETE FROM {table}")
        for table in BUSINESS_TABLES:
            rows = tables.get(table) or []
            known = {r["name"] for r in conn.execute(f"PRAGMA table_info({table})").fetchall()}
            for row in rows:
                cols = [c for c in row if c in known]
                if not cols:
                    continue
                sql = f"INSERT INTO {table} ({','.join(cols)}) VALUES ({','.join('?' for _ in cols)})"
                conn.execute(sql, [row[c] for c in cols])
            restored[table] = len(rows)
        return restored

    restored = transaction(_tx)
    with get_conn() as conn:
        backup_repo.log(conn, "restore", filename, path.stat().st_size, "success")
    logger.warning("database restored from %s", filename)
    return {"message": f"Restored {len(restored)} tables from {filename}", "restored": restored,
            "backup_version": data.get("version", "unknown")}
