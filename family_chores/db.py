from __future__ import annotations

# family_chores/db.py
import logging
import os
import sqlite3
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping, Sequence, TypeVar

from .config import get_settings, is_test_env, _PROJECT_ROOT

logger = logging.getLogger(__name__)

T = TypeVar("T")

SCHEMA_PATH = os.path.join(_PROJECT_ROOT, "schema.sql")


def get_db_path(_: str | None = None) -> str:
    # CHORES_DB_PATH wins (folded into settings); under pytest prefer test_db_path when configured
    settings = get_settings()
    env_path = os.environ.get("CHORES_DB_PATH")
    if env_path:
        path = env_path
    elif is_test_env() and settings["test_db_path"]:
        path = settings["test_db_path"]
    else:
        path = settings["db_path"]

    dirn = os.path.dirname(path) or "."
    os.makedirs(dirn, exist_ok=True)
    return path


@contextmanager
def get_conn(db_path: str | None = None) -> Iterator[sqlite3.Connection]:
    """
    Open a SQLite connection. An explicit db_path wins over get_db_path().
    Foreign keys are enabled and rows come back as sqlite3.Row.
    The connection is in autocommit mode; use transaction() for multi-statement work.
    """
    path = db_path or get_db_path()
    conn = sqlite3.connect(
        path,
        check_same_thread=False,
        isolation_level=None,
        timeout=30,
    )
    try:
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.row_factory = sqlite3.Row
        yield conn
    finally:
        conn.close()


def query(sql: str, params: Sequence[Any] | Mapping[str, Any] = ()) -> list[dict]:
    """Run one read statement on a fresh connection and return rows as dicts."""
    with get_conn() as conn:
        return [dict(r) for r in conn.execute(sql, params).fetchall()]


def transaction(fn: Callable[[sqlite3.Connection], T]) -> T:
    """
    Run fn(conn) inside BEGIN IMMEDIATE ... COMMIT.
    Any exception rolls the whole unit back and is re-raised.
    """
    with get_conn() as conn:
        conn.execute("BEGIN IMMEDIATE")
        try:
            result = fn(conn)
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")
        return result


def ensure_schema(db_path: str | None = None) -> None:
    with open(SCHEMA_PATH, "r", encoding="utf-8") as f:
        ddl = f.read()
    with get_conn(db_path) as conn:
        conn.executescript(ddl)
    logger.info("schema ensured at %s", db_path or get_db_path())
