import os
import sys
import sqlite3
import pytest
from pathlib import Path

# Ensure project root on sys.path
_THIS_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _THIS_DIR.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

TABLES = [
    "activity_log",
    "backup_logs",
    "uploads",
    "push_subscriptions",
    "user_notifications",
    "user_achievements",
    "achievements",
    "recurring_chore_history",
    "recurring_chores",
    "completed_tasks",
    "chore_submissions",
    "chore_assignments",
    "chores",
    "users",
    "families",
]


@pytest.fixture(scope="session")
def tmp_db_path(tmp_path_factory):
    base = tmp_path_factory.mktemp("chores")
    path = base / "chores_test.db"
    # Point the app at temp storage
    os.environ["APP_ENV"] = "test"
    os.environ["CHORES_DB_PATH"] = str(path)
    os.environ["CHORES_UPLOAD_DIR"] = str(base / "uploads")
    os.environ["CHORES_BACKUP_DIR"] = str(base / "backups")
    os.environ["CHORES_CONFIG"] = str(base / "missing-config.yaml")
    os.environ["CHORES_JWT_SECRET"] = "test-secret"
    # rate limits get their own tests with a dedicated limiter
    os.environ["CHORES_AUTH_RATE_LIMIT"] = "1000"
    os.environ["CHORES_UPLOAD_RATE_LIMIT"] = "1000"
    schema = Path(_PROJECT_ROOT / "schema.sql").read_text(encoding="utf-8")
    conn = sqlite3.connect(str(path))
    try:
        conn.executescript(schema)
        conn.commit()
    finally:
        conn.close()
    return str(path)


@pytest.fixture()
def app(tmp_db_path):
    # Fresh app per test so the auth rate limiter starts empty
    from family_chores.api import create_app
    return create_app()


@pytest.fixture()
def client(app):
    from fastapi.testclient import TestClient
    return TestClient(app)


@pytest.fixture(autouse=True)
def _clean_db(tmp_db_path):
    # Safety: ensure we only ever wipe the temp DB, never a real one
    assert os.environ.get("CHORES_DB_PATH") == tmp_db_path, "Refusing to clean non-temp DB"
    conn = sqlite3.connect(tmp_db_path)
    try:
        for t in TABLES:
            conn.execute(f"DELETE FROM {t}")
        conn.commit()
    finally:
        conn.close()
    yield


def auth_headers(user_id: int) -> dict:
    from family_chores.security import issue_token
    return {"Authorization": f"Bearer {issue_token(user_id)}"}


@pytest.fixture()
def family(client):
    """A registered family: one parent (via the API) and two children."""
    r = client.post("/api/auth/register", json={
        "familyName": "Smith Family",
        "adminName": "Pat",
        "adminEmail": "pat@example.com",
        "adminPassword": "secret123",
    })
    assert r.status_code == 201, r.text
    body = r.json()
    parent = body["data"]["user"]
    parent_headers = {"Authorization": f"Bearer {body['token']}"}

    kids = []
    for name in ("Alex", "Blair"):
        r = client.post("/api/auth/add-member", headers=parent_headers, json={
            "name": name,
            "role": "child",
            "email": f"{name.lower()}@example.com",
            "password": "kidpass1",
        })
        assert r.status_code == 201, r.text
        kids.append(r.json()["data"]["user"])

    return {
        "family_id": parent["family_id"],
        "family_code": parent["family_code"],
        "parent": parent,
        "parent_headers": parent_headers,
        "child": kids[0],
        "child_headers": auth_headers(kids[0]["id"]),
        "child2": kids[1],
        "child2_headers": auth_headers(kids[1]["id"]),
    }
