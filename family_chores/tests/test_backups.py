import json
import os
from pathlib import Path

import pytest

from family_chores.config import get_settings
from family_chores.db import get_conn
from family_chores.errors import Forbidden, NotFound, ValidationError
from family_chores.services import backup_svc


@pytest.fixture(autouse=True)
def _empty_backup_dir(tmp_db_path):
    d = Path(get_settings()["backup_dir"])
    if d.exists():
        for p in d.glob("*.json"):
            p.unlink()
    yield


def test_create_list_and_rotate(family, monkeypatch):
    monkeypatch.setenv("CHORES_MAX_BACKUPS", "2")
    names = [backup_svc.create_backup()["filename"] for _ in range(3)]

    listed = [b["filename"] for b in backup_svc.list_backups()]
    assert listed == [names[2], names[1]]

    stats = backup_svc.backup_stats()
    assert stats["count"] == 2
    assert stats["max_backups"] == 2
    assert stats["last_success"]["filename"] == names[2]


def test_backup_contents(family):
    info = backup_svc.create_backup()
    data = json.loads(backup_svc.resolve_backup(info["filename"]).read_text(encoding="utf-8"))
    assert data["version"] == "1.0"
    assert data["summary"]["users"] == 3
    assert data["summary"]["families"] == 1
    assert "backup_logs" not in data["tables"]


def test_resolve_rejects_traversal_and_missing(tmp_db_path):
    with pytest.raises(Forbidden):
        backup_svc.resolve_backup("../" + os.path.basename(tmp_db_path))
    with pytest.raises(NotFound):
        backup_svc.resolve_backup("db_backup_missing.json")


def test_restore_requires_confirmation(family):
    name = backup_svc.create_backup()["filename"]
    with pytest.raises(ValidationError):
        backup_svc.restore_backup(name, None)


def test_restore_over_api(client, family):
    ph = family["parent_headers"]
    r = client.post("/api/chores", headers=ph, json={"title": "Sweep", "reward_amount": 1})
    cid = r.json()["data"]["chore"]["id"]

    r = client.post("/api/backups/create", headers=ph)
    assert r.status_code == 201, r.text
    name = r.json()["data"]["backup"]["filename"]

    assert client.delete(f"/api/chores/{cid}", headers=ph).status_code == 200

    r = client.post("/api/backups/restore", headers=ph, json={"filename": name})
    assert r.status_code == 400

    r = client.post("/api/backups/restore", headers=ph, json={"filename": "../x.json", "confirmRestore": "CONFIRM_RESTORE"})
    assert r.status_code == 403

    r = client.post("/api/backups/restore", headers=ph, json={"filename": name, "confirmRestore": "CONFIRM_RESTORE"})
    assert r.status_code == 200, r.text
    assert r.json()["data"]["result"]["restored"]["chores"] == 1

    with get_conn() as conn:
        row = conn.execute("SELECT title FROM chores WHERE id=?", (cid,)).fetchone()
    assert row["title"] == "Sweep"


def test_download_and_delete(client, family):
    ph = family["parent_headers"]
    name = client.post("/api/backups/create", headers=ph).json()["data"]["backup"]["filename"]

    r = client.get(f"/api/backups/download/{name}", headers=ph)
    assert r.status_code == 200
    assert r.json()["version"] == "1.0"

    assert client.get("/api/backups", headers=family["child_headers"]).status_code == 403

    assert client.delete(f"/api/backups/{name}", headers=ph).status_code == 200
    assert client.get(f"/api/backups/download/{name}", headers=ph).status_code == 404
