import datetime as dt
import io

from PIL import Image

from family_chores.config import get_settings
from family_chores.ratelimit import InMemoryRateLimitStore, RateLimiter
from family_chores.services import recurring_svc, scheduler_svc


def _jpeg():
    buf = io.BytesIO()
    Image.new("RGB", (800, 600), (10, 120, 200)).save(buf, format="JPEG")
    return buf.getvalue()


def test_upload_list_and_delete(client, family):
    ch = family["child_headers"]
    r = client.post("/api/uploads", headers=ch, data={"upload_type": "avatar"},
                    files={"photo": ("me.jpg", _jpeg(), "image/jpeg")})
    assert r.status_code == 201, r.text
    up = r.json()["data"]["upload"]
    assert up["file_path"].startswith("avatar/")
    assert up["thumbnail_path"].startswith("avatar/thumbnails/")

    r = client.get("/api/uploads/type/avatar", headers=family["parent_headers"])
    assert [u["id"] for u in r.json()["data"]["uploads"]] == [up["id"]]
    assert client.get("/api/uploads/type/general", headers=ch).json()["data"]["uploads"] == []

    # another child cannot delete it
    assert client.delete(f"/api/uploads/{up['id']}", headers=family["child2_headers"]).status_code == 404
    assert client.delete(f"/api/uploads/{up['id']}", headers=ch).status_code == 200
    assert client.get(f"/api/uploads/{up['id']}", headers=ch).status_code == 404


def test_upload_rejects_non_images(client, family):
    ch = family["child_headers"]
    r = client.post("/api/uploads", headers=ch, files={"photo": ("notes.txt", b"hello", "text/plain")})
    assert r.status_code == 400
    r = client.post("/api/uploads", headers=ch, files={"photo": ("fake.png", b"not really a png", "image/png")})
    assert r.status_code == 400


def test_upload_rate_limit(client, app, family):
    app.state.upload_limiter = RateLimiter(InMemoryRateLimitStore(), limit=1, window_seconds=60, prefix="upload",
                                           message="Too many upload attempts, please try again later.")
    ch = family["child_headers"]
    assert client.get("/api/uploads", headers=ch).status_code == 200
    r = client.get("/api/uploads", headers=ch)
    assert r.status_code == 429
    assert "upload" in r.json()["message"]
    # other routes are not counted
    assert client.get("/api/chores", headers=ch).status_code == 200


def test_default_rate_limits(tmp_db_path, monkeypatch):
    monkeypatch.delenv("CHORES_AUTH_RATE_LIMIT")
    monkeypatch.delenv("CHORES_UPLOAD_RATE_LIMIT")
    settings = get_settings()
    assert (settings["auth_rate_limit"], settings["upload_rate_limit"]) == (5, 10)
    assert settings["auth_rate_window_seconds"] == 900


def test_build_scheduler_registers_jobs():
    settings = {"recurring_cron": "0 6 * * *", "backup_cron": "0 2 * * *"}
    scheduler = scheduler_svc.build_scheduler(settings)
    assert {j.id for j in scheduler.get_jobs()} == {"recurring_generation", "database_backup"}


def test_invalid_cron_is_skipped():
    settings = {"recurring_cron": "not a cron", "backup_cron": "0 2 * * *"}
    scheduler = scheduler_svc.build_scheduler(settings)
    assert [j.id for j in scheduler.get_jobs()] == ["database_backup"]


def test_scheduler_disabled_under_tests():
    assert scheduler_svc.start_scheduler() is None


def test_generation_job_covers_every_family(client, family):
    r = client.post("/api/auth/register", json={
        "familyName": "Jones", "adminEmail": "jo@example.com", "adminPassword": "secret123",
    })
    other = r.json()["data"]["user"]
    today = dt.date.today().isoformat()
    for parent in (family["parent"], other):
        recurring_svc.create_template(parent, {
            "title": "Water plants", "frequency": "daily", "start_date": today,
            "reward_type": "money", "reward_amount": 1,
        }, now=dt.datetime.combine(dt.date.today(), dt.time(0, 0)))

    scheduler_svc.job_generate_recurring()

    for headers in (family["parent_headers"], {"Authorization": f"Bearer {r.json()['token']}"}):
        chores = client.get("/api/chores", headers=headers).json()["data"]["chores"]
        assert [c["title"] for c in chores] == ["Water plants"]
