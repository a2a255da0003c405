import datetime as dt

import pytest

from family_chores.db import get_conn, query
from family_chores.errors import ValidationError
from family_chores.repository import recurring_repo
from family_chores.services import recurring_svc


def _template(parent, **overrides):
    body = {
        "title": "Dishes",
        "frequency": "daily",
        "start_date": "2024-05-15",
        "reward_type": "money",
        "reward_amount": 2.5,
    }
    body.update(overrides)
    return recurring_svc.create_template(parent, body, now=dt.datetime(2024, 5, 15, 8, 0))


def _count(sql, *params):
    with get_conn() as conn:
        return conn.execute(sql, params).fetchone()[0]


def test_generate_twice_same_day_is_idempotent(family):
    tpl = _template(family["parent"])
    assert tpl["next_due_date"] == "2024-05-15 09:00:00"
    now = dt.datetime(2024, 5, 15, 10, 0)

    first = recurring_svc.generate(family_id=family["family_id"], now=now)
    assert len(first["generated"]) == 1
    assert first["errors"] == []

    # the template advanced, so nothing is due any more today
    second = recurring_svc.generate(family_id=family["family_id"], now=now)
    assert second["generated"] == []

    # forcing the template when today's history row exists is a skip
    with get_conn() as conn:
        conn.execute("UPDATE recurring_chores SET next_due_date=? WHERE id=?", ("2024-05-15 09:00:00", tpl["id"]))
    third = recurring_svc.generate(family_id=family["family_id"], recurring_id=tpl["id"], now=now)
    assert third["generated"] == []
    assert third["skipped"] == [tpl["id"]]

    assert _count("SELECT COUNT(*) FROM chores WHERE family_id=?", family["family_id"]) == 1
    assert _count("SELECT COUNT(*) FROM recurring_chore_history WHERE recurring_id=?", tpl["id"]) == 1


def test_round_robin_over_successive_days(family):
    kid, kid2 = family["child"]["id"], family["child2"]["id"]
    tpl = _template(family["parent"], auto_assign=True, rotation_type="round_robin", rotation_members=[kid, kid2])

    assignees = []
    for day in range(4):
        now = dt.datetime(2024, 5, 15, 10, 0) + dt.timedelta(days=day)
        res = recurring_svc.generate(family_id=family["family_id"], now=now)
        assert len(res["generated"]) == 1
        assignees.append(res["generated"][0]["assigned_to"])
    assert assignees == [kid, kid2, kid, kid2]

    with get_conn() as conn:
        chores = conn.execute(
            "SELECT status, assigned_to, due_date FROM chores WHERE family_id=? ORDER BY id", (family["family_id"],)
        ).fetchall()
        pending = conn.execute(
            "SELECT COUNT(*) FROM chore_assignments WHERE status='pending' AND acceptance_deadline IS NULL"
        ).fetchone()[0]
    assert [c["status"] for c in chores] == ["assigned"] * 4
    assert chores[0]["due_date"] == "2024-05-15 09:00:00"
    assert chores[3]["due_date"] == "2024-05-18 09:00:00"
    assert pending == 4

    detail = recurring_svc.get_template(family["parent"], tpl["id"])
    assert detail["next_due_date"] == "2024-05-19 09:00:00"
    assert len(detail["history"]) == 4


def test_generated_chore_can_be_accepted(client, family):
    kid = family["child"]["id"]
    _template(family["parent"], auto_assign=True, assigned_to=kid)
    res = recurring_svc.generate(family_id=family["family_id"], now=dt.datetime(2024, 5, 15, 10, 0))
    cid = res["generated"][0]["chore_id"]

    r = client.post(f"/api/chores/{cid}/accept", headers=family["child_headers"])
    assert r.status_code == 200, r.text
    assert r.json()["data"]["chore"]["status"] == "in_progress"


def test_approving_generated_chore_completes_history(client, family):
    kid = family["child"]["id"]
    tpl = _template(family["parent"], auto_assign=True, assigned_to=kid)
    cid = recurring_svc.generate(family_id=family["family_id"], now=dt.datetime(2024, 5, 15, 10, 0))["generated"][0]["chore_id"]
    ch, ph = family["child_headers"], family["parent_headers"]
    client.post(f"/api/chores/{cid}/accept", headers=ch)
    client.post(f"/api/chores/{cid}/submit", headers=ch)
    assert client.post(f"/api/chores/{cid}/approve", headers=ph).status_code == 200

    history = recurring_svc.get_template(family["parent"], tpl["id"])["history"]
    assert history[0]["completed_by"] == kid
    assert history[0]["completed_at"]


def test_one_failing_template_does_not_stop_others(family, monkeypatch):
    good = _template(family["parent"], title="Trash")
    bad = _template(family["parent"], title="Broken")

    original = recurring_svc._generate_one

    def flaky(template, generated_by, now, rng):
        if template["id"] == bad["id"]:
            raise RuntimeError("boom")
        return original(template, generated_by, now, rng)

    monkeypatch.setattr(recurring_svc, "_generate_one", flaky)
    res = recurring_svc.generate(family_id=family["family_id"], now=dt.datetime(2024, 5, 15, 10, 0))
    assert [g["recurring_id"] for g in res["generated"]] == [good["id"]]
    assert res["errors"] == [{"recurring_id": bad["id"], "title": "Broken", "error": "boom"}]


def test_failed_generation_step_rolls_back(family, monkeypatch):
    tpl = _template(family["parent"], auto_assign=True, assigned_to=family["child"]["id"])

    def boom(*a, **kw):
        raise RuntimeError("disk full")

    monkeypatch.setattr(recurring_repo, "advance", boom)
    res = recurring_svc.generate(family_id=family["family_id"], now=dt.datetime(2024, 5, 15, 10, 0))
    assert res["generated"] == []
    assert [e["recurring_id"] for e in res["errors"]] == [tpl["id"]]

    assert query("SELECT COUNT(*) AS n FROM chores")[0]["n"] == 0
    assert query("SELECT COUNT(*) AS n FROM chore_assignments")[0]["n"] == 0
    assert query("SELECT COUNT(*) AS n FROM recurring_chore_history")[0]["n"] == 0
    row = query("SELECT next_due_date, last_generated FROM recurring_chores WHERE id=?", (tpl["id"],))[0]
    assert row == {"next_due_date": "2024-05-15 09:00:00", "last_generated": None}


def test_inactive_and_ended_templates_are_not_due(family):
    tpl = _template(family["parent"])
    recurring_svc.update_template(family["parent"], tpl["id"], {"is_active": False})
    _template(family["parent"], title="Old", end_date="2024-05-01")
    res = recurring_svc.generate(family_id=family["family_id"], now=dt.datetime(2024, 5, 15, 10, 0))
    assert res["generated"] == []


def test_weekly_template_steps_a_week(family):
    tpl = _template(family["parent"], frequency="weekly", day_of_week="monday", start_date="2024-05-13")
    # start Monday 13th is before "now" (15th 08:00); already on monday so no shift
    assert tpl["next_due_date"] == "2024-05-13 09:00:00"
    res = recurring_svc.generate(family_id=family["family_id"], now=dt.datetime(2024, 5, 15, 10, 0))
    assert res["generated"][0]["next_due_date"] == "2024-05-20 09:00:00"


def test_update_recomputes_due_date(family):
    tpl = _template(family["parent"])
    out = recurring_svc.update_template(
        family["parent"], tpl["id"], {"start_date": "2024-06-01"}, now=dt.datetime(2024, 5, 20, 8, 0)
    )
    assert out["next_due_date"] == "2024-06-01 09:00:00"


def test_create_validation(family):
    parent = family["parent"]
    with pytest.raises(ValidationError):
        recurring_svc.create_template(parent, {"title": "x"})
    with pytest.raises(ValidationError):
        _template(parent, start_date="not-a-date")
    with pytest.raises(ValidationError):
        _template(parent, auto_assign=True, rotation_type="round_robin", rotation_members=[])


def test_recurring_api(client, family):
    ph = family["parent_headers"]
    r = client.post("/api/recurring", headers=ph, json={
        "title": "Laundry", "frequency": "weekly", "day_of_week": "saturday",
        "start_date": "2030-01-05", "reward_type": "screen_time", "reward_amount": 20,
    })
    assert r.status_code == 201, r.text
    rid = r.json()["data"]["recurringChore"]["id"]

    r = client.get("/api/recurring", headers=ph)
    assert [t["id"] for t in r.json()["data"]["recurringChores"]] == [rid]

    # not due until 2030
    r = client.post("/api/recurring/generate", headers=ph, json={})
    assert r.status_code == 200
    assert r.json()["data"]["generated"] == 0

    r = client.post("/api/recurring/generate", headers=ph, json={"recurringId": rid})
    assert r.json()["data"]["generated"] == 1

    r = client.post("/api/recurring", headers=family["child_headers"], json={
        "title": "x", "frequency": "daily", "start_date": "2030-01-01", "reward_type": "money", "reward_amount": 1,
    })
    assert r.status_code == 403

    assert client.delete(f"/api/recurring/{rid}", headers=ph).status_code == 200
    assert client.get(f"/api/recurring/{rid}", headers=ph).status_code == 404
