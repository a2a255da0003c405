import datetime as dt

import pytest

from family_chores.errors import RateLimited, Unauthenticated
from family_chores.ratelimit import InMemoryRateLimitStore, RateLimiter
from family_chores.security import decode_token, issue_token


def _login(client, code, email, password):
    return client.post("/api/auth/login", json={"familyCode": code, "email": email, "password": password})


def test_register_login_and_me(client, family):
    r = _login(client, family["family_code"], "PAT@example.com", "secret123")
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "success"
    assert "password_hash" not in body["data"]["user"]

    headers = {"Authorization": f"Bearer {body['token']}"}
    r = client.get("/api/auth/me", headers=headers)
    me = r.json()["data"]["user"]
    assert me["role"] == "parent"
    assert me["family_code"] == family["family_code"]
    assert "stats" in me


def test_family_code_lookup(client, family):
    r = client.post("/api/auth/check-family-code", json={"familyCode": family["family_code"].lower()})
    assert r.status_code == 200
    assert r.json()["data"]["valid"] is True

    r = client.post("/api/auth/family-members", json={"familyCode": family["family_code"]})
    names = sorted(m["name"] for m in r.json()["data"]["members"])
    assert names == ["Alex", "Blair", "Pat"]

    r = client.post("/api/auth/check-family-code", json={"familyCode": "ZZZZZZZZ"})
    assert r.status_code == 404


def test_register_user_into_family(client, family):
    r = client.post("/api/auth/register-user", json={
        "familyCode": family["family_code"], "name": "Casey",
        "email": "casey@example.com", "password": "secret123", "role": "child",
    })
    assert r.status_code == 201, r.text
    assert r.json()["data"]["user"]["family_id"] == family["family_id"]

    # same email in the same family
    r = client.post("/api/auth/register-user", json={
        "familyCode": family["family_code"], "name": "Casey Two",
        "email": "casey@example.com", "password": "secret123", "role": "child",
    })
    assert r.status_code == 409


def test_request_validation_errors(client):
    r = client.post("/api/auth/register", json={"familyName": "X", "adminEmail": "nope", "adminPassword": "1"})
    assert r.status_code == 400
    body = r.json()
    assert body["status"] == "fail"
    fields = {e["field"] for e in body["errors"]}
    assert {"familyName", "adminEmail", "adminPassword"} <= fields


def test_wrong_password_locks_account(client, family):
    code = family["family_code"]
    for _ in range(5):
        r = _login(client, code, "pat@example.com", "wrongpass")
        assert r.status_code == 401

    r = _login(client, code, "pat@example.com", "secret123")
    assert r.status_code == 423


def test_successful_login_resets_attempts(client, family):
    code = family["family_code"]
    for _ in range(4):
        _login(client, code, "pat@example.com", "wrongpass")
    assert _login(client, code, "pat@example.com", "secret123").status_code == 200
    for _ in range(4):
        _login(client, code, "pat@example.com", "wrongpass")
    assert _login(client, code, "pat@example.com", "secret123").status_code == 200


def test_lockout_expires(family):
    from family_chores.services import auth_svc

    code = family["family_code"]
    t0 = dt.datetime(2024, 5, 15, 12, 0)
    for _ in range(5):
        with pytest.raises(Unauthenticated):
            auth_svc.login(code, "pat@example.com", "wrongpass", now=t0)
    res = auth_svc.login(code, "pat@example.com", "secret123", now=t0 + dt.timedelta(minutes=16))
    assert res["user"]["id"] == family["parent"]["id"]


def test_auth_rate_limit(client, app):
    app.state.auth_limiter = RateLimiter(InMemoryRateLimitStore(), limit=2, window_seconds=60)
    for _ in range(2):
        r = _login(client, "ABCDEFGH", "who@example.com", "whatever")
        assert r.status_code == 401
    r = _login(client, "ABCDEFGH", "who@example.com", "whatever")
    assert r.status_code == 429
    assert r.json()["retryAfter"] >= 1


def test_rate_limit_window_resets():
    clock = [100.0]
    limiter = RateLimiter(InMemoryRateLimitStore(clock=lambda: clock[0]), limit=1, window_seconds=10)
    limiter.hit("1.2.3.4")
    with pytest.raises(RateLimited):
        limiter.hit("1.2.3.4")
    limiter.hit("5.6.7.8")
    clock[0] += 11
    limiter.hit("1.2.3.4")


def test_token_round_trip_and_expiry(tmp_db_path):
    assert decode_token(issue_token(42)) == 42
    old = dt.datetime.now(dt.timezone.utc) - dt.timedelta(days=3)
    with pytest.raises(Unauthenticated) as exc:
        decode_token(issue_token(42, now=old))
    assert "expired" in exc.value.message


def test_child_cannot_add_member(client, family):
    r = client.post("/api/auth/add-member", headers=family["child_headers"], json={"name": "Sneaky", "role": "parent"})
    assert r.status_code == 403
