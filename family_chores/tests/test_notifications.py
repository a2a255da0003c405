from family_chores.services import notification_svc


def _assign(client, family):
    r = client.post("/api/chores", headers=family["parent_headers"], json={
        "title": "Feed the cat", "reward_amount": 1, "auto_assign": True, "assigned_to": family["child"]["id"],
    })
    assert r.status_code == 201
    return r.json()["data"]["chore"]["id"]


def test_assignment_lands_in_inbox(client, family):
    _assign(client, family)
    ch = family["child_headers"]

    r = client.get("/api/notifications/unread", headers=ch)
    assert r.json()["data"]["unreadCount"] == 1

    r = client.get("/api/notifications", headers=ch)
    data = r.json()["data"]
    note = data["notifications"][0]
    assert note["notification_type"] == "chore_assigned"
    assert "Feed the cat" in note["message"]
    assert note["is_read"] is False
    assert data["pagination"]["totalCount"] == 1

    r = client.patch(f"/api/notifications/{note['id']}/read", headers=ch)
    assert r.status_code == 200
    assert client.get("/api/notifications/unread", headers=ch).json()["data"]["unreadCount"] == 0

    # another user's notification is not reachable
    r = client.patch(f"/api/notifications/{note['id']}/read", headers=family["child2_headers"])
    assert r.status_code == 404


def test_submit_notifies_parents(client, family):
    cid = _assign(client, family)
    ch = family["child_headers"]
    client.post(f"/api/chores/{cid}/accept", headers=ch)
    client.post(f"/api/chores/{cid}/submit", headers=ch)

    r = client.get("/api/notifications", headers=family["parent_headers"])
    types = [n["notification_type"] for n in r.json()["data"]["notifications"]]
    assert types == ["chore_completed"]


def test_settings_disable_in_app(client, family):
    ch = family["child_headers"]
    r = client.get("/api/notifications/settings", headers=ch)
    assert r.json()["data"]["settings"] == {"email": True, "push": True, "sms": False, "in_app": True}

    r = client.put("/api/notifications/settings", headers=ch, json={"in_app": False})
    assert r.json()["data"]["settings"]["in_app"] is False
    assert r.json()["data"]["settings"]["email"] is True

    _assign(client, family)
    assert client.get("/api/notifications/unread", headers=ch).json()["data"]["unreadCount"] == 0


def test_read_all_and_delete(client, family):
    _assign(client, family)
    _assign(client, family)
    ch = family["child_headers"]
    r = client.patch("/api/notifications/read-all", headers=ch)
    assert r.json()["data"]["updated"] == 2
    r = client.delete("/api/notifications", headers=ch)
    assert r.json()["data"]["deleted"] == 2
    assert client.get("/api/notifications", headers=ch).json()["data"]["notifications"] == []


def test_push_subscription(client, family):
    ch = family["child_headers"]
    r = client.post("/api/notifications/push-subscription", headers=ch, json={"subscription": {}})
    assert r.status_code == 400

    sub = {"endpoint": "https://push.example.com/abc", "keys": {"p256dh": "k", "auth": "a"}}
    assert client.post("/api/notifications/push-subscription", headers=ch, json={"subscription": sub}).status_code == 200
    # registering twice keeps one row
    assert client.post("/api/notifications/push-subscription", headers=ch, json={"subscription": sub}).status_code == 200

    r = client.request("DELETE", "/api/notifications/push-subscription", headers=ch,
                       json={"endpoint": sub["endpoint"]})
    assert r.status_code == 200


def test_notify_user_never_raises(family, monkeypatch):
    def broken(*a, **kw):
        raise RuntimeError("db down")

    monkeypatch.setattr(notification_svc, "get_user_settings", broken)
    res = notification_svc.notify_user(family["child"]["id"], "test", "t", "m")
    assert res == {"in_app": False, "email": False, "push": False}


def test_email_failure_is_reported_not_raised(family, monkeypatch):
    monkeypatch.setenv("CHORES_EMAIL_ENABLED", "true")
    sent = []
    monkeypatch.setattr(notification_svc, "send_email", lambda to, subject, body: sent.append(to) or False)
    res = notification_svc.notify_user(family["child"]["id"], "test", "Hello", "World")
    assert res["in_app"] is True
    assert res["email"] is False
    assert sent == ["alex@example.com"]
