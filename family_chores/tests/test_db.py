import pytest

from family_chores.db import query, transaction


def test_query_returns_dicts(family):
    rows = query("SELECT name, role FROM users WHERE family_id=? ORDER BY name", (family["family_id"],))
    assert rows == [
        {"name": "Alex", "role": "child"},
        {"name": "Blair", "role": "child"},
        {"name": "Pat", "role": "parent"},
    ]
    named = query("SELECT id FROM users WHERE email=:email", {"email": "pat@example.com"})
    assert named == [{"id": family["parent"]["id"]}]
    assert query("SELECT id FROM users WHERE id=?", (-1,)) == []


def test_transaction_rolls_back_on_error(family):
    def _tx(conn):
        conn.execute("UPDATE users SET earnings=99 WHERE id=?", (family["child"]["id"],))
        raise RuntimeError("abort")

    with pytest.raises(RuntimeError):
        transaction(_tx)
    assert query("SELECT earnings FROM users WHERE id=?", (family["child"]["id"],))[0]["earnings"] == 0
