import pytest

from family_chores.domain import lifecycle


def test_money_rounds_half_up():
    assert lifecycle.round_money(2.345) == 2.35
    assert lifecycle.round_money(0.005) == 0.01
    assert lifecycle.round_money(None) == 0.0


def test_screen_time_whole_minutes():
    assert lifecycle.round_minutes(14.5) == 15
    assert lifecycle.normalize_reward("screen_time", 29.4) == 29.0


def test_normalize_reward_rejects_bad_input():
    with pytest.raises(ValueError):
        lifecycle.normalize_reward("candy", 1)
    with pytest.raises(ValueError):
        lifecycle.normalize_reward("money", -1)


def test_credit_delta():
    assert lifecycle.credit_delta("money", 5.0) == (5.0, 0)
    assert lifecycle.credit_delta("screen_time", 30) == (0.0, 30)


def test_status_patch_guard():
    lifecycle.check_status_patch("available", None)
    lifecycle.check_status_patch("in_progress", 3)
    with pytest.raises(ValueError):
        lifecycle.check_status_patch("in_progress", None)
    with pytest.raises(ValueError):
        lifecycle.check_status_patch("finished", 3)


def test_guards():
    chore = {"status": "assigned", "assigned_to": 2}
    assert lifecycle.can_respond(chore, 2)
    assert not lifecycle.can_respond(chore, 3)
    assert not lifecycle.can_submit(chore, 2)
    assert lifecycle.can_submit({"status": "in_progress", "assigned_to": 2}, 2)
    assert not lifecycle.can_delete({"status": "completed"})
    assert lifecycle.can_assign({"status": "in_progress"})
    assert not lifecycle.can_assign({"status": "pending_approval"})
