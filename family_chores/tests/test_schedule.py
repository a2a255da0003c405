import datetime as dt

import pytest

from family_chores.domain.schedule import initial_due_date, parse_day_of_week, plain_step


NOW = dt.datetime(2024, 5, 15, 12, 0)  # a Wednesday


def test_future_start_is_due_at_nine():
    due = initial_due_date("daily", "2024-05-20", NOW)
    assert due == dt.datetime(2024, 5, 20, 9, 0)


def test_weekly_past_start_aligns_to_next_named_day():
    # start Wed 2024-05-15 09:00 is already past at noon; next Monday
    due = initial_due_date("weekly", "2024-05-15", NOW, day_of_week="monday")
    assert due == dt.datetime(2024, 5, 20, 9, 0)
    assert due.weekday() == 0


def test_weekly_already_on_named_day_stays():
    due = initial_due_date("weekly", "2024-05-15", NOW, day_of_week="Wednesday")
    assert due == dt.datetime(2024, 5, 15, 9, 0)


def test_weekly_without_day_adds_a_week():
    due = initial_due_date("weekly", "2024-05-15", NOW)
    assert due == dt.datetime(2024, 5, 22, 9, 0)


def test_daily_and_custom_past_start_add_one_day():
    assert initial_due_date("daily", "2024-05-01", NOW) == dt.datetime(2024, 5, 2, 9, 0)
    assert initial_due_date("custom", "2024-05-01", NOW) == dt.datetime(2024, 5, 2, 9, 0)


def test_monthly_aligns_to_day_of_month():
    assert initial_due_date("monthly", "2024-05-01", NOW, day_of_month=20) == dt.datetime(2024, 5, 20, 9, 0)
    # day 10 of May already passed, so June 10
    assert initial_due_date("monthly", "2024-05-01", NOW, day_of_month=10) == dt.datetime(2024, 6, 10, 9, 0)


def test_monthly_day_31_clamps_to_month_end():
    now = dt.datetime(2024, 2, 5, 12, 0)
    assert initial_due_date("monthly", "2024-02-01", now, day_of_month=31) == dt.datetime(2024, 2, 29, 9, 0)


def test_unknown_frequency_rejected():
    with pytest.raises(ValueError):
        initial_due_date("hourly", "2024-05-01", NOW)
    with pytest.raises(ValueError):
        plain_step("hourly", NOW)


def test_plain_step():
    due = dt.datetime(2024, 1, 31, 9, 0)
    assert plain_step("daily", due) == dt.datetime(2024, 2, 1, 9, 0)
    assert plain_step("weekly", due) == dt.datetime(2024, 2, 7, 9, 0)
    assert plain_step("monthly", due) == dt.datetime(2024, 2, 29, 9, 0)
    assert plain_step("custom", due) == dt.datetime(2024, 2, 7, 9, 0)


def test_parse_day_of_week():
    assert parse_day_of_week("Sunday") == 6
    assert parse_day_of_week(" monday ") == 0
    assert parse_day_of_week("funday") is None
    assert parse_day_of_week(None) is None
