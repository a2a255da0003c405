import random

import pytest

from family_chores.domain.rotation import (
    Fixed,
    Random,
    RoundRobin,
    Unassigned,
    load_policy,
    next_round_robin,
    parse_members,
    parse_policy,
    pick_for_generation,
    pick_initial,
)


def test_round_robin_cycles():
    members = [1, 2, 3]
    assert next_round_robin(members, None) == 1
    assert next_round_robin(members, 1) == 2
    assert next_round_robin(members, 2) == 3
    assert next_round_robin(members, 3) == 1


def test_round_robin_missing_previous_starts_at_first():
    assert next_round_robin([1, 2, 3], 99) == 1


def test_round_robin_empty_rotation():
    with pytest.raises(ValueError):
        next_round_robin([], None)


def test_parse_policy_variants():
    assert parse_policy(False, "round_robin", None, [1, 2]) == Unassigned()
    assert parse_policy(True, None, 7, None) == Fixed(7)
    assert parse_policy(True, "none", None, None) == Unassigned()
    assert parse_policy(True, "round_robin", None, "[3, 4]") == RoundRobin((3, 4))
    assert parse_policy(True, "random", None, [5]) == Random((5,))


@pytest.mark.parametrize("raw", ["not json", "[]", [1, 1], [0], ["a"], [True], {"a": 1}])
def test_parse_members_rejects(raw):
    with pytest.raises(ValueError):
        parse_members(raw)


def test_parse_policy_unknown_rotation_type():
    with pytest.raises(ValueError):
        parse_policy(True, "shuffle", None, [1])


def test_load_policy_with_broken_members_is_unassigned():
    tpl = {"auto_assign": 1, "rotation_type": "round_robin", "rotation_members": "oops"}
    assert load_policy(tpl) == Unassigned()


def test_picks():
    rng = random.Random(42)
    assert pick_initial(RoundRobin((4, 5))) == 4
    assert pick_initial(Fixed(9)) == 9
    assert pick_initial(Unassigned()) is None
    assert pick_initial(Random((4, 5)), rng) in (4, 5)
    assert pick_for_generation(RoundRobin((4, 5)), 4) == 5
    assert pick_for_generation(Fixed(9), 4) == 9
    assert pick_for_generation(Unassigned(), 4) is None
    assert pick_for_generation(Random((4, 5)), None, rng) in (4, 5)
