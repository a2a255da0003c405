from __future__ import annotations

import json
import random
from dataclasses import dataclass
from typing import Sequence, Union

ROTATION_TYPES = ("none", "round_robin", "random")


@dataclass(frozen=True)
class Unassigned:
    kind = "none"


@dataclass(frozen=True)
class Fixed:
    user_id: int
    kind = "none"


@dataclass(frozen=True)
class RoundRobin:
    members: tuple[int, ...]
    kind = "round_robin"


@dataclass(frozen=True)
class Random:
    members: tuple[int, ...]
    kind = "random"


RotationPolicy = Union[Unassigned, Fixed, RoundRobin, Random]


def parse_members(raw) -> tuple[int, ...]:
    """Accept a list (or its JSON text) of distinct positive integer user ids."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise ValueError("rotation_members must be a JSON list of user ids")
    if not isinstance(raw, (list, tuple)) or not raw:
        raise ValueError("rotation_members must be a non-empty list of user ids")
    out: list[int] = []
    for m in raw:
        if isinstance(m, bool) or not isinstance(m, int) or m <= 0:
            raise ValueError(f"invalid rotation member: {m!r}")
        if m in out:
            raise ValueError(f"duplicate rotation member: {m}")
        out.append(m)
    return tuple(out)


def parse_policy(
    auto_assign: bool,
    rotation_type: str | None,
    assigned_to: int | None,
    rotation_members=None,
) -> RotationPolicy:
    """Build a RotationPolicy from request/template fields; ValueError on bad input."""
    if not auto_assign:
        return Unassigned()
    rtype = rotation_type or "none"
    if rtype not in ROTATION_TYPES:
        raise ValueError(f"unknown rotation_type: {rtype}")
    if rtype == "none":
        return Fixed(int(assigned_to)) if assigned_to else Unassigned()
    members = parse_members(rotation_members)
    return RoundRobin(members) if rtype == "round_robin" else Random(members)


def load_policy(template: dict) -> RotationPolicy:
    """Policy of a stored template. Stored members that no longer parse yield Unassigned."""
    try:
        return parse_policy(
            bool(template.get("auto_assign")),
            template.get("rotation_type"),
            template.get("assigned_to"),
            template.get("rotation_members"),
        )
    except ValueError:
        return Unassigned()


def members_of(policy: RotationPolicy) -> tuple[int, ...]:
    if isinstance(policy, (RoundRobin, Random)):
        return policy.members
    if isinstance(policy, Fixed):
        return (policy.user_id,)
    return ()


def pick_initial(policy: RotationPolicy, rng: random.Random | None = None) -> int | None:
    """Single-shot assignee for a new chore: fixed user, first member, or a uniform pick."""
    if isinstance(policy, Fixed):
        return policy.user_id
    if isinstance(policy, RoundRobin):
        return policy.members[0]
    if isinstance(policy, Random):
        return (rng or random).choice(policy.members)
    return None


def next_round_robin(members: Sequence[int], last_assignee: int | None) -> int:
    """
    Member after last_assignee, cyclic. No previous assignee starts at the first member;
    a previous assignee missing from the list counts as index -1, which also yields the first.
    """
    if not members:
        raise ValueError("empty rotation")
    if last_assignee is None:
        return members[0]
    idx = members.index(last_assignee) if last_assignee in members else -1
    return members[(idx + 1) % len(members)]


def pick_for_generation(
    policy: RotationPolicy,
    last_assignee: int | None,
    rng: random.Random | None = None,
) -> int | None:
    if isinstance(policy, Fixed):
        return policy.user_id
    if isinstance(policy, RoundRobin):
        return next_round_robin(policy.members, last_assignee)
    if isinstance(policy, Random):
        return (rng or random).choice(policy.members)
    return None
