from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

STATUSES = (
    "available",
    "assigned",
    "pending_acceptance",
    "auto_accepted",
    "in_progress",
    "pending_approval",
    "completed",
    "cancelled",
)

REWARD_TYPES = ("money", "screen_time")
PRIORITIES = ("low", "medium", "high", "urgent")
DIFFICULTIES = ("easy", "medium", "hard")

# statuses from which the assignee may accept or decline
AWAITING_RESPONSE = ("pending_acceptance", "assigned")

DEFAULT_REJECT_NOTES = "Needs improvement"


def round_money(value: float) -> float:
    """Round currency to 2 decimal places (half up)."""
    if not value:
        return 0.0
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def round_minutes(value: float) -> int:
    """Screen time is whole minutes (half up)."""
    if not value:
        return 0
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def normalize_reward(reward_type: str, amount: float) -> float:
    if reward_type not in REWARD_TYPES:
        raise ValueError(f"unknown reward_type: {reward_type}")
    if amount is None or float(amount) < 0:
        raise ValueError("reward_amount must be a non-negative number")
    return round_money(amount) if reward_type == "money" else float(round_minutes(amount))


def credit_delta(reward_type: str, reward: float) -> tuple[float, int]:
    """(earnings delta, screen-time delta) for paying a reward."""
    if reward_type == "money":
        return round_money(reward), 0
    return 0.0, round_minutes(reward)


def initial_status(assignee: int | None) -> str:
    return "pending_acceptance" if assignee else "available"


def generated_status(assignee: int | None) -> str:
    return "assigned" if assignee else "available"


def can_respond(chore: dict, user_id: int) -> bool:
    return chore["status"] in AWAITING_RESPONSE and chore["assigned_to"] == user_id


def can_submit(chore: dict, user_id: int) -> bool:
    return chore["status"] == "in_progress" and chore["assigned_to"] == user_id


def can_review(chore: dict) -> bool:
    return chore["status"] == "pending_approval"


# a pending submission must be reviewed before the chore can change hands
NOT_ASSIGNABLE = ("completed", "cancelled", "pending_approval")


def can_assign(chore: dict) -> bool:
    return chore["status"] not in NOT_ASSIGNABLE


def can_delete(chore: dict) -> bool:
    return chore["status"] != "completed"


def check_status_patch(new_status: str, assigned_to: int | None) -> None:
    """Manual status edits must keep 'no assignee' and 'available' in lockstep."""
    if new_status not in STATUSES:
        raise ValueError(f"invalid status: {new_status}")
    if new_status != "available" and assigned_to is None:
        raise ValueError("cannot set a non-available status on an unassigned chore")
