from __future__ import annotations

# family_chores/services/stats_svc.py
import pandas as pd

from ..db import get_conn
from ..domain.lifecycle import STATUSES, round_money
from ..errors import Forbidden
from ..repository import achievement_repo, chore_repo, completed_repo, user_repo


def family_stats(actor: dict) -> dict:
    """
    Family dashboard:
    - member counts by role
    - chore counts per status (every status present, zero-filled)
    - rewards paid, split by money / screen time
    - per-member completed count and earnings from the completed_tasks ledger
    """
    if actor["role"] != "parent":
        raise Forbidden("Only parents can view family stats")
    fid = actor["family_id"]
    with get_conn() as conn:
        members = pd.DataFrame(user_repo.list_family(conn, fid))
        by_status = {r["status"]: r["cnt"] for r in chore_repo.count_by_status(conn, fid)}
        ledger = pd.DataFrame(completed_repo.list_for_family(conn, fid))

    if ledger.empty:
        ledger = pd.DataFrame({
            "user_id": pd.Series(dtype="int64"),
            "reward_type": pd.Series(dtype="object"),
            "reward_earned": pd.Series(dtype="float64"),
            "completed_at": pd.Series(dtype="object"),
        })
    ledger["money"] = ledger["reward_earned"].where(ledger["reward_type"] == "money", 0.0).astype(float)
    ledger["minutes"] = ledger["reward_earned"].where(ledger["reward_type"] == "screen_time", 0.0).astype(float)

    per_user = ledger.groupby("user_id", as_index=False).agg(
        chores_completed=("reward_earned", "count"),
        money_earned=("money", "sum"),
        screen_time_earned=("minutes", "sum"),
    )

    performance = []
    if not members.empty:
        perf = members[["id", "name", "role", "earnings", "screen_time_earned"]].rename(
            columns={"id": "user_id", "screen_time_earned": "screen_time_balance", "earnings": "earnings_balance"}
        )
        perf = perf.merge(per_user, on="user_id", how="left").fillna(
            {"chores_completed": 0, "money_earned": 0.0, "screen_time_earned": 0.0}
        )
        perf = perf.sort_values(["chores_completed", "name"], ascending=[False, True])
        for _, r in perf.iterrows():
            performance.append({
                "user_id": int(r["user_id"]),
                "name": r["name"],
                "role": r["role"],
                "chores_completed": int(r["chores_completed"]),
                "money_earned": round_money(float(r["money_earned"])),
                "screen_time_earned": int(r["screen_time_earned"]),
                "earnings_balance": round_money(float(r["earnings_balance"])),
                "screen_time_balance": int(r["screen_time_balance"]),
            })

    role_counts = members["role"].value_counts().to_dict() if not members.empty else {}
    return {
        "members": {
            "total": int(len(members)),
            "parents": int(role_counts.get("parent", 0)),
            "children": int(role_counts.get("child", 0)),
        },
        "chores": {
            "total": int(sum(by_status.values())),
            "by_status": {s: int(by_status.get(s, 0)) for s in STATUSES},
        },
        "rewards": {
            "money_paid": round_money(float(ledger["money"].sum())),
            "screen_time_paid": int(ledger["minutes"].sum()),
            "tasks_completed": int(len(ledger)),
        },
        "performance": performance,
    }


def user_profile(user: dict) -> dict:
    with get_conn() as conn:
        stats = user_repo.get_stats(conn, user["id"])
        recent = completed_repo.list_for_user(conn, user["id"], limit=5)
        achievements = achievement_repo.earned_by_user(conn, user["id"])
    return {"user": user, "stats": stats, "recentCompletions": recent, "achievements": achievements}
