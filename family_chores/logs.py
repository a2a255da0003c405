import json, logging, time, uuid
from typing import Optional
from .db import get_conn, query

logger = logging.getLogger(__name__)


class ActivityLogContext:
    """Audit record for one mutating operation, written to activity_log.

    Writing is best-effort: a failure here is logged and never reaches the caller.
    """

    def __init__(self, action: str, user: Optional[dict] = None, request=None):
        self.action = action
        self.user_id = user["id"] if user else None
        self.family_id = user["family_id"] if user else None
        self.request_id = str(uuid.uuid4())
        self.start = time.perf_counter()
        self.details = None
        self.entity_type = None
        self.entity_id = None
        self.ip_address = None
        self.user_agent = None
        if request is not None:
            self.ip_address = request.client.host if request.client else None
            self.user_agent = request.headers.get("user-agent")

    def set_user(self, user: dict):
        self.user_id = user["id"]
        self.family_id = user["family_id"]

    def set_entity(self, etype: str, eid):
        self.entity_type = etype
        self.entity_id = None if eid is None else str(eid)

    def set_details(self, obj): self.details = obj

    def write(self, result: str = "OK", err: Optional[str] = None):
        elapsed_ms = int((time.perf_counter() - self.start) * 1000)
        rec = {
            "family_id": self.family_id,
            "user_id": self.user_id,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "request_id": self.request_id,
            "details": json.dumps(self.details, ensure_ascii=False, default=str) if self.details is not None else None,
            "result": result,
            "err_msg": err,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "latency_ms": elapsed_ms,
        }
        try:
            with get_conn() as conn:
                conn.execute(
                    """INSERT INTO activity_log
                    (family_id,user_id,action,entity_type,entity_id,request_id,details,result,err_msg,ip_address,user_agent,latency_ms)
                    VALUES(:family_id,:user_id,:action,:entity_type,:entity_id,:request_id,:details,:result,:err_msg,:ip_address,:user_agent,:latency_ms)""",
                    rec
                )
        except Exception as e:
            logger.warning("activity log write failed for %s: %s", self.action, e)


def search_activity(family_id: int, q: str | None, action: str | None, ts_from: str | None,
                    ts_to: str | None, page: int, size: int):
    where = ["family_id = :family_id"]
    params = {"family_id": family_id}
    if q:
        where.append("(details LIKE :q OR entity_type LIKE :q OR err_msg LIKE :q)")
        params["q"] = f"%{q}%"
    if action:
        where.append("action = :action")
        params["action"] = action
    if ts_from:
        where.append("created_at >= :from")
        params["from"] = ts_from
    if ts_to:
        where.append("created_at <= :to")
        params["to"] = ts_to
    wh = " WHERE " + " AND ".join(where)
    sql = f"SELECT * FROM activity_log{wh} ORDER BY created_at DESC, id DESC LIMIT :limit OFFSET :offset"
    count_sql = f"SELECT COUNT(1) AS cnt FROM activity_log{wh}"
    total = query(count_sql, params)[0]["cnt"]
    rows = query(sql, {**params, "limit": size, "offset": (page-1)*size})
    return total, rows
