from __future__ import annotations

# family_chores/services/utils.py
import datetime as dt
import json

TS_FMT = "%Y-%m-%d %H:%M:%S"


def now_local() -> dt.datetime:
    return dt.datetime.now().replace(microsecond=0)


def fmt_ts(d: dt.datetime | None) -> str | None:
    return None if d is None else d.strftime(TS_FMT)


def parse_ts(s: str | None) -> dt.datetime | None:
    if not s:
        return None
    s = str(s).replace("T", " ")
    try:
        return dt.datetime.strptime(s[:19], TS_FMT)
    except ValueError:
        return dt.datetime.combine(dt.date.fromisoformat(s[:10]), dt.time())


def loads_json(s, default=None):
    if s is None or s == "":
        return default
    if isinstance(s, (dict, list)):
        return s
    try: return json.loads(s)
    except ValueError: return default


def dumps_json(obj) -> str | None:
    return None if obj is None else json.dumps(obj, ensure_ascii=False, default=str)
