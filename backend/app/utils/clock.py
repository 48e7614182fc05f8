from __future__ import annotations
from datetime import datetime, timezone


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def key_timestamp(dt: datetime | None = None) -> str:
    # 存储 key 里用的时间戳：2025-01-01T08-30-00-123Z，不含 ':' 和 '.'
    dt = dt or now_utc()
    return dt.strftime("%Y-%m-%dT%H-%M-%S-") + f"{dt.microsecond // 1000:03d}Z"
