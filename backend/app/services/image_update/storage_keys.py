# blob key / 下载文件名 的命名规则，模板、上传、快照共用

from __future__ import annotations

from typing import Optional, Tuple

from app.utils.clock import key_timestamp


def operation_prefix(operation_id: str) -> str:
    return f"operations/{operation_id}/"


def csv_key(operation_id: str, file_type: str, file_id: str, ts: Optional[str] = None) -> str:
    # operations/<id>/upload-2025-01-01T08-30-00-123Z-<file_id>.csv
    # 同一毫秒内的两次上传靠 file_id 区分，不会互相覆盖
    return f"{operation_prefix(operation_id)}{file_type}-{ts or key_timestamp()}-{file_id}.csv"


def csv_file_name(operation_id: str, file_type: str) -> str:
    return f"image-updates-{operation_id}-{file_type}.csv"


def snapshot_keys(operation_id: str) -> Tuple[str, str]:
    return (
        f"{operation_prefix(operation_id)}before-snapshot.json",
        f"{operation_prefix(operation_id)}after-snapshot.json",
    )
