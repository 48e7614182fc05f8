# operation / csv 文件记录 的数据库仓储（record store）

from __future__ import annotations

from typing import Any, List, Mapping, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.db.model.image_update import (
    CSVFileRecord,
    ImageUpdateOperation,
    OperationStatus,
)
from app.utils.clock import now_utc


# 允许被局部更新的字段白名单；主键、创建时间不允许改
_OPERATION_UPDATABLE = {
    "shop_domain", "user_id", "user_name",
    "collection_id", "collection_name",
    "before_snapshot_key", "after_snapshot_key",
    "status", "products_count", "images_updated", "error_message",
}

_FILE_UPDATABLE = {
    "file_name", "storage_key", "storage_bucket", "file_size",
    "record_count", "uploaded_by", "checksum", "status",
}


def _check_fields(fields: Mapping[str, Any], allowed: set, table: str) -> None:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unsupported fields for {table}: {sorted(unknown)}")



# ---------------- operation ----------------

def get_operation(db: Session, operation_id: str) -> Optional[ImageUpdateOperation]:
    return db.get(ImageUpdateOperation, operation_id)


'''
模板生成时一次性写入 operation + 模板文件记录（同一个事务）
  - 先 flush operation，保证文件记录的外键有父行
'''
def create_operation_with_file(
    db: Session,
    operation: ImageUpdateOperation,
    file_record: CSVFileRecord,
) -> ImageUpdateOperation:
    db.add(operation)
    db.flush()
    db.add(file_record)
    db.commit()
    db.refresh(operation)
    return operation


'''
局部更新（merge，不是 replace）：
  - 只改 fields 里出现的键；未出现的字段（时间戳、计数）保持原值
  - 显式传 None 表示清空该列
'''
def update_operation(
    db: Session,
    operation_id: str,
    fields: Mapping[str, Any],
) -> Optional[ImageUpdateOperation]:
    _check_fields(fields, _OPERATION_UPDATABLE, "image_update_operations")

    op = db.get(ImageUpdateOperation, operation_id)
    if op is None:
        return None
    if not fields:
        return op

    for key, value in fields.items():
        setattr(op, key, value)
    op.updated_at = now_utc()
    db.add(op)
    db.commit()
    db.refresh(op)
    return op


'''
条件更新 pending → processing：
  - WHERE status = 'pending'，只有一个调用方能抢到
  - 返回 True 表示本次调用拿到了执行权
'''
def claim_operation_for_processing(db: Session, operation_id: str) -> bool:
    stmt = (
        update(ImageUpdateOperation)
        .where(
            ImageUpdateOperation.operation_id == operation_id,
            ImageUpdateOperation.status == OperationStatus.PENDING,
        )
        .values(status=OperationStatus.PROCESSING, updated_at=now_utc())
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    db.commit()
    claimed = (result.rowcount or 0) == 1
    if claimed:
        op = db.get(ImageUpdateOperation, operation_id)
        if op is not None:
            db.refresh(op)
    return claimed


# 历史列表：按店铺或用户过滤，按创建时间倒序
def list_operations(
    db: Session,
    *,
    shop_domain: Optional[str] = None,
    user_id: Optional[str] = None,
    limit: int = 50,
) -> List[ImageUpdateOperation]:
    stmt = select(ImageUpdateOperation)
    if shop_domain:
        stmt = stmt.where(ImageUpdateOperation.shop_domain == shop_domain)
    elif user_id:
        stmt = stmt.where(ImageUpdateOperation.user_id == user_id)

    stmt = stmt.order_by(ImageUpdateOperation.created_at.desc()).limit(max(1, int(limit)))
    return list(db.scalars(stmt))



# ---------------- csv file record ----------------

def save_file_record(db: Session, record: CSVFileRecord) -> CSVFileRecord:
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def get_file_record(db: Session, file_id: str) -> Optional[CSVFileRecord]:
    return db.get(CSVFileRecord, file_id)


# 二级索引查询：按 operation_id，可选再按 file_type
def list_files_for_operation(
    db: Session,
    operation_id: str,
    file_type: Optional[str] = None,
) -> List[CSVFileRecord]:
    stmt = select(CSVFileRecord).where(CSVFileRecord.operation_id == operation_id)
    if file_type:
        stmt = stmt.where(CSVFileRecord.file_type == file_type)
    stmt = stmt.order_by(CSVFileRecord.uploaded_at.asc())
    return list(db.scalars(stmt))


# 同类文件里 uploaded_at 最大的一份；并列时取哪份不保证
def get_latest_file(
    db: Session,
    operation_id: str,
    file_type: str,
) -> Optional[CSVFileRecord]:
    stmt = (
        select(CSVFileRecord)
        .where(CSVFileRecord.operation_id == operation_id, CSVFileRecord.file_type == file_type)
        .order_by(CSVFileRecord.uploaded_at.desc())
        .limit(1)
    )
    return db.scalars(stmt).first()


def update_file_record(
    db: Session,
    file_id: str,
    fields: Mapping[str, Any],
) -> Optional[CSVFileRecord]:
    _check_fields(fields, _FILE_UPDATABLE, "image_update_csv_files")

    rec = db.get(CSVFileRecord, file_id)
    if rec is None:
        return None
    for key, value in fields.items():
        setattr(rec, key, value)
    db.add(rec)
    db.commit()
    db.refresh(rec)
    return rec
