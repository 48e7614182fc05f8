# 只读查询：operation 详情 / 历史列表 / 文件记录，以及返回给前端的字典结构

from __future__ import annotations

from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.db.model.image_update import CSVFileRecord, ImageUpdateOperation
from app.infrastructure.storage import DatabaseBlobStore
from app.repository import image_update_repo as repo
from app.services.image_update.lifecycle import load_operation
from app.services.image_update.storage_keys import operation_prefix
from app.utils.serialization import to_jsonable


def serialize_operation(op: Optional[ImageUpdateOperation]) -> Optional[Dict[str, object]]:
    if op is None:
        return None
    return to_jsonable({
        "operation_id": op.operation_id,
        "timestamp": op.created_at,
        "shop_domain": op.shop_domain,
        "user_id": op.user_id,
        "user_name": op.user_name,
        "collection_id": op.collection_id,
        "collection_name": op.collection_name,
        "before_snapshot_key": op.before_snapshot_key,
        "after_snapshot_key": op.after_snapshot_key,
        "status": op.status,
        "products_count": op.products_count,
        "images_updated": op.images_updated,
        "error_message": op.error_message,
        "updated_at": op.updated_at,
    })


def serialize_file_record(rec: CSVFileRecord) -> Dict[str, object]:
    return to_jsonable({
        "file_id": rec.file_id,
        "operation_id": rec.operation_id,
        "file_name": rec.file_name,
        "file_type": rec.file_type,
        "storage_key": rec.storage_key,
        "storage_bucket": rec.storage_bucket,
        "file_size": rec.file_size,
        "record_count": rec.record_count,
        "uploaded_at": rec.uploaded_at,
        "uploaded_by": rec.uploaded_by,
        "checksum": rec.checksum,
        "status": rec.status,
    })


def get_operation(db: Session, operation_id: str) -> ImageUpdateOperation:
    return load_operation(db, operation_id)


def list_operation_files(
    db: Session,
    operation_id: str,
    file_type: Optional[str] = None,
) -> List[CSVFileRecord]:
    load_operation(db, operation_id)
    return repo.list_files_for_operation(db, operation_id, file_type)


def list_operation_history(
    db: Session,
    *,
    shop_domain: Optional[str] = None,
    user_id: Optional[str] = None,
    limit: int = 50,
) -> List[ImageUpdateOperation]:
    """shop_domain 优先；都不传时返回全部（按时间倒序）。"""
    return repo.list_operations(db, shop_domain=shop_domain, user_id=user_id, limit=limit)


def list_stored_csv_keys(blob_store: DatabaseBlobStore, operation_id: str) -> List[str]:
    # 快照 json 也在同一前缀下，这里只要 csv
    return [k for k in blob_store.list(operation_prefix(operation_id)) if k.endswith(".csv")]
