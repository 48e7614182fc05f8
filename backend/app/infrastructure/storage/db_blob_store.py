# app/infrastructure/storage/db_blob_store.py
from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.model.image_update import BlobObject


logger = logging.getLogger(__name__)


class BlobNotFoundError(KeyError):
    """No blob stored under the requested key."""


@dataclass(frozen=True)
class PutResult:
    key: str
    size: int
    checksum: str


@dataclass(frozen=True)
class StoredObject:
    key: str
    content: str
    content_type: str
    metadata: Dict[str, Any] = field(default_factory=dict)


def compute_checksum(content: Union[str, bytes]) -> str:
    data = content.encode("utf-8") if isinstance(content, str) else content
    return hashlib.sha256(data).hexdigest()



"""
按 key 存取文件内容的 blob 存储（文件字节放在 image_update_blobs 表）
    - put: 同 key 覆盖写
    - get: 不存在抛 BlobNotFoundError
    - list: 前缀匹配，按 key 排序
    bucket 只是一个命名空间标签，同一张表可以放多个 bucket
"""
class DatabaseBlobStore:

    def __init__(self, db: Session, *, bucket: str) -> None:
        self.db = db
        self.bucket = bucket


    def put(
        self,
        key: str,
        content: Union[str, bytes],
        content_type: str = "text/csv",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> PutResult:
        data = content.encode("utf-8") if isinstance(content, str) else bytes(content)
        checksum = compute_checksum(data)
        meta = {str(k): str(v) for k, v in (metadata or {}).items()}

        obj = self.db.get(BlobObject, key)
        if obj is None:
            obj = BlobObject(key=key, bucket=self.bucket)
            self.db.add(obj)

        obj.bucket = self.bucket
        obj.content = data
        obj.content_type = content_type
        obj.size = len(data)
        obj.checksum = checksum
        obj.meta = meta
        self.db.commit()

        logger.info("blob.put bucket=%s key=%s size=%s", self.bucket, key, len(data))
        return PutResult(key=key, size=len(data), checksum=checksum)


    def get(self, key: str) -> StoredObject:
        obj = self.db.get(BlobObject, key)
        if obj is None or obj.bucket != self.bucket:
            raise BlobNotFoundError(f"No blob stored at {key}")
        content = bytes(obj.content or b"").decode("utf-8")
        logger.info("blob.get bucket=%s key=%s size=%s", self.bucket, key, obj.size)
        return StoredObject(
            key=key,
            content=content,
            content_type=obj.content_type,
            metadata=dict(obj.meta or {}),
        )


    def delete(self, key: str) -> None:
        obj = self.db.get(BlobObject, key)
        if obj is None:
            return
        self.db.delete(obj)
        self.db.commit()
        logger.info("blob.delete bucket=%s key=%s", self.bucket, key)


    def list(self, prefix: str) -> List[str]:
        stmt = (
            select(BlobObject.key)
            .where(BlobObject.bucket == self.bucket, BlobObject.key.startswith(prefix, autoescape=True))
            .order_by(BlobObject.key.asc())
        )
        return list(self.db.scalars(stmt))
