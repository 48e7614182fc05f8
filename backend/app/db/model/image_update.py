from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, JSONType


class OperationStatus(str):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    ALL = (PENDING, PROCESSING, COMPLETED, FAILED)
    TERMINAL = (COMPLETED, FAILED)


class CSVFileType(str):
    TEMPLATE = "template"
    UPLOAD = "upload"
    SNAPSHOT = "snapshot"

    ALL = (TEMPLATE, UPLOAD, SNAPSHOT)


class CSVFileStatus(str):
    PENDING = "pending"
    PROCESSED = "processed"
    ARCHIVED = "archived"

    ALL = (PENDING, PROCESSED, ARCHIVED)


"""
  一次批量换图任务（operation）
  - 由模板生成时创建，只被执行器经 lifecycle 修改，从不删除
"""
class ImageUpdateOperation(Base):
    __tablename__ = "image_update_operations"

    operation_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    shop_domain:  Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    user_id:      Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    user_name:    Mapped[Optional[str]] = mapped_column(String(255))

    collection_id:   Mapped[str] = mapped_column(String(255), nullable=False)
    collection_name: Mapped[Optional[str]] = mapped_column(String(255))

    # 前后快照的存储位置，由外部协作方写入
    before_snapshot_key: Mapped[Optional[str]] = mapped_column(String(512))
    after_snapshot_key:  Mapped[Optional[str]] = mapped_column(String(512))

    status: Mapped[str] = mapped_column(
        SAEnum(*OperationStatus.ALL, name="image_update_operation_status"),
        nullable=False,
        default=OperationStatus.PENDING,
        server_default=OperationStatus.PENDING,
    )
    products_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    images_updated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message:  Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_image_update_operations_shop_created", "shop_domain", "created_at"),
        Index("ix_image_update_operations_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ImageUpdateOperation {self.operation_id} status={self.status}>"


"""
  一份 CSV 文件的元数据（模板 / 上传 / 快照）
  - 内容本身在 blob 表里，通过 storage_key 关联
"""
class CSVFileRecord(Base):
    __tablename__ = "image_update_csv_files"

    file_id:      Mapped[str] = mapped_column(String(64), primary_key=True)
    operation_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("image_update_operations.operation_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_type: Mapped[str] = mapped_column(
        SAEnum(*CSVFileType.ALL, name="image_update_csv_file_type"),
        nullable=False,
    )
    storage_key:    Mapped[str] = mapped_column(String(512), nullable=False)
    storage_bucket: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size:      Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    record_count:   Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    uploaded_at:    Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    uploaded_by:    Mapped[Optional[str]] = mapped_column(String(128))
    checksum:       Mapped[str] = mapped_column(String(128), nullable=False)
    status: Mapped[str] = mapped_column(
        SAEnum(*CSVFileStatus.ALL, name="image_update_csv_file_status"),
        nullable=False,
        default=CSVFileStatus.PENDING,
        server_default=CSVFileStatus.PENDING,
    )

    __table_args__ = (
        Index("ix_image_update_csv_files_operation_type", "operation_id", "file_type"),
    )


"""
  blob 存储：按 key 保存文件字节（CSV / 快照 JSON）
"""
class BlobObject(Base):
    __tablename__ = "image_update_blobs"

    key:          Mapped[str] = mapped_column(String(512), primary_key=True)
    bucket:       Mapped[str] = mapped_column(String(255), nullable=False)
    content:      Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    content_type: Mapped[str] = mapped_column(String(128), nullable=False, default="application/octet-stream")
    size:         Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    checksum:     Mapped[str] = mapped_column(String(128), nullable=False)
    # "metadata" 是 Declarative 保留名，属性名用 meta
    meta:         Mapped[dict] = mapped_column("metadata", JSONType, nullable=False, default=dict)
    created_at:   Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
