"""
换图模板生成（创建 operation）

流程：
    1) 读集合标题 + 集合下商品（最多 product_limit 个）
    2) 只保留选中的、且至少有一张图的商品；每个商品输出 slots_per_product 行：
       第 1 行 current_image_id = 第一张图，其余行为空（新增槽位）
    3) CSV 写入 blob，落一条模板文件记录 + 一条 pending 状态的 operation
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from app.db.model.image_update import (
    CSVFileRecord,
    CSVFileStatus,
    CSVFileType,
    ImageUpdateOperation,
    OperationStatus,
)
from app.infrastructure.storage import DatabaseBlobStore
from app.repository import image_update_repo as repo
from app.services.image_update.csv_codec import ImageUpdateCSVRow, count_rows, encode_rows
from app.services.image_update.errors import ImageUpdateValidationError
from app.services.image_update.lifecycle import load_operation
from app.services.image_update.storage_keys import csv_file_name, csv_key, snapshot_keys
from app.utils.clock import now_utc


logger = logging.getLogger(__name__)


DEFAULT_SLOTS_PER_PRODUCT = 5
DEFAULT_PRODUCT_LIMIT = 250


@dataclass(frozen=True)
class OperationRequester:
    shop_domain: str
    user_id: str
    user_name: Optional[str] = None


def build_template_rows(
    products: Iterable[Any],
    selected_ids: Sequence[str],
    collection_name: str,
    *,
    slots_per_product: int = DEFAULT_SLOTS_PER_PRODUCT,
) -> List[ImageUpdateCSVRow]:
    """按集合返回顺序输出；没有图片的商品跳过。"""
    wanted = set(selected_ids)
    rows: List[ImageUpdateCSVRow] = []

    for product in products:
        if product.id not in wanted:
            continue
        if not product.images:
            logger.info("image_update.template.skip_no_images product_id=%s", product.id)
            continue

        first_image_id = product.images[0].id
        for slot in range(slots_per_product):
            rows.append(ImageUpdateCSVRow(
                product_id=product.id,
                product_handle=product.handle,
                current_image_id=first_image_id if slot == 0 else "",
                collection_name=collection_name,
                new_image_url="",
            ))
    return rows


def create_operation(
    db: Session,
    catalog: Any,
    blob_store: DatabaseBlobStore,
    *,
    collection_id: Optional[str],
    product_ids: Optional[Sequence[str]],
    requester: OperationRequester,
    product_limit: int = DEFAULT_PRODUCT_LIMIT,
    slots_per_product: int = DEFAULT_SLOTS_PER_PRODUCT,
) -> ImageUpdateOperation:
    if not collection_id or not isinstance(product_ids, (list, tuple)):
        raise ImageUpdateValidationError("collection_id and product_ids array are required")

    collection = catalog.get_collection(collection_id)
    products = catalog.get_products_from_collection(collection_id, product_limit)

    rows = build_template_rows(
        products, product_ids, collection.title, slots_per_product=slots_per_product
    )
    content = encode_rows(rows)
    record_count = count_rows(content)

    operation_id = str(uuid.uuid4())
    file_id = str(uuid.uuid4())
    storage_key = csv_key(operation_id, CSVFileType.TEMPLATE, file_id)
    put = blob_store.put(
        storage_key,
        content,
        content_type="text/csv",
        metadata={
            "operation-id": operation_id,
            "file-type": CSVFileType.TEMPLATE,
            "record-count": record_count,
        },
    )

    now = now_utc()
    before_key, after_key = snapshot_keys(operation_id)
    operation = ImageUpdateOperation(
        operation_id=operation_id,
        shop_domain=requester.shop_domain,
        user_id=requester.user_id,
        user_name=requester.user_name,
        collection_id=collection_id,
        collection_name=collection.title,
        before_snapshot_key=before_key,
        after_snapshot_key=after_key,
        status=OperationStatus.PENDING,
        products_count=len(rows),
        images_updated=0,
        error_message=None,
        created_at=now,
        updated_at=now,
    )
    file_record = CSVFileRecord(
        file_id=file_id,
        operation_id=operation_id,
        file_name=csv_file_name(operation_id, CSVFileType.TEMPLATE),
        file_type=CSVFileType.TEMPLATE,
        storage_key=put.key,
        storage_bucket=blob_store.bucket,
        file_size=put.size,
        record_count=record_count,
        uploaded_at=now,
        uploaded_by=requester.user_id,
        checksum=put.checksum,
        status=CSVFileStatus.PENDING,
    )
    operation = repo.create_operation_with_file(db, operation, file_record)

    logger.info(
        "image_update.template.created operation_id=%s collection_id=%s selected=%s rows=%s",
        operation_id, collection_id, len(product_ids), len(rows),
    )
    return operation


@dataclass(frozen=True)
class TemplateFile:
    file_name: str
    content: str


def get_template_csv(db: Session, blob_store: DatabaseBlobStore, operation_id: str) -> TemplateFile:
    load_operation(db, operation_id)
    record = repo.get_latest_file(db, operation_id, CSVFileType.TEMPLATE)
    if record is None:
        raise ImageUpdateValidationError("No CSV template found for this operation")

    stored = blob_store.get(record.storage_key)
    return TemplateFile(file_name=record.file_name, content=stored.content)
