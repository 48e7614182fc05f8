"""
执行换图（processOperation）

    1) 校验 operation 存在且为 pending，取最新一份上传 CSV
    2) 解码 + 分组，operation 置为 processing
    3) 按商品顺序逐个处理（串行，互不影响）：
         - 读商品（拿变体的 image_id）
         - 按位置上传新图；组内第一行且有 current_image_id 时，把指向旧图的变体改指向新图
         - 全部上传完再删旧图；删图失败只记日志
         - 任一步失败：记一条错误，继续下一个商品（已生效的修改不回滚）
    4) 有错误 → failed，否则 completed；上传文件记录标记为 processed
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Sequence

from sqlalchemy.orm import Session

from app.db.model.image_update import CSVFileStatus, CSVFileType, OperationStatus
from app.infrastructure.storage import DatabaseBlobStore
from app.repository import image_update_repo as repo
from app.services.image_update import lifecycle
from app.services.image_update.csv_codec import decode_rows
from app.services.image_update.errors import ImageUpdateValidationError, OperationStateError
from app.services.image_update.product_grouper import GroupedRow, group_rows


logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    operation_id: str
    images_updated: int
    errors: List[str] = field(default_factory=list)
    status: str = OperationStatus.COMPLETED


def _apply_product_group(
    catalog: Any,
    product_id: str,
    rows: Sequence[GroupedRow],
    result: ProcessResult,
) -> None:
    """处理一个商品；一行的上传和变体改指都成功后 result.images_updated +1。出错直接抛给调用方。"""
    operation_id = result.operation_id
    product = catalog.get_product(product_id)
    to_delete: List[str] = []

    for grouped in rows:
        row = grouped.row
        image = catalog.upload_image(product_id, row.new_image_url, grouped.position)
        logger.info(
            "image_update.product.image_uploaded operation_id=%s product_id=%s position=%s image_id=%s",
            operation_id, product_id, grouped.position, image.id,
        )

        # 只有组内第一行才把变体从旧图切到新图
        if grouped.position == 1 and row.current_image_id:
            for variant in product.variants:
                if variant.image_id == row.current_image_id:
                    catalog.update_variant_image(variant.id, image.id)
                    logger.info(
                        "image_update.product.variant_repointed product_id=%s variant_id=%s image_id=%s",
                        product_id, variant.id, image.id,
                    )

        if row.current_image_id and row.current_image_id not in to_delete:
            to_delete.append(row.current_image_id)
        result.images_updated += 1

    for image_id in to_delete:
        try:
            catalog.delete_image(image_id, product_id)
        except Exception as e:
            logger.warning(
                "image_update.product.delete_failed product_id=%s image_id=%s err=%s",
                product_id, image_id, e,
            )


def process_operation(
    db: Session,
    catalog: Any,
    blob_store: DatabaseBlobStore,
    operation_id: str,
) -> ProcessResult:
    op = lifecycle.load_operation(db, operation_id)
    if op.status != OperationStatus.PENDING:
        raise OperationStateError(
            f"Operation {operation_id} is {op.status}; only pending operations can be processed"
        )

    upload = repo.get_latest_file(db, operation_id, CSVFileType.UPLOAD)
    if upload is None:
        raise ImageUpdateValidationError("No uploaded CSV found for this operation")

    stored = blob_store.get(upload.storage_key)
    rows = decode_rows(stored.content)
    grouping = group_rows(rows)

    lifecycle.begin_processing(db, operation_id)

    result = ProcessResult(
        operation_id=operation_id,
        images_updated=0,
        errors=list(grouping.errors),
        status=OperationStatus.PROCESSING,
    )

    for product_id, group in grouping.groups.items():
        try:
            _apply_product_group(catalog, product_id, group, result)
        except Exception as e:
            logger.warning("image_update.product.failed operation_id=%s product_id=%s err=%s",
                operation_id, product_id, e)
            result.errors.append(f"Failed to update product {product_id}: {e}")
        lifecycle.record_progress(db, operation_id, result.images_updated)

    final = lifecycle.finish_processing(
        db, operation_id, images_updated=result.images_updated, errors=result.errors
    )
    repo.update_file_record(db, upload.file_id, {"status": CSVFileStatus.PROCESSED})
    result.status = final.status

    logger.info(
        "image_update.process.done operation_id=%s status=%s images_updated=%s errors=%s",
        operation_id, result.status, result.images_updated, len(result.errors),
    )
    return result
