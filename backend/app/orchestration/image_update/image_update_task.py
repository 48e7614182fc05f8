from __future__ import annotations

import logging

from celery import shared_task

from app.core.logging import configure_logging
from app.db.session import SessionLocal
from app.services.image_update.collaborators import build_blob_store, build_catalog
from app.services.image_update.errors import ImageUpdateError
from app.services.image_update.update_executor import process_operation
from app.utils.serialization import to_jsonable


configure_logging()
logger = logging.getLogger(__name__)



'''
 后台执行一次换图（IMAGE_UPDATE_TASKS_INLINE=False 时由 /process 投递）
 - 同一 operation 只会被执行一次：非 pending 状态直接返回错误信息，不重试
 - 单个商品的失败已经记在 operation 上，这里只处理整体性错误
'''
@shared_task(name="app.orchestration.image_update.image_update_task.process_image_update_operation")
def process_image_update_operation(operation_id: str):

    logger.info("========  process_image_update_operation start operation_id=%s  ========", operation_id)

    db = SessionLocal()
    try:
        result = process_operation(db, build_catalog(), build_blob_store(db), operation_id)
    except ImageUpdateError as e:
        logger.warning("image_update.task.rejected operation_id=%s err=%s", operation_id, e)
        return {"operation_id": operation_id, "success": False, "error": str(e)}
    finally:
        db.close()

    logger.info("======== process_image_update_operation end status=%s ========", result.status)
    return {"success": True, **to_jsonable(result)}
