from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.v1.deps import get_blob_store, get_catalog, to_http_exception
from app.core.config import settings
from app.db.model.image_update import OperationStatus
from app.db.session import get_db
from app.infrastructure.storage import BlobNotFoundError, DatabaseBlobStore
from app.services.image_update import operation_queries
from app.services.image_update.collaborators import build_requester
from app.services.image_update.lifecycle import load_operation
from app.services.image_update.template_builder import create_operation, get_template_csv
from app.services.image_update.update_executor import process_operation
from app.services.image_update.upload_ingestor import ingest_upload


logger = logging.getLogger(__name__)


router = APIRouter(prefix="/image-updates/operation", tags=["image-updates"])


class CreateOperationBody(BaseModel):
    collection_id: Optional[str] = None
    product_ids: Optional[List[str]] = None
    user_id: Optional[str] = None
    user_name: Optional[str] = None




"""根据选中的商品生成模板 CSV，创建 pending 状态的 operation"""
@router.post("")
def create_image_update_operation(
    body: CreateOperationBody,
    db: Session = Depends(get_db),
    catalog=Depends(get_catalog),
    blob_store: DatabaseBlobStore = Depends(get_blob_store),
):
    try:
        op = create_operation(
            db,
            catalog,
            blob_store,
            collection_id=body.collection_id,
            product_ids=body.product_ids,
            requester=build_requester(body.user_id, body.user_name),
            product_limit=settings.IMAGE_UPDATE_TEMPLATE_PRODUCT_LIMIT,
            slots_per_product=settings.IMAGE_UPDATE_SLOTS_PER_PRODUCT,
        )
    except Exception as exc:
        raise to_http_exception(exc, "create") from exc

    return {"operation": operation_queries.serialize_operation(op)}



@router.get("/{operation_id}")
def get_image_update_operation(operation_id: str, db: Session = Depends(get_db)):
    try:
        op = operation_queries.get_operation(db, operation_id)
    except Exception as exc:
        raise to_http_exception(exc, "get") from exc
    return {"operation": operation_queries.serialize_operation(op)}



"""下载最新一份模板 CSV"""
@router.get("/{operation_id}/csv")
def download_template_csv(
    operation_id: str,
    db: Session = Depends(get_db),
    blob_store: DatabaseBlobStore = Depends(get_blob_store),
):
    try:
        template = get_template_csv(db, blob_store, operation_id)
    except BlobNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except Exception as exc:
        raise to_http_exception(exc, "download") from exc

    file_bytes = template.content.encode("utf-8")
    headers = {
        "Content-Disposition": f'attachment; filename="{quote(template.file_name)}"',
        "Cache-Control": "no-store",
        "Access-Control-Expose-Headers": "Content-Disposition",
        "Content-Length": str(len(file_bytes)),
    }
    return Response(content=file_bytes, media_type="text/csv; charset=utf-8", headers=headers)



'''
上传回填后的 CSV：请求体原样读取
  - is_base64=true：body 是 base64 编码的 multipart
  - Content-Type 为 multipart/form-data 时按请求头里的 boundary 取 CSV 部分
  - 其余情况 body 就是 CSV 文本
'''
@router.post("/{operation_id}/upload")
async def upload_filled_csv(
    operation_id: str,
    request: Request,
    is_base64: bool = Query(False),
    db: Session = Depends(get_db),
    blob_store: DatabaseBlobStore = Depends(get_blob_store),
):
    body = await request.body()
    try:
        result = await run_in_threadpool(
            ingest_upload,
            db,
            blob_store,
            operation_id,
            body,
            is_base64=is_base64,
            content_type=request.headers.get("content-type"),
            uploaded_by=settings.IMAGE_UPDATE_DEFAULT_USER_ID,
        )
    except Exception as exc:
        raise to_http_exception(exc, "upload") from exc

    return {
        "success": result.success,
        "message": "CSV uploaded successfully",
        "records_processed": result.records_processed,
        "file_id": result.file_id,
    }



'''
执行换图
  - 默认在请求内同步执行，返回执行结果
  - IMAGE_UPDATE_TASKS_INLINE=False 时投递 celery，返回 202
'''
@router.post("/{operation_id}/process")
def process_image_update_operation(
    operation_id: str,
    db: Session = Depends(get_db),
    catalog=Depends(get_catalog),
    blob_store: DatabaseBlobStore = Depends(get_blob_store),
):
    if not settings.IMAGE_UPDATE_TASKS_INLINE:
        return _enqueue_processing(db, operation_id)

    try:
        result = process_operation(db, catalog, blob_store, operation_id)
    except Exception as exc:
        raise to_http_exception(exc, "process") from exc

    return {
        "success": True,
        "message": f"Processed {result.images_updated} image updates",
        "operation_id": result.operation_id,
        "images_updated": result.images_updated,
        "errors": result.errors,
        "status": result.status,
    }


def _send_process_task(operation_id: str) -> str:
    # 先加载 celery_app，任务投递才会走配置好的 broker
    from app.core.celery_app import celery_app  # noqa: F401
    from app.orchestration.image_update.image_update_task import process_image_update_operation as task

    return task.delay(operation_id).id


def _enqueue_processing(db: Session, operation_id: str) -> JSONResponse:
    try:
        op = load_operation(db, operation_id)
    except Exception as exc:
        raise to_http_exception(exc, "process") from exc
    if op.status != OperationStatus.PENDING:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Operation {operation_id} is {op.status}; only pending operations can be processed",
        )

    task_id = _send_process_task(operation_id)
    logger.info("image_update.api.enqueued operation_id=%s task_id=%s", operation_id, task_id)
    return JSONResponse(
        status_code=status.HTTP_202_ACCEPTED,
        content={
            "success": True,
            "message": "Image update queued",
            "operation_id": operation_id,
            "task_id": task_id,
        },
    )



@router.get("/{operation_id}/files")
def list_image_update_files(
    operation_id: str,
    file_type: Optional[str] = Query(None, pattern="^(template|upload|snapshot)$"),
    db: Session = Depends(get_db),
    blob_store: DatabaseBlobStore = Depends(get_blob_store),
):
    try:
        files = operation_queries.list_operation_files(db, operation_id, file_type)
    except Exception as exc:
        raise to_http_exception(exc, "files") from exc

    return {
        "files": [operation_queries.serialize_file_record(f) for f in files],
        "stored_keys": operation_queries.list_stored_csv_keys(blob_store, operation_id),
    }
