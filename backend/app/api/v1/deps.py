# v1 路由共用的依赖和异常映射（测试里用 dependency_overrides 替换协作方）

from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.infrastructure.storage import DatabaseBlobStore
from app.integrations.shopify.errors import ShopifyError, ShopifyNotFoundError
from app.services.image_update.collaborators import build_blob_store, build_catalog
from app.services.image_update.errors import (
    ImageUpdateValidationError,
    OperationNotFoundError,
    OperationStateError,
)


logger = logging.getLogger(__name__)


def get_catalog():
    return build_catalog()


def get_blob_store(db: Session = Depends(get_db)) -> DatabaseBlobStore:
    return build_blob_store(db)



'''
已知异常 → HTTP 状态码；未知异常记 exception 日志后 500
'''
def to_http_exception(exc: Exception, action: str) -> HTTPException:
    if isinstance(exc, HTTPException):
        return exc
    if isinstance(exc, (OperationNotFoundError, ShopifyNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ImageUpdateValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, OperationStateError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, ShopifyError):
        logger.warning("api.%s shopify_error=%s", action, exc)
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    logger.exception("api.%s failed", action)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
