"""
协作方的构造入口（路由 / celery 任务共用）
只有这里读 settings；流水线函数本身一律显式传参。
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.infrastructure.storage import DatabaseBlobStore
from app.integrations.shopify.shopify_client import ShopifyClient
from app.services.image_update.template_builder import OperationRequester


def build_catalog() -> ShopifyClient:
    return ShopifyClient()


def build_blob_store(db: Session) -> DatabaseBlobStore:
    return DatabaseBlobStore(db, bucket=settings.BLOB_BUCKET_NAME)


def build_requester(user_id: Optional[str] = None, user_name: Optional[str] = None) -> OperationRequester:
    return OperationRequester(
        shop_domain=settings.shop_domain,
        user_id=user_id or settings.IMAGE_UPDATE_DEFAULT_USER_ID,
        user_name=user_name or settings.IMAGE_UPDATE_DEFAULT_USER_NAME,
    )
