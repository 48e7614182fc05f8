
from fastapi import APIRouter

from .routes_health import router as health_router
from .image_updates import router as image_updates_router
from .operation_history import router as operation_history_router
from .shopify_catalog import router as shopify_catalog_router


api_v1 = APIRouter()
api_v1.include_router(health_router)
api_v1.include_router(image_updates_router)
api_v1.include_router(operation_history_router)
api_v1.include_router(shopify_catalog_router)
