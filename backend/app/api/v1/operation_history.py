# 换图历史：按店铺或用户查最近的 operation

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.services.image_update import operation_queries


router = APIRouter(prefix="/operations", tags=["operations"])


@router.get("/history")
def get_operation_history(
    shop_domain: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=500),
    db: Session = Depends(get_db),
):
    ops = operation_queries.list_operation_history(
        db,
        shop_domain=shop_domain,
        user_id=user_id,
        limit=limit or settings.IMAGE_UPDATE_HISTORY_LIMIT,
    )
    return {
        "operations": [operation_queries.serialize_operation(op) for op in ops],
        "count": len(ops),
    }
