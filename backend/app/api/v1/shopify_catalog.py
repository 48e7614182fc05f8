# 只读浏览：前端先列集合、再列集合下商品，勾选后的 product_ids 交给 /image-updates/operation

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.api.v1.deps import get_catalog, to_http_exception
from app.integrations.shopify.payload_utils import CatalogPage
from app.utils.serialization import to_jsonable


router = APIRouter(prefix="/shopify", tags=["shopify-catalog"])


def _page_info(page: CatalogPage) -> dict:
    return {"has_next_page": page.has_next_page, "end_cursor": page.end_cursor}



'''
集合
  - 传 id：返回单个集合
  - 不传：全店集合一页（limit / after 翻页）
'''
@router.get("/collections")
def list_collections(
    id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=250),
    after: Optional[str] = Query(None),
    catalog=Depends(get_catalog),
):
    try:
        if id:
            return {"collection": to_jsonable(catalog.get_collection(id))}
        page = catalog.get_collections(limit, after)
    except Exception as exc:
        raise to_http_exception(exc, "shopify.collections") from exc

    return {"collections": to_jsonable(page.items), "page_info": _page_info(page)}



'''
商品
  - 传 id：单个商品（含图片、变体的 image_id）
  - 传 collection_id：该集合下前 limit 个商品（服务端翻页拿够为止）
  - 都不传：全店商品一页
'''
@router.get("/products")
def list_products(
    id: Optional[str] = Query(None),
    collection_id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=250),
    after: Optional[str] = Query(None),
    catalog=Depends(get_catalog),
):
    try:
        if id:
            return {"product": to_jsonable(catalog.get_product(id))}
        if collection_id:
            products = catalog.get_products_from_collection(collection_id, limit)
            return {"products": to_jsonable(products), "page_info": None}
        page = catalog.get_products(limit, after)
    except Exception as exc:
        raise to_http_exception(exc, "shopify.products") from exc

    return {"products": to_jsonable(page.items), "page_info": _page_info(page)}
