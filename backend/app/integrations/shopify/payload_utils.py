"""
Shopify 返回体 → 强类型记录。
上层（图片更新流水线）只接触这里的 dataclass，不直接解析原始 JSON。
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from app.integrations.shopify.errors import ShopifyPayloadError


@dataclass(frozen=True)
class ShopifyImage:
    id: str
    src: str = ""
    alt: str = ""
    position: int = 0


@dataclass(frozen=True)
class ShopifyVariant:
    id: str
    product_id: str = ""
    title: str = ""
    sku: str = ""
    image_id: Optional[str] = None


@dataclass(frozen=True)
class ShopifyProduct:
    id: str
    title: str = ""
    handle: str = ""
    status: str = ""
    images: List[ShopifyImage] = field(default_factory=list)
    variants: List[ShopifyVariant] = field(default_factory=list)


@dataclass(frozen=True)
class ShopifyCollection:
    id: str
    title: str
    handle: str = ""
    updated_at: Optional[str] = None
    description: str = ""
    products_count: int = 0


# 一页列表结果 + 翻页游标（给前端浏览集合/商品用）
@dataclass(frozen=True)
class CatalogPage:
    items: List[Any] = field(default_factory=list)
    has_next_page: bool = False
    end_cursor: Optional[str] = None



# ---------------- GID <-> 数字 ID ----------------

def numeric_id(value: str) -> str:
    """
    gid://shopify/ProductImage/123 → "123"；纯数字原样返回。
    REST 路径只接受数字 id。
    """
    tail = str(value or "").strip().rstrip("/").split("/")[-1]
    if not tail or not tail.isdigit():
        raise ShopifyPayloadError(f"Invalid Shopify id: {value!r}")
    return tail


def to_gid(resource: str, value: Any) -> str:
    text = str(value)
    if text.startswith("gid://"):
        return text
    return f"gid://shopify/{resource}/{text}"



# ---------------- GraphQL 节点 ----------------

def _edges(conn: Any) -> List[Dict[str, Any]]:
    if not isinstance(conn, dict):
        return []
    return [e.get("node") or {} for e in (conn.get("edges") or []) if isinstance(e, dict)]


def normalize_collection(node: Any) -> ShopifyCollection:
    if not isinstance(node, dict) or not node.get("id"):
        raise ShopifyPayloadError(f"Unexpected collection payload: {node!r}")
    return ShopifyCollection(
        id=node["id"],
        title=str(node.get("title") or ""),
        handle=str(node.get("handle") or ""),
        updated_at=node.get("updatedAt"),
        description=str(node.get("description") or ""),
        products_count=int((node.get("productsCount") or {}).get("count") or 0),
    )


def normalize_product(node: Any) -> ShopifyProduct:
    if not isinstance(node, dict) or not node.get("id"):
        raise ShopifyPayloadError(f"Unexpected product payload: {node!r}")

    product_id = node["id"]
    # GraphQL 不返回图片 position，按返回顺序补 1..n
    images = [
        ShopifyImage(
            id=img["id"],
            src=str(img.get("url") or img.get("src") or ""),
            alt=str(img.get("altText") or ""),
            position=idx,
        )
        for idx, img in enumerate(_edges(node.get("images")), start=1)
        if img.get("id")
    ]
    variants = [
        ShopifyVariant(
            id=v["id"],
            product_id=product_id,
            title=str(v.get("title") or ""),
            sku=str(v.get("sku") or ""),
            image_id=(v.get("image") or {}).get("id"),
        )
        for v in _edges(node.get("variants"))
        if v.get("id")
    ]
    return ShopifyProduct(
        id=product_id,
        title=str(node.get("title") or ""),
        handle=str(node.get("handle") or ""),
        status=str(node.get("status") or "").lower(),
        images=images,
        variants=variants,
    )



# ---------------- REST 返回 ----------------

def normalize_rest_image(payload: Any) -> ShopifyImage:
    image = (payload or {}).get("image") if isinstance(payload, dict) else None
    if not isinstance(image, dict) or image.get("id") is None:
        raise ShopifyPayloadError(f"Unexpected image payload: {payload!r}")
    return ShopifyImage(
        id=to_gid("ProductImage", image["id"]),
        src=str(image.get("src") or ""),
        alt=str(image.get("alt") or ""),
        position=int(image.get("position") or 0),
    )


def normalize_rest_variant(payload: Any) -> ShopifyVariant:
    variant = (payload or {}).get("variant") if isinstance(payload, dict) else None
    if not isinstance(variant, dict) or variant.get("id") is None:
        raise ShopifyPayloadError(f"Unexpected variant payload: {payload!r}")
    image_id = variant.get("image_id")
    return ShopifyVariant(
        id=to_gid("ProductVariant", variant["id"]),
        product_id=to_gid("Product", variant["product_id"]) if variant.get("product_id") is not None else "",
        title=str(variant.get("title") or ""),
        sku=str(variant.get("sku") or ""),
        image_id=to_gid("ProductImage", image_id) if image_id is not None else None,
    )
