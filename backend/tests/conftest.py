"""共用 fixture：内存 SQLite 会话、blob 存储、假的 Shopify 目录。"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db import create_all, drop_all
from app.infrastructure.storage import DatabaseBlobStore
from app.integrations.shopify.errors import ShopifyNotFoundError
from app.integrations.shopify.payload_utils import (
    CatalogPage,
    ShopifyCollection,
    ShopifyImage,
    ShopifyProduct,
    ShopifyVariant,
)


TEST_BUCKET = "test-bucket"


@pytest.fixture
def engine():
    # StaticPool：同一个内存库在线程池（run_in_threadpool）里也可见
    eng = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_all(eng)
    yield eng
    drop_all(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def blob_store(db) -> DatabaseBlobStore:
    return DatabaseBlobStore(db, bucket=TEST_BUCKET)



class FakeCatalog:
    """
    内存版 Shopify 目录，记录每次调用，便于断言调用顺序。
    fail_uploads: {(product_id, url): 异常}，命中时 upload_image 抛出
    fail_variants: {variant_id: 异常}；fail_deletes: {image_id: 异常}
    """

    def __init__(
        self,
        collection: ShopifyCollection,
        products: Iterable[ShopifyProduct],
        *,
        fail_uploads: Optional[Dict[tuple, Exception]] = None,
        fail_deletes: Optional[Dict[str, Exception]] = None,
        fail_variants: Optional[Dict[str, Exception]] = None,
    ) -> None:
        self.collection = collection
        self.products: Dict[str, ShopifyProduct] = {p.id: p for p in products}
        self.fail_uploads = dict(fail_uploads or {})
        self.fail_deletes = dict(fail_deletes or {})
        self.fail_variants = dict(fail_variants or {})
        self.calls: List[tuple] = []
        self._next_image = 9000

    def get_collection(self, collection_id: str) -> ShopifyCollection:
        self.calls.append(("get_collection", collection_id))
        if collection_id != self.collection.id:
            raise ShopifyNotFoundError(f"Collection not found: {collection_id}")
        return self.collection

    def get_collections(self, limit: int = 50, after: Optional[str] = None) -> CatalogPage:
        self.calls.append(("get_collections", limit, after))
        return CatalogPage(items=[self.collection], has_next_page=False, end_cursor=None)

    def get_products(self, limit: int = 50, after: Optional[str] = None) -> CatalogPage:
        self.calls.append(("get_products", limit, after))
        items = list(self.products.values())
        return CatalogPage(items=items[:limit], has_next_page=len(items) > limit, end_cursor="CUR" if len(items) > limit else None)

    def get_products_from_collection(self, collection_id: str, limit: int = 250) -> List[ShopifyProduct]:
        self.calls.append(("get_products_from_collection", collection_id, limit))
        return list(self.products.values())[:limit]

    def get_product(self, product_id: str) -> ShopifyProduct:
        self.calls.append(("get_product", product_id))
        if product_id not in self.products:
            raise ShopifyNotFoundError(f"Product not found: {product_id}")
        return self.products[product_id]

    def upload_image(self, product_id: str, src: str, position: Optional[int] = None) -> ShopifyImage:
        self.calls.append(("upload_image", product_id, src, position))
        err = self.fail_uploads.get((product_id, src))
        if err is not None:
            raise err
        self._next_image += 1
        return ShopifyImage(id=f"gid://shopify/ProductImage/{self._next_image}", src=src, position=position or 0)

    def update_variant_image(self, variant_id: str, image_id: str) -> ShopifyVariant:
        self.calls.append(("update_variant_image", variant_id, image_id))
        err = self.fail_variants.get(variant_id)
        if err is not None:
            raise err
        return ShopifyVariant(id=variant_id, image_id=image_id)

    def delete_image(self, image_id: str, product_id: Optional[str] = None) -> None:
        self.calls.append(("delete_image", image_id, product_id))
        err = self.fail_deletes.get(image_id)
        if err is not None:
            raise err

    def calls_named(self, name: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == name]


def make_product(
    product_id: str,
    handle: str,
    image_ids: Iterable[str] = (),
    variants: Iterable[tuple] = (),
) -> ShopifyProduct:
    """variants: [(variant_id, image_id), ...]"""
    return ShopifyProduct(
        id=product_id,
        title=handle.replace("-", " ").title(),
        handle=handle,
        status="active",
        images=[ShopifyImage(id=i, src=f"https://cdn.example.com/{i.rsplit('/', 1)[-1]}.jpg", position=n)
                for n, i in enumerate(image_ids, start=1)],
        variants=[ShopifyVariant(id=v, product_id=product_id, image_id=img) for v, img in variants],
    )


@pytest.fixture
def catalog() -> FakeCatalog:
    collection = ShopifyCollection(id="gid://shopify/Collection/77", title="Summer", handle="summer")
    products = [
        make_product(
            "gid://shopify/Product/1", "red-shirt",
            image_ids=["gid://shopify/ProductImage/11", "gid://shopify/ProductImage/12"],
            variants=[
                ("gid://shopify/ProductVariant/101", "gid://shopify/ProductImage/11"),
                ("gid://shopify/ProductVariant/102", "gid://shopify/ProductImage/12"),
            ],
        ),
        make_product(
            "gid://shopify/Product/2", "blue-shirt",
            image_ids=["gid://shopify/ProductImage/21"],
            variants=[("gid://shopify/ProductVariant/201", "gid://shopify/ProductImage/21")],
        ),
        make_product("gid://shopify/Product/3", "no-image-hat"),
    ]
    return FakeCatalog(collection, products)


@pytest.fixture
def failing_catalog():
    """按需构造带失败注入的 FakeCatalog。"""
    def _build(base: FakeCatalog, **kwargs) -> FakeCatalog:
        return FakeCatalog(base.collection, base.products.values(), **kwargs)
    return _build

