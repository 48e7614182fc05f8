"""ShopifyClient 的离线测试：用假 session 回放响应，不打真实网络。"""

from __future__ import annotations

import json
from typing import Any, List, Optional

import pytest
import requests

from app.integrations.shopify import shopify_client as shopify_client_module
from app.integrations.shopify.errors import (
    ShopifyClientError,
    ShopifyNotFoundError,
    ShopifyPayloadError,
    ShopifyRateLimitError,
    ShopifyServerError,
)
from app.integrations.shopify.payload_utils import numeric_id, to_gid
from app.integrations.shopify.shopify_client import ShopifyClient


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: Optional[str] = None, headers=None):
        self.status_code = status_code
        self.headers = headers or {}
        if text is None:
            text = "" if payload is None else json.dumps(payload)
        self.text = text
        self.content = text.encode("utf-8")

    def json(self):
        return json.loads(self.text)


class FakeSession:
    def __init__(self, responses: List[Any]):
        self.responses = list(responses)
        self.requests: List[dict] = []

    def request(self, method, url, headers=None, json=None, timeout=None):
        self.requests.append({"method": method, "url": url, "headers": headers, "json": json, "timeout": timeout})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    sleeps: List[float] = []
    monkeypatch.setattr(shopify_client_module.time, "sleep", lambda s: sleeps.append(s))
    return sleeps


def _client(responses, **kwargs) -> ShopifyClient:
    params = dict(
        shop="demo.myshopify.com",
        token="shpat_test",
        api_version="2025-01",
        rest_api_version="2024-01",
        retries=2,
        backoff_ms=100,
        page_size=2,
        session=FakeSession(responses),
    )
    params.update(kwargs)
    return ShopifyClient(**params)


def _product_node(pid: int, images=(), variants=()):
    return {
        "id": f"gid://shopify/Product/{pid}",
        "title": f"Product {pid}",
        "handle": f"product-{pid}",
        "status": "ACTIVE",
        "images": {"edges": [{"node": {"id": i, "url": f"https://cdn.test/{n}.jpg", "altText": None}}
                              for n, i in enumerate(images)]},
        "variants": {"edges": [{"node": {"id": v, "title": "Default", "sku": "SKU", "image": {"id": img} if img else None}}
                                for v, img in variants]},
    }


def test_numeric_id_and_to_gid():
    assert numeric_id("gid://shopify/ProductImage/123") == "123"
    assert numeric_id("456") == "456"
    assert to_gid("ProductImage", 789) == "gid://shopify/ProductImage/789"
    assert to_gid("ProductImage", "gid://shopify/ProductImage/1") == "gid://shopify/ProductImage/1"
    with pytest.raises(ShopifyPayloadError):
        numeric_id("gid://shopify/Product/abc")


def test_get_collection_posts_graphql_with_auth_headers():
    client = _client([FakeResponse(payload={"data": {"collection": {"id": "gid://shopify/Collection/1", "title": "Summer", "handle": "summer"}}})])

    collection = client.get_collection("gid://shopify/Collection/1")

    assert collection.title == "Summer"
    req = client.session.requests[0]
    assert req["method"] == "POST"
    assert req["url"] == "https://demo.myshopify.com/admin/api/2025-01/graphql.json"
    assert req["headers"]["X-Shopify-Access-Token"] == "shpat_test"
    assert req["json"]["variables"] == {"id": "gid://shopify/Collection/1"}


def test_get_collection_null_node_is_not_found():
    client = _client([FakeResponse(payload={"data": {"collection": None}})])
    with pytest.raises(ShopifyNotFoundError):
        client.get_collection("gid://shopify/Collection/404")


def test_get_products_from_collection_follows_cursor_until_limit():
    page1 = {"data": {"collection": {"id": "c", "products": {
        "pageInfo": {"hasNextPage": True, "endCursor": "CUR1"},
        "edges": [{"node": _product_node(1, images=["gid://shopify/ProductImage/11"])},
                  {"node": _product_node(2)}],
    }}}}
    page2 = {"data": {"collection": {"id": "c", "products": {
        "pageInfo": {"hasNextPage": True, "endCursor": "CUR2"},
        "edges": [{"node": _product_node(3)}],
    }}}}
    client = _client([FakeResponse(payload=page1), FakeResponse(payload=page2)])

    products = client.get_products_from_collection("c", limit=3)

    assert [p.id for p in products] == [
        "gid://shopify/Product/1", "gid://shopify/Product/2", "gid://shopify/Product/3",
    ]
    assert products[0].images[0].id == "gid://shopify/ProductImage/11"
    assert products[0].status == "active"
    sent = [r["json"]["variables"] for r in client.session.requests]
    assert sent == [
        {"id": "c", "first": 2, "after": None},
        {"id": "c", "first": 1, "after": "CUR1"},
    ]


def test_get_products_stops_when_no_next_page():
    page = {"data": {"collection": {"id": "c", "products": {
        "pageInfo": {"hasNextPage": False, "endCursor": "X"},
        "edges": [{"node": _product_node(1)}],
    }}}}
    client = _client([FakeResponse(payload=page)])
    assert len(client.get_products_from_collection("c", limit=250)) == 1
    assert len(client.session.requests) == 1


def test_get_product_normalizes_variant_image_ids():
    node = _product_node(
        1,
        images=["gid://shopify/ProductImage/11"],
        variants=[("gid://shopify/ProductVariant/101", "gid://shopify/ProductImage/11"),
                  ("gid://shopify/ProductVariant/102", None)],
    )
    client = _client([FakeResponse(payload={"data": {"product": node}})])

    product = client.get_product("gid://shopify/Product/1")

    assert [(v.id, v.image_id) for v in product.variants] == [
        ("gid://shopify/ProductVariant/101", "gid://shopify/ProductImage/11"),
        ("gid://shopify/ProductVariant/102", None),
    ]


def test_upload_image_posts_rest_and_returns_gid():
    client = _client([FakeResponse(payload={"image": {"id": 555, "src": "https://cdn.test/new.jpg", "position": 2}})])

    image = client.upload_image("gid://shopify/Product/1", "https://x.test/new.jpg", 2)

    assert image.id == "gid://shopify/ProductImage/555"
    assert image.position == 2
    req = client.session.requests[0]
    assert req["url"] == "https://demo.myshopify.com/admin/api/2024-01/products/1/images.json"
    assert req["json"] == {"image": {"src": "https://x.test/new.jpg", "position": 2}}


def test_update_variant_image_puts_numeric_ids():
    client = _client([FakeResponse(payload={"variant": {"id": 101, "product_id": 1, "image_id": 555}})])

    variant = client.update_variant_image("gid://shopify/ProductVariant/101", "gid://shopify/ProductImage/555")

    assert variant.image_id == "gid://shopify/ProductImage/555"
    req = client.session.requests[0]
    assert req["method"] == "PUT"
    assert req["url"].endswith("/variants/101.json")
    assert req["json"] == {"variant": {"id": 101, "image_id": 555}}


def test_delete_image_treats_404_as_success():
    client = _client([FakeResponse(status_code=404, text='{"errors":"Not Found"}')])
    client.delete_image("gid://shopify/ProductImage/11", "gid://shopify/Product/1")
    req = client.session.requests[0]
    assert req["method"] == "DELETE"
    assert req["url"].endswith("/products/1/images/11.json")


def test_delete_image_without_product_uses_image_path():
    client = _client([FakeResponse(status_code=200, text="{}")])
    client.delete_image("gid://shopify/ProductImage/11")
    assert client.session.requests[0]["url"].endswith("/admin/api/2024-01/images/11.json")


def test_retries_429_using_retry_after(no_sleep):
    client = _client([
        FakeResponse(status_code=429, text="", headers={"Retry-After": "2"}),
        FakeResponse(payload={"data": {"collection": {"id": "c", "title": "T"}}}),
    ])
    assert client.get_collection("c").title == "T"
    assert no_sleep == [2.0]


def test_429_exhausted_raises_rate_limit():
    client = _client([FakeResponse(status_code=429, text="")] * 3)
    with pytest.raises(ShopifyRateLimitError):
        client.get_collection("c")
    assert len(client.session.requests) == 3


def test_5xx_retries_with_backoff_then_raises(no_sleep):
    client = _client([FakeResponse(status_code=502, text="bad gateway")] * 3)
    with pytest.raises(ShopifyServerError):
        client.upload_image("gid://shopify/Product/1", "https://x.test/a.jpg", 1)
    assert no_sleep == [0.1, 0.2]


def test_4xx_is_not_retried():
    client = _client([FakeResponse(status_code=422, text='{"errors":{"image":["invalid"]}}')])
    with pytest.raises(ShopifyClientError):
        client.upload_image("gid://shopify/Product/1", "https://x.test/a.jpg", 1)
    assert len(client.session.requests) == 1


def test_timeout_then_success():
    client = _client([
        requests.Timeout("slow"),
        FakeResponse(payload={"data": {"collection": {"id": "c", "title": "T"}}}),
    ])
    assert client.get_collection("c").title == "T"


def test_connection_errors_exhausted_raise_client_error():
    client = _client([requests.ConnectionError("down")] * 3)
    with pytest.raises(ShopifyClientError):
        client.get_collection("c")


def test_graphql_top_level_errors_raise_payload_error():
    client = _client([FakeResponse(payload={"errors": [{"message": "Access denied"}]})])
    with pytest.raises(ShopifyPayloadError):
        client.get_collection("c")
    assert len(client.session.requests) == 1


def test_non_json_response_retried_then_payload_error():
    client = _client([FakeResponse(status_code=200, text="<html>")] * 3)
    with pytest.raises(ShopifyPayloadError):
        client.get_product("gid://shopify/Product/1")


def test_get_collections_returns_single_page_with_cursor():
    payload = {"data": {"collections": {
        "pageInfo": {"hasNextPage": True, "endCursor": "C2"},
        "edges": [{"node": {"id": "gid://shopify/Collection/1", "title": "Summer", "handle": "summer",
                            "description": "Hot", "productsCount": {"count": 12}}}],
    }}}
    client = _client([FakeResponse(payload=payload)])

    page = client.get_collections(limit=20, after="C1")

    assert [(c.id, c.products_count, c.description) for c in page.items] == [
        ("gid://shopify/Collection/1", 12, "Hot"),
    ]
    assert page.has_next_page is True
    assert page.end_cursor == "C2"
    assert client.session.requests[0]["json"]["variables"] == {"first": 20, "after": "C1"}


def test_get_products_caps_page_size_at_250():
    payload = {"data": {"products": {
        "pageInfo": {"hasNextPage": False, "endCursor": None},
        "edges": [{"node": _product_node(1, images=["gid://shopify/ProductImage/11"])}],
    }}}
    client = _client([FakeResponse(payload=payload)])

    page = client.get_products(limit=1000)

    assert [p.id for p in page.items] == ["gid://shopify/Product/1"]
    assert page.has_next_page is False
    assert client.session.requests[0]["json"]["variables"] == {"first": 250, "after": None}
