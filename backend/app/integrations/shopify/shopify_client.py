"""面向 Admin API 的轻量 Client：GraphQL 读集合/商品，REST 改图片/变体"""
from __future__ import annotations

import time, logging, requests
from typing import Any, Dict, List, Optional
from requests import Timeout, RequestException

from app.core.config import settings
from app.integrations.shopify.errors import (
    ShopifyClientError,
    ShopifyNotFoundError,
    ShopifyPayloadError,
    ShopifyRateLimitError,
    ShopifyServerError,
)
from app.integrations.shopify.graphql_queries import (
    COLLECTION_PRODUCTS,
    GET_COLLECTION,
    GET_PRODUCT,
    LIST_COLLECTIONS,
    LIST_PRODUCTS,
)
from app.integrations.shopify.payload_utils import (
    CatalogPage,
    ShopifyCollection,
    ShopifyImage,
    ShopifyProduct,
    ShopifyVariant,
    normalize_collection,
    normalize_product,
    normalize_rest_image,
    normalize_rest_variant,
    numeric_id,
)


logger = logging.getLogger(__name__)


def _secret(value: Any) -> str:
    # 兼容 SecretStr 或 str
    if hasattr(value, "get_secret_value"):
        value = value.get_secret_value()
    return str(value or "")



class ShopifyClient:
    """
    参数都可显式传入；不传时从 settings 取（只在构造时读一次）。
    session 可注入，测试里用假 session 代替真实网络。
    """

    def __init__(
        self,
        shop: Optional[str] = None,
        token: Optional[str] = None,
        *,
        api_version: Optional[str] = None,
        rest_api_version: Optional[str] = None,
        timeout: Optional[int] = None,
        retries: Optional[int] = None,
        backoff_ms: Optional[int] = None,
        page_size: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.shop = shop or settings.SHOPIFY_SHOP
        self.token = _secret(token if token is not None else settings.SHOPIFY_ADMIN_TOKEN)
        self.api_version = api_version or settings.SHOPIFY_API_VERSION
        self.rest_api_version = rest_api_version or settings.SHOPIFY_REST_API_VERSION
        self.timeout = timeout or settings.SHOPIFY_HTTP_TIMEOUT
        self.max_retries = max(0, int(settings.SHOPIFY_HTTP_RETRIES if retries is None else retries))
        self.backoff_ms = max(0, int(settings.SHOPIFY_HTTP_BACKOFF_MS if backoff_ms is None else backoff_ms))
        self.page_size = max(1, int(page_size or settings.SHOPIFY_PAGE_SIZE))
        self.session = session or requests.Session()


    # ---------------- 基础：端点 & 认证 ----------------

    # graphql.json 表示走 GraphQL Admin API
    def _graphql_endpoint(self) -> str:
        return f"https://{self.shop}/admin/api/{self.api_version}/graphql.json"

    def _rest_url(self, path: str) -> str:
        return f"https://{self.shop}/admin/api/{self.rest_api_version}/{path.lstrip('/')}"

    def _auth_headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": self.token,
            "User-Agent": "ProductImageUpdater/ShopifyClient (+python)",
        }

    def _backoff(self, attempt: int) -> float:
        return (self.backoff_ms / 1000.0) * (2 ** attempt)


    '''
    通用 HTTP 调用（带日志 + 重试），GraphQL 与 REST 共用
        1) 429 按 Retry-After（没有就指数退避）重试，用尽抛 ShopifyRateLimitError
        2) 5xx / 超时 / 网络异常指数退避重试，用尽分别抛 ShopifyServerError / ShopifyClientError
        3) 404 抛 ShopifyNotFoundError，其余 4xx 直接抛 ShopifyClientError，不重试
        4) 非 JSON 响应重试，用尽抛 ShopifyPayloadError；空响应体返回 {}
    '''
    def _request(
        self,
        method: str,
        url: str,
        *,
        json_body: Optional[dict] = None,
        op_name: str = "",
        kind: str = "rest",
    ) -> Dict[str, Any]:

        for attempt in range(self.max_retries + 1):
            start = time.perf_counter()
            try:
                resp = self.session.request(
                    method,
                    url,
                    headers=self._auth_headers(),
                    json=json_body,
                    timeout=self.timeout,
                )
            except Timeout:
                latency_ms = int((time.perf_counter() - start) * 1000)
                logger.warning("shopify.%s.timeout op=%s latency_ms=%s attempt=%s/%s",
                    kind, op_name, latency_ms, attempt, self.max_retries)
                if attempt == self.max_retries:
                    raise ShopifyClientError(f"{op_name} timed out after {attempt + 1} attempts")
                time.sleep(self._backoff(attempt))
                continue
            except RequestException as e:
                latency_ms = int((time.perf_counter() - start) * 1000)
                logger.warning("shopify.%s.request_exception op=%s latency_ms=%s attempt=%s/%s err=%s",
                    kind, op_name, latency_ms, attempt, self.max_retries, type(e).__name__)
                if attempt == self.max_retries:
                    raise ShopifyClientError(f"{op_name} failed: {e}") from e
                time.sleep(self._backoff(attempt))
                continue

            latency_ms = int((time.perf_counter() - start) * 1000)
            status = resp.status_code

            if status == 429:
                retry_after = resp.headers.get("Retry-After")
                logger.warning(
                    "shopify.%s.429_throttled op=%s latency_ms=%s attempt=%s/%s retry_after=%s",
                    kind, op_name, latency_ms, attempt, self.max_retries, retry_after)
                if attempt == self.max_retries:
                    raise ShopifyRateLimitError(f"{op_name} throttled (429) after {attempt + 1} attempts")
                try:
                    sleep_s = max(0.1, float(retry_after))
                except (TypeError, ValueError):
                    sleep_s = self._backoff(attempt)
                time.sleep(sleep_s)
                continue

            if status >= 500:
                logger.warning("shopify.%s.http_error op=%s status=%s latency_ms=%s attempt=%s/%s",
                    kind, op_name, status, latency_ms, attempt, self.max_retries)
                if attempt == self.max_retries:
                    raise ShopifyServerError(f"{op_name} failed with HTTP {status}: {resp.text[:200]}")
                time.sleep(self._backoff(attempt))
                continue

            if status == 404:
                logger.info("shopify.%s.not_found op=%s latency_ms=%s", kind, op_name, latency_ms)
                raise ShopifyNotFoundError(f"{op_name}: resource not found")

            if status >= 400:
                logger.warning("shopify.%s.http_error op=%s status=%s latency_ms=%s attempt=%s/%s",
                    kind, op_name, status, latency_ms, attempt, self.max_retries)
                raise ShopifyClientError(f"{op_name} failed with HTTP {status}: {resp.text[:200]}")

            if not (resp.content or b"").strip():
                logger.info("shopify.%s.ok op=%s latency_ms=%s attempt=%s", kind, op_name, latency_ms, attempt)
                return {}

            try:
                data = resp.json()
            except ValueError:
                logger.warning("shopify.%s.non_json op=%s attempt=%s/%s", kind, op_name, attempt, self.max_retries)
                if attempt == self.max_retries:
                    raise ShopifyPayloadError(f"{op_name} response is not JSON: status={status}")
                time.sleep(self._backoff(attempt))
                continue

            logger.info("shopify.%s.ok op=%s latency_ms=%s attempt=%s", kind, op_name, latency_ms, attempt)
            return data if isinstance(data, dict) else {"data": data}

        raise ShopifyClientError(f"{op_name} failed")


    def _post_graphql(self, query: str, variables: Optional[dict] = None, *, op_name: str = "") -> dict:
        """返回 GraphQL 的 data 节点；顶层 errors 视为硬错误，不重试。"""
        payload = {"query": query, "variables": variables or {}}
        data = self._request("POST", self._graphql_endpoint(), json_body=payload, op_name=op_name, kind="graphql")
        if data.get("errors"):
            logger.error("shopify.graphql.gql_errors op=%s errors=%s", op_name, data["errors"])
            raise ShopifyPayloadError(f"GraphQL top-level errors: {data['errors']}")
        return data.get("data") or {}


    # 基础连通性探测（本地先测 token/域名/版本是否正确）
    def ping(self) -> dict:
        q = """
        {
          shop {
            name
            myshopifyDomain
            plan { displayName }
          }
        }
        """.strip()
        return self._post_graphql(q, op_name="shop.ping")


    # ---------------- 读：集合 / 商品 ----------------

    def get_collection(self, collection_id: str) -> ShopifyCollection:
        data = self._post_graphql(GET_COLLECTION, {"id": collection_id}, op_name="collection.get")
        node = data.get("collection")
        if node is None:
            raise ShopifyNotFoundError(f"Collection not found: {collection_id}")
        return normalize_collection(node)


    def get_products_from_collection(self, collection_id: str, limit: int = 250) -> List[ShopifyProduct]:
        """按 pageInfo 游标翻页，直到拿够 limit 个或没有下一页。"""
        products: List[ShopifyProduct] = []
        cursor: Optional[str] = None
        limit = max(0, int(limit))

        while len(products) < limit:
            first = min(self.page_size, limit - len(products))
            data = self._post_graphql(
                COLLECTION_PRODUCTS,
                {"id": collection_id, "first": first, "after": cursor},
                op_name="collection.products",
            )
            node = data.get("collection")
            if node is None:
                raise ShopifyNotFoundError(f"Collection not found: {collection_id}")

            conn = node.get("products") or {}
            for edge in conn.get("edges") or []:
                products.append(normalize_product((edge or {}).get("node")))

            page = conn.get("pageInfo") or {}
            cursor = page.get("endCursor")
            if not page.get("hasNextPage") or not cursor:
                break

        logger.info("shopify.collection.products collection_id=%s count=%s", collection_id, len(products))
        return products[:limit]


    def get_product(self, product_id: str) -> ShopifyProduct:
        data = self._post_graphql(GET_PRODUCT, {"id": product_id}, op_name="product.get")
        node = data.get("product")
        if node is None:
            raise ShopifyNotFoundError(f"Product not found: {product_id}")
        return normalize_product(node)


    # ---------------- 浏览：全店集合 / 商品（单页，游标由调用方带回） ----------------

    def _list_page(self, query: str, root: str, normalize, limit: int, after: Optional[str], op_name: str) -> CatalogPage:
        first = max(1, min(int(limit), 250))
        data = self._post_graphql(query, {"first": first, "after": after}, op_name=op_name)
        conn = data.get(root) or {}
        items = [normalize((edge or {}).get("node")) for edge in conn.get("edges") or []]
        page = conn.get("pageInfo") or {}
        return CatalogPage(
            items=items,
            has_next_page=bool(page.get("hasNextPage")),
            end_cursor=page.get("endCursor"),
        )


    def get_collections(self, limit: int = 50, after: Optional[str] = None) -> CatalogPage:
        return self._list_page(LIST_COLLECTIONS, "collections", normalize_collection, limit, after, "collections.list")


    def get_products(self, limit: int = 50, after: Optional[str] = None) -> CatalogPage:
        return self._list_page(LIST_PRODUCTS, "products", normalize_product, limit, after, "products.list")


    # ---------------- 写：图片 / 变体（REST） ----------------

    def upload_image(self, product_id: str, src: str, position: Optional[int] = None) -> ShopifyImage:
        image: Dict[str, Any] = {"src": src}
        if position is not None:
            image["position"] = int(position)
        data = self._request(
            "POST",
            self._rest_url(f"products/{numeric_id(product_id)}/images.json"),
            json_body={"image": image},
            op_name="product_image.create",
        )
        return normalize_rest_image(data)


    def update_variant_image(self, variant_id: str, image_id: str) -> ShopifyVariant:
        variant_num = numeric_id(variant_id)
        data = self._request(
            "PUT",
            self._rest_url(f"variants/{variant_num}.json"),
            json_body={"variant": {"id": int(variant_num), "image_id": int(numeric_id(image_id))}},
            op_name="variant.update_image",
        )
        return normalize_rest_variant(data)


    def delete_image(self, image_id: str, product_id: Optional[str] = None) -> None:
        """已不存在（404）按成功处理。"""
        image_num = numeric_id(image_id)
        if product_id:
            path = f"products/{numeric_id(product_id)}/images/{image_num}.json"
        else:
            path = f"images/{image_num}.json"
        try:
            self._request("DELETE", self._rest_url(path), op_name="product_image.delete")
        except ShopifyNotFoundError:
            logger.info("shopify.rest.delete_missing image_id=%s", image_id)
