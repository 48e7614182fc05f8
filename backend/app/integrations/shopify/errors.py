"""
   Shopify 集成层专用异常类型。
   将 HTTP/限流/服务端/载荷等错误与业务层解耦，便于上层统一处理。
"""

class ShopifyError(Exception):
    """Base for all Shopify errors."""

class ShopifyNotFoundError(ShopifyError):
    """404 or a GraphQL node that resolved to null."""

class ShopifyClientError(ShopifyError):
    """4xx (other than 404/429) or network errors after retries."""

class ShopifyServerError(ShopifyError):
    """Server-side (5xx) errors after retries."""

class ShopifyRateLimitError(ShopifyError):
    """429 Too Many Requests not resolved after retries."""

class ShopifyPayloadError(ShopifyError):
    """Unexpected response shape, non-JSON body or top-level GraphQL errors."""
