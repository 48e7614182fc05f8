# 环境变量和配置
# pydantic‑settings 读取 .env = core/config.py

from typing import List, Optional
from pydantic import SecretStr, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# 本机直接跑 uvicorn 时（不走 Docker），才会用到 model_config.env_file=".env"：
# 此时它会读取 backend/.env

class Settings(BaseSettings):

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="",
        case_sensitive=False,
    )

    # ========= project config =========
    PROJECT_NAME: str = "Product Image Updater"
    ENVIRONMENT: str = "dev"
    API_PREFIX: str = "/api/v1"
    BACKEND_CORS_ORIGINS: str = "http://localhost:5173"


    # ========= Database =========
    # 说明：
    # - 容器内默认连 docker 网络里的 "db" 服务
    # - operation / csv 文件记录 / blob 内容都落在同一个库
    DATABASE_URL: str = Field(
        default="postgresql+psycopg://piu_user:piu_pass@db:5432/image_updater",
        alias="DATABASE_URL",
    )


    # ========= celery config =========
    CELERY_BROKER_URL: Optional[str] = None
    CELERY_RESULT_BACKEND: Optional[str] = None
    CELERY_TIMEZONE: str = "UTC"
    # True: /process 在请求内同步执行；False: 投递到 celery worker
    IMAGE_UPDATE_TASKS_INLINE: bool = Field(default=True, alias="IMAGE_UPDATE_TASKS_INLINE")


    # ========= Shopify API Config =========
    SHOPIFY_SHOP: str = Field("don-stefani-demo-store.myshopify.com", alias="SHOPIFY_SHOP")
    SHOPIFY_ADMIN_TOKEN: Optional[SecretStr] = Field(None, alias="SHOPIFY_ADMIN_TOKEN")           # 必须在运行时填上真实值
    SHOPIFY_API_VERSION: str = Field("2025-01", alias="SHOPIFY_API_VERSION")                      # GraphQL 读
    SHOPIFY_REST_API_VERSION: str = Field("2024-01", alias="SHOPIFY_REST_API_VERSION")            # 图片/变体 REST 写

    # 网络/HTTP 层 配置 测试时调参
    SHOPIFY_HTTP_TIMEOUT: int = Field(30, alias="SHOPIFY_HTTP_TIMEOUT")
    SHOPIFY_HTTP_RETRIES: int = Field(3, alias="SHOPIFY_HTTP_RETRIES")
    SHOPIFY_HTTP_BACKOFF_MS: int = Field(200, alias="SHOPIFY_HTTP_BACKOFF_MS")
    SHOPIFY_PAGE_SIZE: int = Field(50, ge=1, le=250, alias="SHOPIFY_PAGE_SIZE")                  # 集合商品分页大小


    # ========= image update config =========
    IMAGE_UPDATE_SHOP_DOMAIN: Optional[str] = Field(None, alias="IMAGE_UPDATE_SHOP_DOMAIN")       # 为空则用 SHOPIFY_SHOP
    IMAGE_UPDATE_DEFAULT_USER_ID: str = Field("default-user", alias="IMAGE_UPDATE_DEFAULT_USER_ID")
    IMAGE_UPDATE_DEFAULT_USER_NAME: str = Field("Default User", alias="IMAGE_UPDATE_DEFAULT_USER_NAME")
    IMAGE_UPDATE_TEMPLATE_PRODUCT_LIMIT: int = Field(250, ge=1, le=250, alias="IMAGE_UPDATE_TEMPLATE_PRODUCT_LIMIT")
    IMAGE_UPDATE_SLOTS_PER_PRODUCT: int = Field(5, ge=1, le=20, alias="IMAGE_UPDATE_SLOTS_PER_PRODUCT")
    IMAGE_UPDATE_HISTORY_LIMIT: int = Field(50, ge=1, le=500, alias="IMAGE_UPDATE_HISTORY_LIMIT")
    BLOB_BUCKET_NAME: str = Field("product-image-updater-store", alias="BLOB_BUCKET_NAME")


    @property
    def shop_domain(self) -> str:
        return self.IMAGE_UPDATE_SHOP_DOMAIN or self.SHOPIFY_SHOP

    @property
    def cors_origins(self) -> List[str]:
        # 逗号分隔的白名单
        return [o.strip() for o in self.BACKEND_CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()  # 只从环境读取（含 .env）
