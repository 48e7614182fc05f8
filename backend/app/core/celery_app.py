# 后台执行换图的 Celery 实例（IMAGE_UPDATE_TASKS_INLINE=False 时启用）

from celery import Celery
from kombu import Exchange, Queue
from app.core.config import settings
from app.core.logging import configure_logging

configure_logging()


'''
初始化 Celery 应用/实例
   - Worker: 1 台即可；换图本身是串行的慢 I/O
'''
celery_app = Celery(
    "product_image_updater",
    broker=settings.CELERY_BROKER_URL,          # 队列位置
    backend=settings.CELERY_RESULT_BACKEND,     # 结果存储
    include=[
        # 启动时加载这些模块，模块里的任务函数自动注册
        "app.orchestration.image_update.image_update_task",        # 执行换图
    ],
)


'''
  通用 Celery 配置
'''
celery_app.conf.update(
    timezone=settings.CELERY_TIMEZONE,
    enable_utc=True,                             # 内部还是存 UTC
    task_serializer="json",                      # 序列化格式 JSON
    accept_content=["json"],
    result_serializer="json",
    task_track_started=True,                     # 任务启动时标记 started
    broker_connection_retry_on_startup=True,     # 启动时如果 broker 挂了会重试
    # === 容错和超时控制 ===
    worker_prefetch_multiplier=1,    # 一个 worker 一次只取一个任务
    task_acks_late=False,            # 取到即确认，不重投
    broker_heartbeat=30,
    broker_pool_limit=10,
)


'''
换图任务单独一个队列，Shopify 写操作慢，不和其他任务抢 worker
'''
celery_app.conf.task_queues = (
    Queue("default", Exchange("default"), routing_key="default"),
    Queue("image_update", Exchange("image_update"), routing_key="image_update"),
)


celery_app.conf.task_routes = {
    "app.orchestration.image_update.image_update_task.process_image_update_operation": {"queue": "image_update"},
}
