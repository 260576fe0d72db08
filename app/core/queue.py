"""Celery application factory for the wishlist notification queue.

Both sides build their Celery app here: the API process only publishes with
``send_task`` (it never imports the task code), the worker process registers
the task in ``worker.worker``. Redis is the broker. Results are not stored.
"""
from celery import Celery

from .config import Settings

WISHLIST_NOTIFICATION_TASK = "wishlist-notification"


def create_celery_app(settings: Settings) -> Celery:
    celery_app = Celery("library_catalog", broker=settings.redis_url)
    celery_app.conf.update(
        task_default_queue=settings.notification_queue,
        task_routes={WISHLIST_NOTIFICATION_TASK: {"queue": settings.notification_queue}},
        task_serializer="json",
        accept_content=["json"],
        task_ignore_result=True,
        # 워커가 죽어도 메시지가 유실되지 않도록 처리 완료 후 ack
        task_acks_late=True,
        worker_prefetch_multiplier=1,
        worker_hijack_root_logger=False,
        broker_connection_retry_on_startup=True,
        broker_transport_options={
            "queue_order_strategy": "priority",
            "socket_connect_timeout": 2,
            "socket_timeout": 5,
        },
        # API 요청이 브로커 장애로 오래 붙잡히지 않도록 발행 재시도는 짧게
        task_publish_retry_policy={
            "max_retries": 2,
            "interval_start": 0,
            "interval_step": 0.5,
            "interval_max": 1,
        },
    )
    return celery_app
