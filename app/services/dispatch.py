import logging
from functools import lru_cache
from typing import Optional

from celery import Celery
from kombu.exceptions import OperationalError
from redis.exceptions import RedisError

from app.core.config import get_settings
from app.core.queue import WISHLIST_NOTIFICATION_TASK, create_celery_app

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Publishes wishlist notification jobs to the queue.

    Enqueueing is fire-and-forget: the caller never waits for the worker.
    The publish is not part of the caller's database transaction, so a broker
    outage after a commit drops the job. That failure is logged here and
    ``enqueue`` returns ``None``; it is never raised into the HTTP request.
    """

    def __init__(self, celery_app: Celery, priority: int = 0, queue: Optional[str] = None):
        self.celery_app = celery_app
        self.priority = priority
        self.queue = queue

    def enqueue(self, book_id: int, book_title: str) -> Optional[str]:
        job = {"bookId": book_id, "bookTitle": book_title}
        try:
            result = self.celery_app.send_task(
                WISHLIST_NOTIFICATION_TASK,
                args=[book_id, book_title],
                queue=self.queue,
                priority=self.priority,
            )
        except (OperationalError, RedisError) as e:
            logger.error(
                "Notification queue error",
                extra={**job, "error": str(e)},
                exc_info=True,
            )
            return None
        logger.info("Notification job enqueued", extra={"jobId": result.id, **job})
        return result.id

    def ping(self) -> None:
        """Raise if the broker cannot be reached."""
        with self.celery_app.connection_for_write() as conn:
            conn.ensure_connection(max_retries=1)

    def close(self) -> None:
        self.celery_app.close()


@lru_cache
def get_dispatcher() -> NotificationDispatcher:
    settings = get_settings()
    return NotificationDispatcher(
        create_celery_app(settings),
        priority=settings.notification_priority,
        queue=settings.notification_queue,
    )
