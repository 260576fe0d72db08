"""위시리스트 알림 Celery 워커.
실행: celery -A worker.worker:celery_app worker --loglevel=info
     (또는 python -m worker.worker)

Retry policy: ``NOTIFICATION_MAX_ATTEMPTS`` attempts in total (default 3) with
exponential backoff starting at ``NOTIFICATION_BACKOFF_SECONDS`` (2s, 4s, ...).
Completed jobs, failed attempts and permanently failed jobs are logged with the
job id and the book data.
"""
import logging

from celery.signals import task_failure, task_retry, task_success

from app.core.config import get_settings
from app.core.logging import setup_logging
from app.core.queue import WISHLIST_NOTIFICATION_TASK, create_celery_app
from app.database import SessionLocal
from app.services.notifications import process_wishlist_notifications

settings = get_settings()
setup_logging(settings)
logger = logging.getLogger("worker")

celery_app = create_celery_app(settings)


@celery_app.task(
    bind=True,
    name=WISHLIST_NOTIFICATION_TASK,
    autoretry_for=(Exception,),
    max_retries=settings.notification_max_attempts - 1,
    retry_backoff=settings.notification_backoff_seconds,
    retry_backoff_max=600,
    retry_jitter=False,
)
def send_wishlist_notifications(self, book_id, book_title):
    logger.info(
        f"Processing notification job for bookId: {book_id}, bookTitle: {book_title}",
        extra={"jobId": self.request.id, "attempt": self.request.retries + 1},
    )
    with SessionLocal() as db:
        result = process_wishlist_notifications(db, book_id, book_title)
    return result.model_dump()


def _job_fields(task_id, args) -> dict:
    args = list(args or [])
    return {
        "jobId": task_id,
        "bookId": args[0] if len(args) > 0 else None,
        "bookTitle": args[1] if len(args) > 1 else None,
    }


def _is_notification_task(sender) -> bool:
    return getattr(sender, "name", None) == WISHLIST_NOTIFICATION_TASK


@task_success.connect
def log_job_completed(sender=None, result=None, **kwargs):
    if not _is_notification_task(sender):
        return
    fields = _job_fields(sender.request.id, sender.request.args)
    if isinstance(result, dict):
        fields["processed"] = result.get("processed")
    logger.info("Notification job completed", extra=fields)


@task_retry.connect
def log_job_retry(sender=None, request=None, reason=None, **kwargs):
    if not _is_notification_task(sender):
        return
    fields = _job_fields(getattr(request, "id", None), getattr(request, "args", None))
    fields["attempt"] = getattr(request, "retries", 0) + 1
    fields["error"] = str(reason)
    logger.warning("Notification job attempt failed, retrying", extra=fields)


@task_failure.connect
def log_job_failed(sender=None, task_id=None, exception=None, args=None, einfo=None, **kwargs):
    if not _is_notification_task(sender):
        return
    fields = _job_fields(task_id, args)
    fields["error"] = str(exception)
    if einfo is not None:
        fields["stack"] = str(einfo.traceback)
    logger.error("Notification job failed", extra=fields)


if __name__ == "__main__":
    celery_app.worker_main(["worker", "--loglevel=info"])
