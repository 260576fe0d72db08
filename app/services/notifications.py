from __future__ import annotations

import logging
from typing import List, Union

from sqlalchemy.orm import Session

from app.core.messages import (
    WISHLIST_PROCESSING_ERROR,
    wishlist_available_message,
    wishlist_processed_message,
)
from app.models import Wishlist
from app.schemas.notification import NotificationResult, WishlistNotification

logger = logging.getLogger(__name__)


def prepare_wishlist_notifications(db: Session, book_id: int, book_title: str) -> List[WishlistNotification]:
    rows = (
        db.query(Wishlist.user_id)
        .filter(Wishlist.book_id == book_id)
        .order_by(Wishlist.id.asc())
        .all()
    )
    return [
        WishlistNotification(
            user_id=user_id,
            book_id=book_id,
            message=wishlist_available_message(book_title, user_id),
        )
        for (user_id,) in rows
    ]


def process_wishlist_notifications(db: Session, book_id: Union[int, str], book_title: str) -> NotificationResult:
    """Fan a "book is available again" event out to every wishlisting user.

    Runs inside the queue worker. Notifications are only prepared and logged;
    nothing is delivered, so running it twice for the same book is harmless.
    Errors are logged and re-raised so the job attempt counts as failed.
    """
    try:
        parsed_book_id = int(book_id)
        notifications = prepare_wishlist_notifications(db, parsed_book_id, book_title)
    except Exception as e:
        logger.error(
            WISHLIST_PROCESSING_ERROR,
            extra={"bookId": book_id, "bookTitle": book_title, "error": str(e)},
            exc_info=True,
        )
        raise

    for n in notifications:
        # TODO: 실제 발송(FCM/이메일) 연동 시 발송 상태 테이블로 중복 발송 방지
        logger.info(
            n.message,
            extra={"userId": n.user_id, "bookId": n.book_id, "bookTitle": book_title},
        )

    count = len(notifications)
    logger.info(
        f"Processed {count} wishlist notifications",
        extra={"bookId": parsed_book_id, "bookTitle": book_title, "count": count},
    )
    return NotificationResult(processed=count, message=wishlist_processed_message(count, book_title))
