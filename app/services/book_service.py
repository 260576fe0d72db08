import logging
import math
from typing import List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from app.core.errors import ConflictError, NotFoundError
from app.models import AvailabilityStatus, Book
from app.schemas.book import BookCreateRequest, BookUpdateRequest, Pagination
from app.services.dispatch import NotificationDispatcher

logger = logging.getLogger(__name__)


def paginate(query: Query, page: int, limit: int) -> Tuple[List[Book], Pagination]:
    total = query.order_by(None).count()
    items = (
        query.order_by(Book.created_at.desc(), Book.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit),
    )


class BookService:
    """Book business rules on top of one request-scoped session.

    Borrowed -> Available is the only status transition with a side effect:
    a wishlist notification job is enqueued after the update is committed.
    Commit and enqueue are separate steps, so a crash in between loses the
    notification, and two racing updates can both enqueue one.
    """

    def __init__(self, db: Session, dispatcher: NotificationDispatcher):
        self.db = db
        self.dispatcher = dispatcher

    def _active(self) -> Query:
        return self.db.query(Book).filter(Book.is_deleted.is_(False))

    def _get_active(self, book_id: int) -> Book:
        book = self._active().filter(Book.id == book_id).first()
        if not book:
            raise NotFoundError()
        return book

    def _isbn_taken(self, isbn: str, exclude_id: Optional[int] = None) -> bool:
        q = self._active().filter(Book.isbn == isbn)
        if exclude_id is not None:
            q = q.filter(Book.id != exclude_id)
        return self.db.query(q.exists()).scalar()

    def create_book(self, payload: BookCreateRequest) -> Book:
        if self._isbn_taken(payload.isbn):
            raise ConflictError()

        book = Book(
            title=payload.title,
            author=payload.author,
            isbn=payload.isbn,
            published_year=payload.published_year,
            availability_status=payload.availability_status,
        )
        self.db.add(book)
        self.db.commit()
        self.db.refresh(book)
        logger.info("Book created", extra={"bookId": book.id, "isbn": book.isbn})
        return book

    def get_book(self, book_id: int) -> Book:
        return self._get_active(book_id)

    def list_books(
        self,
        page: int = 1,
        limit: int = 10,
        author: Optional[str] = None,
        published_year: Optional[int] = None,
    ) -> Tuple[List[Book], Pagination]:
        q = self._active()
        if author:
            q = q.filter(Book.author.icontains(author.strip(), autoescape=True))
        if published_year is not None:
            q = q.filter(Book.published_year == published_year)
        return paginate(q, page, limit)

    def search_books(self, query: str, page: int = 1, limit: int = 10) -> Tuple[List[Book], Pagination]:
        term = query.strip()
        q = self._active().filter(
            or_(
                Book.title.icontains(term, autoescape=True),
                Book.author.icontains(term, autoescape=True),
            )
        )
        return paginate(q, page, limit)

    def update_book(self, book_id: int, payload: BookUpdateRequest) -> Book:
        book = self._get_active(book_id)
        changes = payload.changes()

        new_isbn = changes.get("isbn")
        if new_isbn and new_isbn != book.isbn and self._isbn_taken(new_isbn, exclude_id=book.id):
            raise ConflictError()

        previous_status = book.availability_status
        for field, value in changes.items():
            setattr(book, field, value)
        self.db.commit()
        self.db.refresh(book)

        if (
            previous_status == AvailabilityStatus.BORROWED
            and changes.get("availability_status") == AvailabilityStatus.AVAILABLE
        ):
            job_id = self.dispatcher.enqueue(book.id, book.title)
            logger.info(
                "Book became available, wishlist notification requested",
                extra={"bookId": book.id, "bookTitle": book.title, "jobId": job_id},
            )
        return book

    def delete_book(self, book_id: int) -> None:
        book = self._get_active(book_id)
        book.is_deleted = True
        book.deleted_at = func.now()
        self.db.commit()
        logger.info("Book soft-deleted", extra={"bookId": book_id})
