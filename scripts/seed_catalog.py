"""샘플 도서 5권과 위시리스트를 넣는다.

위시리스트는 이 API로 생성할 수 없으므로(외부 시스템 소유) 로컬 확인용으로만 여기서 만든다.
대여중(Borrowed)인 책을 PUT /books/{id} 로 Available 로 바꾸면 워커 로그에 알림이 찍힌다.

Usage:
    python scripts/seed_catalog.py
"""
from pathlib import Path
from typing import Dict, List, Tuple
import sys

from sqlalchemy.orm import Session

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.database import SessionLocal, engine
from app.models import AvailabilityStatus, Base, Book, Wishlist

SAMPLE_BOOKS: List[Dict] = [
    {"title": "The Great Gatsby", "author": "F. Scott Fitzgerald", "isbn": "9780743273565", "published_year": 1925, "availability_status": AvailabilityStatus.AVAILABLE},
    {"title": "To Kill a Mockingbird", "author": "Harper Lee", "isbn": "9780061120084", "published_year": 1960, "availability_status": AvailabilityStatus.BORROWED},
    {"title": "1984", "author": "George Orwell", "isbn": "9780451524935", "published_year": 1949, "availability_status": AvailabilityStatus.AVAILABLE},
    {"title": "Pride and Prejudice", "author": "Jane Austen", "isbn": "9780141439518", "published_year": 1813, "availability_status": AvailabilityStatus.BORROWED},
    {"title": "The Catcher in the Rye", "author": "J.D. Salinger", "isbn": "9780316769174", "published_year": 1951, "availability_status": AvailabilityStatus.AVAILABLE},
]

# (user_id, ISBN)
SAMPLE_WISHLISTS: List[Tuple[int, str]] = [
    (1, "9780061120084"),  # To Kill a Mockingbird (Borrowed)
    (2, "9780061120084"),
    (1, "9780141439518"),  # Pride and Prejudice (Borrowed)
]


def ensure_book(db: Session, data: Dict) -> Book:
    book = (
        db.query(Book)
        .filter(Book.isbn == data["isbn"], Book.is_deleted.is_(False))
        .first()
    )
    if book:
        return book
    book = Book(**data)
    db.add(book)
    db.flush()  # assign id
    return book


def seed_catalog():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        books = {b["isbn"]: ensure_book(db, b) for b in SAMPLE_BOOKS}
        created = 0
        for user_id, isbn in SAMPLE_WISHLISTS:
            book_id = books[isbn].id
            exists = (
                db.query(Wishlist)
                .filter(Wishlist.user_id == user_id, Wishlist.book_id == book_id)
                .first()
            )
            if exists:
                continue
            db.add(Wishlist(user_id=user_id, book_id=book_id))
            created += 1
        db.commit()
        print(f"[OK] {len(books)} books, {created} new wishlist entries")
    finally:
        db.close()


if __name__ == "__main__":
    seed_catalog()
