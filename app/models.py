import enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    Boolean,
    Computed,
    ForeignKey,
    Enum,
    Index,
    UniqueConstraint,
    false,
    func,
)
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()

# =========================
# Enum 정의
# =========================


class AvailabilityStatus(str, enum.Enum):
    AVAILABLE = "Available"
    BORROWED = "Borrowed"


# =========================
# Book / Wishlist
# =========================


class Book(Base):
    __tablename__ = "books"

    id = Column(Integer, primary_key=True, autoincrement=True)

    title = Column(String(500), nullable=False)
    author = Column(String(200), nullable=False)
    # ISBN은 INT가 아니라 문자열로 (선행 0 보존)
    isbn = Column(String(13), nullable=False)
    published_year = Column(Integer, nullable=False)
    availability_status = Column(
        Enum(
            AvailabilityStatus,
            name="availability_status",
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=AvailabilityStatus.AVAILABLE,
        server_default=AvailabilityStatus.AVAILABLE.value,
    )

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # 소프트 삭제: 물리 삭제 없이 플래그 + 시각만 기록
    is_deleted = Column(Boolean, nullable=False, default=False, server_default=false())
    deleted_at = Column(DateTime, nullable=True)
    # 삭제되지 않은 책만 ISBN 값을 가짐. 유일 인덱스는 NULL 중복을 허용하므로 삭제된 ISBN은 재사용 가능
    active_isbn = Column(
        String(13),
        Computed("CASE WHEN deleted_at IS NULL THEN isbn END"),
        nullable=True,
    )

    wishlists = relationship("Wishlist", back_populates="book", passive_deletes=True)

    __table_args__ = (
        Index("uq_books_isbn_active", "active_isbn", unique=True),
        Index("ix_books_isbn", "isbn"),
        Index("ix_books_author", "author"),
        Index("ix_books_published_year", "published_year"),
        Index("ix_books_availability_status", "availability_status"),
        Index("ix_books_deleted_at", "deleted_at"),
    )


class Wishlist(Base):
    __tablename__ = "wishlists"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # 외부 시스템의 사용자 ID (users 테이블은 이 서비스 소유가 아님)
    user_id = Column(Integer, nullable=False, index=True)
    book_id = Column(
        Integer,
        ForeignKey("books.id", ondelete="RESTRICT", onupdate="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    book = relationship("Book", back_populates="wishlists")

    __table_args__ = (
        UniqueConstraint("user_id", "book_id", name="uq_wishlist_user_book"),
    )
