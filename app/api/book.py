from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Request
from sqlalchemy.orm import Session

from app.core.errors import ValidationError
from app.core.messages import BOOK_MESSAGES
from app.core.rate_limit import books_rate_limit
from app.database import get_db
from app.schemas.book import (
    MAX_DB_INT,
    MIN_PUBLISHED_YEAR,
    QUERY_ERROR_MESSAGES,
    BookCreateRequest,
    BookEnvelope,
    BookListEnvelope,
    BookResponse,
    BookUpdateRequest,
    max_published_year,
)
from app.schemas.common import MessageResponse
from app.services.book_service import BookService
from app.services.dispatch import NotificationDispatcher, get_dispatcher

router = APIRouter(prefix="/books", tags=["books"])


def get_book_service(
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> BookService:
    return BookService(db, dispatcher)


def _list_envelope(message: str, books, pagination) -> BookListEnvelope:
    return BookListEnvelope(
        message=message,
        data=[BookResponse.model_validate(b) for b in books],
        pagination=pagination,
    )


@router.post("", response_model=BookEnvelope, status_code=201, summary="도서 등록")
@books_rate_limit
def create_book(request: Request, payload: BookCreateRequest, service: BookService = Depends(get_book_service)):
    book = service.create_book(payload)
    return BookEnvelope(message=BOOK_MESSAGES["CREATED"], data=BookResponse.model_validate(book))


@router.get("", response_model=BookListEnvelope, summary="도서 목록 (페이지네이션, 저자/출간연도 필터)")
@books_rate_limit
def list_books(
    request: Request,
    page: int = Query(1, ge=1, le=MAX_DB_INT),
    limit: int = Query(10, ge=1, le=100),
    author: Optional[str] = Query(None, max_length=200, pattern=r"\S", description="저자 부분일치 (대소문자 무시)"),
    published_year: Optional[int] = Query(None, alias="publishedYear", ge=MIN_PUBLISHED_YEAR),
    service: BookService = Depends(get_book_service),
):
    if published_year is not None and published_year > max_published_year():
        raise ValidationError([
            {"field": "publishedYear", "message": QUERY_ERROR_MESSAGES["publishedYear"], "value": published_year}
        ])
    books, pagination = service.list_books(page=page, limit=limit, author=author, published_year=published_year)
    return _list_envelope(BOOK_MESSAGES["RETRIEVED_ALL"], books, pagination)


# /{book_id} 보다 먼저 등록해야 함
@router.get("/search", response_model=BookListEnvelope, summary="제목/저자 부분검색")
@books_rate_limit
def search_books(
    request: Request,
    q: str = Query(..., max_length=200, pattern=r"\S", description="제목 또는 저자 (대소문자 무시)"),
    page: int = Query(1, ge=1, le=MAX_DB_INT),
    limit: int = Query(10, ge=1, le=100),
    service: BookService = Depends(get_book_service),
):
    books, pagination = service.search_books(q, page=page, limit=limit)
    return _list_envelope(BOOK_MESSAGES["SEARCH_COMPLETED"], books, pagination)


@router.get("/{book_id}", response_model=BookEnvelope, summary="도서 상세")
@books_rate_limit
def get_book(
    request: Request,
    book_id: int = Path(..., ge=1, le=MAX_DB_INT),
    service: BookService = Depends(get_book_service),
):
    book = service.get_book(book_id)
    return BookEnvelope(message=BOOK_MESSAGES["RETRIEVED"], data=BookResponse.model_validate(book))


@router.put("/{book_id}", response_model=BookEnvelope, summary="도서 부분 수정 (Borrowed→Available 시 위시리스트 알림)")
@books_rate_limit
def update_book(
    request: Request,
    payload: BookUpdateRequest,
    book_id: int = Path(..., ge=1, le=MAX_DB_INT),
    service: BookService = Depends(get_book_service),
):
    book = service.update_book(book_id, payload)
    return BookEnvelope(message=BOOK_MESSAGES["UPDATED"], data=BookResponse.model_validate(book))


@router.delete("/{book_id}", response_model=MessageResponse, summary="도서 삭제 (소프트 삭제)")
@books_rate_limit
def delete_book(
    request: Request,
    book_id: int = Path(..., ge=1, le=MAX_DB_INT),
    service: BookService = Depends(get_book_service),
):
    service.delete_book(book_id)
    return MessageResponse(message=BOOK_MESSAGES["DELETED"])
