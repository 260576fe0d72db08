import re
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.models import AvailabilityStatus

ISBN_PATTERN = re.compile(r"^(?:\d{10}|\d{13})$")
MIN_PUBLISHED_YEAR = 1000
TITLE_MAX_LENGTH = 500
AUTHOR_MAX_LENGTH = 200
# INTEGER 컬럼(32bit) 상한. 이보다 큰 id/page 는 DB 까지 가지 않도록 요청 단계에서 거부
MAX_DB_INT = 2**31 - 1


def max_published_year() -> int:
    # 출간 예정 도서를 위해 내년까지 허용
    return date.today().year + 1


# 와이어 필드명(camelCase) 기준 오류 메시지
REQUIRED_MESSAGES = {
    "title": "Title is required",
    "author": "Author is required",
    "isbn": "ISBN is required",
    "publishedYear": "Published year must be a valid year",
    "q": "Search query is required",
}

FIELD_ERROR_MESSAGES = {
    "title": f"Title must be between 1 and {TITLE_MAX_LENGTH} characters",
    "author": f"Author must be between 1 and {AUTHOR_MAX_LENGTH} characters",
    "isbn": "ISBN must be 10 or 13 digits",
    "publishedYear": "Published year must be a valid year",
    "availabilityStatus": 'Availability status must be either "Available" or "Borrowed"',
}

QUERY_ERROR_MESSAGES = {
    "page": "Page must be a positive integer",
    "limit": "Limit must be between 1 and 100",
    "author": "Author filter cannot be empty",
    "publishedYear": "Published year must be a valid year",
    "q": "Search query must be between 1 and 200 characters",
}

PATH_ERROR_MESSAGES = {
    "book_id": "Book ID must be a positive integer",
}


def _check_text(value: Optional[str], label: str, max_length: int, *, required: bool) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise ValueError(f"{label} is required" if required else f"{label} cannot be empty")
    if len(value) > max_length:
        raise ValueError(f"{label} must be between 1 and {max_length} characters")
    return value


def _check_isbn(value: Optional[str], *, required: bool) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise ValueError("ISBN is required" if required else "ISBN cannot be empty")
    if not ISBN_PATTERN.match(value):
        raise ValueError(FIELD_ERROR_MESSAGES["isbn"])
    return value


def _check_year(value: Optional[int]) -> Optional[int]:
    if value is None:
        return None
    if not MIN_PUBLISHED_YEAR <= value <= max_published_year():
        raise ValueError(FIELD_ERROR_MESSAGES["publishedYear"])
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BookCreateRequest(CamelModel):
    title: str
    author: str
    isbn: str
    published_year: int
    availability_status: AvailabilityStatus = AvailabilityStatus.AVAILABLE

    @field_validator("title")
    @classmethod
    def _title(cls, v):
        return _check_text(v, "Title", TITLE_MAX_LENGTH, required=True)

    @field_validator("author")
    @classmethod
    def _author(cls, v):
        return _check_text(v, "Author", AUTHOR_MAX_LENGTH, required=True)

    @field_validator("isbn")
    @classmethod
    def _isbn(cls, v):
        return _check_isbn(v, required=True)

    @field_validator("published_year")
    @classmethod
    def _year(cls, v):
        return _check_year(v)


class BookUpdateRequest(CamelModel):
    """Partial update. Omitted (or null) fields are left untouched."""

    title: Optional[str] = None
    author: Optional[str] = None
    isbn: Optional[str] = None
    published_year: Optional[int] = None
    availability_status: Optional[AvailabilityStatus] = None

    @field_validator("title")
    @classmethod
    def _title(cls, v):
        return _check_text(v, "Title", TITLE_MAX_LENGTH, required=False)

    @field_validator("author")
    @classmethod
    def _author(cls, v):
        return _check_text(v, "Author", AUTHOR_MAX_LENGTH, required=False)

    @field_validator("isbn")
    @classmethod
    def _isbn(cls, v):
        return _check_isbn(v, required=False)

    @field_validator("published_year")
    @classmethod
    def _year(cls, v):
        return _check_year(v)

    def changes(self) -> dict:
        return self.model_dump(exclude_none=True)


class BookResponse(CamelModel):
    id: int
    title: str
    author: str
    isbn: str
    published_year: int
    availability_status: AvailabilityStatus
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class BookEnvelope(CamelModel):
    success: bool = True
    message: str
    data: BookResponse


class BookListEnvelope(CamelModel):
    success: bool = True
    message: str
    data: List[BookResponse] = Field(default_factory=list)
    pagination: Pagination
