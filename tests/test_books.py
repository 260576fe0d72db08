import logging

from fastapi.testclient import TestClient

from app.main import app
from app.services.book_service import BookService


def test_create_book_returns_envelope(client):
    r = client.post(
        "/books",
        json={"title": "  Dune ", "author": "Frank Herbert", "isbn": "9780441172719", "publishedYear": 1965},
    )
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    assert body["message"] == "Book created successfully"
    data = body["data"]
    assert isinstance(data["id"], int)
    assert data["title"] == "Dune"
    assert data["isbn"] == "9780441172719"
    assert data["publishedYear"] == 1965
    assert data["availabilityStatus"] == "Available"
    assert data["createdAt"] and data["updatedAt"]
    assert "deletedAt" not in data


def test_create_book_reports_every_invalid_field(client):
    r = client.post(
        "/books",
        json={"title": "   ", "isbn": "12345", "publishedYear": 999, "availabilityStatus": "Lost"},
    )
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    errors = {e["field"]: e for e in body["errors"]}
    assert set(errors) == {"title", "author", "isbn", "publishedYear", "availabilityStatus"}
    assert errors["title"]["message"] == "Title is required"
    assert errors["author"]["message"] == "Author is required"
    assert errors["isbn"]["message"] == "ISBN must be 10 or 13 digits"
    assert errors["isbn"]["value"] == "12345"
    assert errors["publishedYear"]["message"] == "Published year must be a valid year"
    assert errors["availabilityStatus"]["message"] == 'Availability status must be either "Available" or "Borrowed"'


def test_create_book_rejects_year_after_next_year(client):
    r = client.post(
        "/books",
        json={"title": "Future", "author": "Someone", "isbn": "9780000009999", "publishedYear": 9999},
    )
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "publishedYear"


def test_duplicate_isbn_conflicts_until_original_is_deleted(client, create_book):
    first = create_book(isbn="0451524934")

    dup = client.post(
        "/books",
        json={"title": "Other", "author": "Other", "isbn": "0451524934", "publishedYear": 1990},
    )
    assert dup.status_code == 409
    assert dup.json() == {"success": False, "message": "Book with this ISBN already exists"}

    assert client.delete(f"/books/{first['id']}").status_code == 200

    again = client.post(
        "/books",
        json={"title": "Other", "author": "Other", "isbn": "0451524934", "publishedYear": 1990},
    )
    assert again.status_code == 201
    assert again.json()["data"]["id"] != first["id"]


def test_database_constraint_conflict_maps_to_409(client, create_book, monkeypatch):
    create_book(isbn="1111111111")
    # 사전검사를 건너뛴 동시 생성 경쟁 상황 재현
    monkeypatch.setattr(BookService, "_isbn_taken", lambda self, isbn, exclude_id=None: False)
    r = client.post(
        "/books",
        json={"title": "Race", "author": "Race", "isbn": "1111111111", "publishedYear": 2000},
    )
    assert r.status_code == 409
    assert r.json()["message"] == "Duplicate entry. This ISBN already exists."


def test_get_book(client, create_book):
    book = create_book(title="Emma", author="Jane Austen")
    r = client.get(f"/books/{book['id']}")
    assert r.status_code == 200
    assert r.json()["message"] == "Book retrieved successfully"
    assert r.json()["data"]["title"] == "Emma"


def test_get_missing_book_returns_404(client):
    r = client.get("/books/424242")
    assert r.status_code == 404
    assert r.json() == {"success": False, "message": "Book not found"}


def test_update_is_partial(client, create_book):
    book = create_book(title="Old", author="Kept")
    r = client.put(f"/books/{book['id']}", json={"title": "New"})
    assert r.status_code == 200
    data = r.json()["data"]
    assert r.json()["message"] == "Book updated successfully"
    assert data["title"] == "New"
    assert data["author"] == "Kept"
    assert data["isbn"] == book["isbn"]


def test_update_validates_provided_fields(client, create_book):
    book = create_book()
    r = client.put(f"/books/{book['id']}", json={"author": "", "isbn": "abc"})
    assert r.status_code == 400
    errors = {e["field"]: e["message"] for e in r.json()["errors"]}
    assert errors == {"author": "Author cannot be empty", "isbn": "ISBN must be 10 or 13 digits"}


def test_update_isbn_conflict_and_same_isbn_allowed(client, create_book):
    a = create_book(isbn="2222222222")
    b = create_book(isbn="3333333333")

    clash = client.put(f"/books/{b['id']}", json={"isbn": "2222222222"})
    assert clash.status_code == 409

    same = client.put(f"/books/{a['id']}", json={"isbn": "2222222222", "title": "Same ISBN"})
    assert same.status_code == 200


def test_update_missing_or_deleted_book_returns_404(client, create_book):
    assert client.put("/books/99999", json={"title": "x"}).status_code == 404
    book = create_book()
    client.delete(f"/books/{book['id']}")
    r = client.put(f"/books/{book['id']}", json={"title": "x"})
    assert r.status_code == 404
    assert r.json()["message"] == "Book not found"


def test_soft_deleted_book_is_hidden_everywhere(client, create_book):
    keep = create_book(title="Visible Tale", author="Anna")
    gone = create_book(title="Hidden Tale", author="Anna")

    r = client.delete(f"/books/{gone['id']}")
    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "Book deleted successfully"}

    assert client.get(f"/books/{gone['id']}").status_code == 404

    listed = client.get("/books").json()
    assert [b["id"] for b in listed["data"]] == [keep["id"]]
    assert listed["pagination"]["total"] == 1

    found = client.get("/books/search", params={"q": "tale"}).json()
    assert [b["id"] for b in found["data"]] == [keep["id"]]


def test_soft_delete_keeps_the_row(client, create_book, db):
    from app.models import Book

    book = create_book()
    client.delete(f"/books/{book['id']}")
    row = db.query(Book).filter(Book.id == book["id"]).one()
    assert row.is_deleted is True
    assert row.deleted_at is not None


def test_delete_twice_returns_404(client, create_book):
    book = create_book()
    assert client.delete(f"/books/{book['id']}").status_code == 200
    r = client.delete(f"/books/{book['id']}")
    assert r.status_code == 404
    assert client.delete("/books/123456").status_code == 404


def test_list_pagination_math(client, create_book):
    ids = [create_book(title=f"Book {i}")["id"] for i in range(12)]

    first = client.get("/books", params={"limit": 5}).json()
    assert first["message"] == "Books retrieved successfully"
    assert first["pagination"] == {"page": 1, "limit": 5, "total": 12, "totalPages": 3}
    # 최신순
    assert [b["id"] for b in first["data"]] == list(reversed(ids))[:5]

    last = client.get("/books", params={"page": 3, "limit": 5}).json()
    assert len(last["data"]) == 2

    beyond = client.get("/books", params={"page": 4, "limit": 5}).json()
    assert beyond["data"] == []
    assert beyond["pagination"] == {"page": 4, "limit": 5, "total": 12, "totalPages": 3}


def test_list_defaults_and_empty_catalog(client):
    body = client.get("/books").json()
    assert body["data"] == []
    assert body["pagination"] == {"page": 1, "limit": 10, "total": 0, "totalPages": 0}


def test_list_filters_by_author_and_year(client, create_book):
    create_book(author="George Orwell", publishedYear=1949)
    create_book(author="George Orwell", publishedYear=1945)
    create_book(author="Aldous Huxley", publishedYear=1932)

    by_author = client.get("/books", params={"author": "orWELL"}).json()
    assert by_author["pagination"]["total"] == 2

    by_year = client.get("/books", params={"publishedYear": 1932}).json()
    assert [b["author"] for b in by_year["data"]] == ["Aldous Huxley"]

    both = client.get("/books", params={"author": "george", "publishedYear": 1945}).json()
    assert both["pagination"]["total"] == 1


def test_list_author_filter_escapes_wildcards(client, create_book):
    create_book(author="Plain Author")
    r = client.get("/books", params={"author": "%"})
    assert r.json()["pagination"]["total"] == 0


def test_list_rejects_invalid_query(client):
    r = client.get("/books", params={"page": 0, "limit": 101})
    assert r.status_code == 400
    errors = {e["field"]: e["message"] for e in r.json()["errors"]}
    assert errors == {"page": "Page must be a positive integer", "limit": "Limit must be between 1 and 100"}

    blank = client.get("/books", params={"author": "   "})
    assert blank.status_code == 400
    assert blank.json()["errors"][0]["message"] == "Author filter cannot be empty"

    year = client.get("/books", params={"publishedYear": 3000})
    assert year.status_code == 400
    assert year.json()["errors"][0]["field"] == "publishedYear"


def test_search_matches_title_or_author_case_insensitively(client, create_book):
    a = create_book(title="The Hobbit", author="J.R.R. Tolkien")
    b = create_book(title="Letters", author="Hobbes Society")
    create_book(title="Unrelated", author="Nobody")

    r = client.get("/books/search", params={"q": "  HOBB "})
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Search completed successfully"
    assert {x["id"] for x in body["data"]} == {a["id"], b["id"]}
    assert body["pagination"] == {"page": 1, "limit": 10, "total": 2, "totalPages": 1}

    paged = client.get("/books/search", params={"q": "hobb", "limit": 1, "page": 2}).json()
    assert len(paged["data"]) == 1
    assert paged["pagination"]["totalPages"] == 2


def test_search_without_query_is_rejected(client):
    r = client.get("/books/search")
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["errors"][0] == {"field": "q", "message": "Search query is required", "value": None}

    blank = client.get("/books/search", params={"q": "   "})
    assert blank.status_code == 400
    assert blank.json()["success"] is False


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["message"] == "Server is running"
    assert body["timestamp"]


def test_health_queue_uses_dispatcher(client):
    r = client.get("/health/queue")
    assert r.json() == {"status": "ok", "queue": "reachable"}


def test_unknown_route(client):
    r = client.get("/nope")
    assert r.status_code == 404
    assert r.json() == {"success": False, "message": "Route not found"}


def test_unexpected_error_returns_500_with_stack_outside_production(client, create_book, dispatcher, monkeypatch, caplog):
    book = create_book(availabilityStatus="Borrowed")

    def boom(book_id, book_title):
        raise RuntimeError("unexpected")

    monkeypatch.setattr(dispatcher, "enqueue", boom)
    caplog.set_level(logging.INFO, logger="app")
    raw = TestClient(app, raise_server_exceptions=False)
    r = raw.put(f"/books/{book['id']}", json={"availabilityStatus": "Available"})
    assert r.status_code == 500
    body = r.json()
    assert body["success"] is False
    assert body["message"] == "Internal server error"
    assert "RuntimeError" in body["stack"]
    # 처리되지 않은 예외도 요청 로그에 500 으로 남아야 함
    http_lines = [rec for rec in caplog.records if rec.name == "app.http" and getattr(rec, "statusCode", None) == 500]
    assert [rec.getMessage() for rec in http_lines] == [f"PUT /books/{book['id']} 500"]


def test_ids_outside_integer_range_are_rejected(client, create_book):
    create_book()
    huge = "99999999999999999999"

    for method in ("get", "delete"):
        r = getattr(client, method)(f"/books/{huge}")
        assert r.status_code == 400
        assert r.json()["errors"][0]["field"] == "book_id"
        assert r.json()["errors"][0]["message"] == "Book ID must be a positive integer"

    r = client.put(f"/books/{huge}", json={"title": "x"})
    assert r.status_code == 400

    assert client.get("/books/0").status_code == 400
    assert client.get(f"/books/{2**31 - 1}").status_code == 404


def test_page_outside_integer_range_is_rejected(client):
    for path, params in (("/books", {"page": 2**31}), ("/books/search", {"q": "x", "page": 10**20})):
        r = client.get(path, params=params)
        assert r.status_code == 400
        assert r.json()["errors"][0] == {"field": "page", "message": "Page must be a positive integer", "value": str(params["page"])}


def test_book_routes_share_a_per_client_rate_limit(client):
    for i in range(100):
        r = client.get("/books") if i % 2 else client.get("/books/424242")
        assert r.status_code != 429

    blocked = client.get("/books/search", params={"q": "dune"})
    assert blocked.status_code == 429
    assert blocked.json() == {
        "success": False,
        "message": "Too many requests from this IP, please try again later.",
    }

    # 헬스체크는 제한 대상이 아님
    assert client.get("/health").status_code == 200


def test_security_headers(client):
    r = client.get("/health")
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
    assert client.get("/books/424242").headers["Referrer-Policy"] == "no-referrer"
