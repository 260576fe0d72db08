import itertools

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker

from app.core.rate_limit import limiter
from app.main import app
from app.database import get_db
from app.models import Base
from app.services.dispatch import get_dispatcher

# Shared in-memory SQLite for the whole test session
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


class RecordingDispatcher:
    """Stands in for the queue: remembers what would have been enqueued."""

    def __init__(self):
        self.jobs = []

    def enqueue(self, book_id, book_title):
        self.jobs.append((book_id, book_title))
        return f"job-{len(self.jobs)}"

    def ping(self):
        return None

    def close(self):
        return None


_isbn_counter = itertools.count(1)


def next_isbn() -> str:
    return f"978{next(_isbn_counter):010d}"


@pytest.fixture(autouse=True)
def fresh_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    # 요청 제한 카운터는 테스트마다 초기화
    limiter.reset()
    yield


@pytest.fixture
def session_factory():
    return TestingSessionLocal


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def client(dispatcher):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def create_book(client):
    def _create(**overrides):
        payload = {
            "title": "Test Book",
            "author": "Test Author",
            "isbn": next_isbn(),
            "publishedYear": 2001,
        }
        payload.update(overrides)
        r = client.post("/books", json=payload)
        assert r.status_code == 201, r.text
        return r.json()["data"]

    return _create
