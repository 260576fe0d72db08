from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from typing import Generator

from .core.config import get_settings

settings = get_settings()
DATABASE_URL = settings.database_url

# sqlite는 스레드 간 커넥션 공유 허용이 필요 (FastAPI sync 엔드포인트는 threadpool에서 실행)
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
	DATABASE_URL,
	echo=False,
	pool_pre_ping=True,
	connect_args=_connect_args,
	future=True,
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def get_db() -> Generator[Session, None, None]:
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()
