"""Database engine and per-request sessions"""

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from hohema_loans.config import settings


def build_engine(database_url: str) -> Engine:
    """PostgreSQL gets a recycled connection pool; SQLite (local runs) is shared across threads"""
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
    )


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """One session per request; routes commit or roll back explicitly"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
