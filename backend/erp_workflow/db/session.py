from collections.abc import Generator
from functools import lru_cache

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from erp_workflow.core.config import settings


@lru_cache
def get_engine() -> Engine:
    return create_engine(
        settings.DATABASE_URL,
        echo=settings.SQL_ECHO,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


@lru_cache
def get_sessionmaker() -> sessionmaker[Session]:
    """Sync session factory shared by API handlers and Celery tasks."""
    return sessionmaker(
        bind=get_engine(),
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


def get_session() -> Generator[Session, None, None]:
    with get_sessionmaker()() as session:
        try:
            yield session
        except Exception:
            session.rollback()
            raise
