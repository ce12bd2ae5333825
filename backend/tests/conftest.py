"""Shared fixtures: an in-memory SQLite database per test."""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import erp_workflow.models  # noqa: F401  (registers tables on Base.metadata)
from erp_workflow.db.base import Base
from erp_workflow.services.workflow_config import invalidate_cache


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    invalidate_cache()
    yield sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)
    invalidate_cache()
    engine.dispose()


@pytest.fixture
def db(session_factory):
    with session_factory() as session:
        yield session
