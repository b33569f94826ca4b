"""Shared fixtures: a throwaway SQLite database per test and an API client bound to it."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from cv_tracker.core.db import Base, get_db, get_session_factory, make_engine
from cv_tracker.models.company import Company  # noqa: F401
from cv_tracker.models.cv_submission import CVSubmission  # noqa: F401
from cv_tracker.main import app


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'cv_tracker.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(
        bind=engine, autoflush=False, autocommit=False, expire_on_commit=False
    )


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    try:
        # Context manager runs the lifespan, which owns the admission queue.
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
