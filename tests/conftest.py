from __future__ import annotations

import os
import tempfile
from datetime import datetime
from typing import Generator, Any

import pytest

# keep the app lifespan from creating the dev database
os.environ.setdefault("EXPENSE_ENV", "test")

from sqlalchemy.orm import sessionmaker

from expense_api.core.clock import FixedClock
from expense_api.core.database import Base, build_engine, get_db
from expense_api.core.deps import get_clock
from expense_api.main import app
from expense_api.seed import seed_defaults
from expense_api import models


# Fixed "now" used by API tests: mid-March 2025
NOW = datetime(2025, 3, 15, 12, 0, 0)


@pytest.fixture(scope="session")
def test_db_url() -> Generator[str, Any, Any]:
    fd, path = tempfile.mkstemp(prefix="expense_test_", suffix=".sqlite3")
    os.close(fd)
    url = f"sqlite:///{path}"
    yield url
    try:
        os.remove(path)
    except OSError:
        pass


@pytest.fixture(scope="session")
def engine(test_db_url: str):
    eng = build_engine(test_db_url)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture(scope="function")
def db_session(engine) -> Generator[Any, Any, Any]:
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestingSessionLocal()
    # every test starts from the demo user and the system categories
    seed_defaults(session)
    session.commit()

    try:
        yield session
    finally:
        session.close()
        # children first, so foreign keys stay enforced on the pooled connection
        with engine.begin() as conn:
            for tbl in reversed(Base.metadata.sorted_tables):
                conn.execute(tbl.delete())


@pytest.fixture(autouse=True)
def override_dependency(db_session):
    def _get_db_override():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = _get_db_override
    app.dependency_overrides[get_clock] = lambda: FixedClock(NOW)
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
def client(db_session):
    from fastapi.testclient import TestClient
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def user(db_session) -> models.User:
    return db_session.query(models.User).filter_by(email="demo@example.com").one()


@pytest.fixture()
def other_user(db_session) -> models.User:
    other = models.User(email="other@example.com", is_active=True)
    db_session.add(other)
    db_session.commit()
    return other


@pytest.fixture()
def categories(db_session) -> dict[str, models.Category]:
    rows = db_session.query(models.Category).filter(models.Category.is_system.is_(True)).all()
    return {c.name: c for c in rows}
